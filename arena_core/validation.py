"""
Input validation schemas using Pydantic v2
Validates contest creation, join and submission payloads
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from .config import EngineConfig
from .errors import ValidationError

logger = logging.getLogger(__name__)

ROOM_CODE_PATTERN = re.compile(r"^[A-Z0-9]{4,16}$")

# ==================== REQUEST MODELS ====================


class SubmissionRequest(BaseModel):
    """Body of POST /contests/{id}/run and /submit"""

    problemId: str = Field(..., min_length=1, max_length=64, description="Problem ID")
    code: str = Field(..., description="Source code")
    language: str = Field(..., min_length=1, max_length=32, description="Language id")

    @field_validator("problemId")
    @classmethod
    def validate_problem_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("problemId cannot be empty")
        return v

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str, info: ValidationInfo) -> str:
        """Reject blank code and enforce the configured size limit"""
        if not v.strip():
            raise ValueError("code cannot be empty")
        if "\0" in v:
            raise ValueError("code contains null bytes")
        max_length = (info.context or {}).get("max_code_length")
        if max_length is not None and len(v) > max_length:
            raise ValueError(f"code exceeds {max_length} characters")
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip().lower()
        allowed = (info.context or {}).get("languages")
        if allowed is not None and v not in allowed:
            raise ValueError(f"language must be one of {sorted(allowed)}, got {v}")
        return v

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ContestCreateRequest(BaseModel):
    """Organizer form for a new contest"""

    title: str = Field(..., min_length=1, max_length=200, description="Contest title")
    description: str = Field("", max_length=5000, description="Contest description")
    startTime: datetime
    endTime: datetime
    problemIds: List[str] = Field(..., description="Ordered problem IDs")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = InputSanitizer.sanitize_string(v, 200)
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return InputSanitizer.sanitize_string(v, 5000)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("timestamps must include a timezone offset")
        return v

    @field_validator("problemIds")
    @classmethod
    def validate_problem_ids(cls, v: List[str]) -> List[str]:
        """Strip, drop blanks and duplicates, keep order"""
        ordered: List[str] = []
        for raw in v:
            problem_id = raw.strip()
            if problem_id and problem_id not in ordered:
                ordered.append(problem_id)
        if not ordered:
            raise ValueError("Please select at least one problem")
        if len(ordered) > 26:
            raise ValueError("a contest cannot have more than 26 problems")
        return ordered

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.endTime <= self.startTime:
            raise ValueError("End time must be after start time")
        return self


class JoinRequest(BaseModel):
    """Room code entered on the contests page"""

    roomCode: str = Field(..., min_length=1, max_length=32)

    @field_validator("roomCode")
    @classmethod
    def validate_room_code(cls, v: str) -> str:
        v = InputSanitizer.sanitize_room_code(v)
        if not ROOM_CODE_PATTERN.match(v):
            raise ValueError("Please enter a valid Room ID")
        return v


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize free-text input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        value = value.strip()
        value = value[:max_length]
        # Remove null bytes and other control chars except newlines/tabs
        value = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", value)

        return value

    @staticmethod
    def sanitize_room_code(code: str) -> str:
        return re.sub(r"[\s\-]", "", str(code)).upper()

    @staticmethod
    def _validate(model: type[BaseModel], data: Dict[str, Any], context=None) -> Any:
        try:
            return model.model_validate(data, context=context)
        except PydanticValidationError as e:
            messages = [err.get("msg", "") for err in e.errors()]
            logger.warning(f"{model.__name__} validation failed: {messages}")
            raise ValidationError("; ".join(messages) or "invalid request") from e

    @staticmethod
    def validate_submission(
        data: Dict[str, Any], config: Optional[EngineConfig] = None
    ) -> SubmissionRequest:
        """
        Validate a run/submit body against the engine configuration

        Raises:
            ValidationError: empty code, oversized code, unsupported language
        """
        config = config or EngineConfig()
        return InputSanitizer._validate(
            SubmissionRequest,
            data,
            context={
                "languages": config.supported_languages,
                "max_code_length": config.max_code_length,
            },
        )

    @staticmethod
    def validate_contest(data: Dict[str, Any]) -> ContestCreateRequest:
        return InputSanitizer._validate(ContestCreateRequest, data)

    @staticmethod
    def validate_join(data: Dict[str, Any]) -> JoinRequest:
        return InputSanitizer._validate(JoinRequest, data)


# ==================== EXPORT ====================

__all__ = [
    "SubmissionRequest",
    "ContestCreateRequest",
    "JoinRequest",
    "InputSanitizer",
]
