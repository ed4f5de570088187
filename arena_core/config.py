"""Engine configuration (pydantic v2).

Defaults follow ICPC conventions. ``EngineConfig.from_env`` lets a deployment
override any value through ``ARENA_*`` environment variables.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGES: Tuple[str, ...] = ("javascript", "python", "java", "cpp")

ENV_PREFIX = "ARENA_"

# ICPC convention
PENALTY_PER_WRONG_ATTEMPT = 20


class EngineConfig(BaseModel):
    """Tunable constants for scoring, judging and rankings."""

    penalty_per_wrong_attempt: int = Field(
        PENALTY_PER_WRONG_ATTEMPT, ge=0, le=1440, description="Penalty minutes per wrong submission"
    )
    judge_timeout_seconds: float = Field(
        10.0, gt=0, le=600, description="Upper bound on a single judge call"
    )
    judge_workers: int = Field(8, ge=1, le=256, description="Judge thread pool size")
    supported_languages: Tuple[str, ...] = Field(
        DEFAULT_LANGUAGES, min_length=1, description="Accepted language identifiers"
    )
    max_code_length: int = Field(65536, ge=1, description="Max submitted code size")

    # Keep run-mode attempts in the ledger as non-scoring audit records.
    persist_runs: bool = True
    # Serve rankings while the contest is running (otherwise only after the end).
    live_rankings: bool = False
    # Count judge infrastructure failures as wrong attempts in the penalty.
    charge_judge_failures: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("supported_languages", mode="before")
    @classmethod
    def normalize_languages(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        normalized = []
        for item in v:
            name = str(item).strip().lower()
            if name and name not in normalized:
                normalized.append(name)
        if not normalized:
            raise ValueError("supported_languages cannot be empty")
        return tuple(normalized)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "EngineConfig":
        """Build a config from ARENA_* variables, falling back to defaults."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            values[name] = raw
        if values:
            logger.debug(f"EngineConfig overrides from environment: {sorted(values)}")
        return cls.model_validate(values)


__all__ = ["EngineConfig", "DEFAULT_LANGUAGES", "PENALTY_PER_WRONG_ATTEMPT"]
