"""Error taxonomy surfaced by the contest engine.

Admission errors are client mistakes: raised synchronously, never retried by the
engine. Infrastructure errors are retryable by the caller. Each error carries a
stable ``kind`` and the HTTP status the API layer maps it to.
"""
from __future__ import annotations


class ArenaError(Exception):
    """Base class for all engine errors."""

    kind = "arena_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.kind
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {
            "error": self.kind,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class AdmissionError(ArenaError):
    kind = "admission_error"
    status_code = 400


class ContestNotRunning(AdmissionError):
    kind = "contest_not_running"
    status_code = 409


class ContestClosedError(ContestNotRunning):
    """Raised by the ledger when the contest is not running at append time."""

    kind = "contest_closed"


class AlreadyAccepted(AdmissionError):
    kind = "already_accepted"
    status_code = 409


class DuplicateSubmitError(AlreadyAccepted):
    """Raised by the ledger when a triple already holds an accepted submission."""

    kind = "duplicate_submit"


class SubmissionPending(AdmissionError):
    """Raised by the ledger while an earlier submission for the triple is still being judged."""

    kind = "submission_pending"
    status_code = 409


class ProblemNotInContest(AdmissionError):
    kind = "problem_not_in_contest"
    status_code = 404


class ValidationError(AdmissionError):
    kind = "validation_error"
    status_code = 422


class NotRegistered(AdmissionError):
    kind = "not_registered"
    status_code = 403


class ContestNotFound(AdmissionError):
    kind = "contest_not_found"
    status_code = 404


class InfrastructureError(ArenaError):
    kind = "infrastructure_error"
    status_code = 503
    retryable = True


class JudgeUnavailable(InfrastructureError):
    kind = "judge_unavailable"

    def __init__(self, message: str | None = None, *, attempt_id: str | None = None):
        super().__init__(message, attempt_id=attempt_id)
        self.attempt_id = attempt_id


__all__ = [
    "ArenaError",
    "AdmissionError",
    "ContestNotRunning",
    "ContestClosedError",
    "AlreadyAccepted",
    "DuplicateSubmitError",
    "SubmissionPending",
    "ProblemNotInContest",
    "ValidationError",
    "NotRegistered",
    "ContestNotFound",
    "InfrastructureError",
    "JudgeUnavailable",
]
