from .clock import format_countdown, group_by_phase, phase, phase_at, seconds_remaining, utc_now
from .config import PENALTY_PER_WRONG_ATTEMPT, EngineConfig
from .contests import ContestRegistry, InMemoryProblemCatalog, ProblemCatalog
from .errors import (
    AdmissionError,
    AlreadyAccepted,
    ArenaError,
    ContestClosedError,
    ContestNotFound,
    ContestNotRunning,
    DuplicateSubmitError,
    InfrastructureError,
    JudgeUnavailable,
    NotRegistered,
    ProblemNotInContest,
    SubmissionPending,
    ValidationError,
)
from .gate import Judge, SubmissionGate
from .leaderboard import LeaderboardBuilder, RankingRow, compute_leaderboard
from .ledger import AttemptLedger
from .models import (
    Attempt,
    AttemptId,
    Contest,
    ContestPhase,
    ExecutionMode,
    JudgeReport,
    Problem,
    TestCase,
    TestResult,
    Verdict,
)
from .scoring import ContestantScore, ProblemScore, score_contest, score_contestant
from .service import ArenaService
from .validation import ContestCreateRequest, InputSanitizer, JoinRequest, SubmissionRequest

__all__ = [
    "utc_now",
    "phase",
    "phase_at",
    "seconds_remaining",
    "format_countdown",
    "group_by_phase",
    "EngineConfig",
    "PENALTY_PER_WRONG_ATTEMPT",
    "ContestRegistry",
    "InMemoryProblemCatalog",
    "ProblemCatalog",
    "ArenaError",
    "AdmissionError",
    "AlreadyAccepted",
    "ContestClosedError",
    "ContestNotFound",
    "ContestNotRunning",
    "DuplicateSubmitError",
    "InfrastructureError",
    "JudgeUnavailable",
    "NotRegistered",
    "ProblemNotInContest",
    "SubmissionPending",
    "ValidationError",
    "Judge",
    "SubmissionGate",
    "AttemptLedger",
    "LeaderboardBuilder",
    "RankingRow",
    "compute_leaderboard",
    "Attempt",
    "AttemptId",
    "Contest",
    "ContestPhase",
    "ExecutionMode",
    "JudgeReport",
    "Problem",
    "TestCase",
    "TestResult",
    "Verdict",
    "ContestantScore",
    "ProblemScore",
    "score_contest",
    "score_contestant",
    "ArenaService",
    "ContestCreateRequest",
    "InputSanitizer",
    "JoinRequest",
    "SubmissionRequest",
]
