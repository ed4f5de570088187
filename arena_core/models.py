"""Domain records for contests, problems and attempts.

All records are frozen dataclasses. Components never mutate a record in place:
roster growth yields a new Contest, verdict commit yields a new Attempt.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

AttemptId = str


class ContestPhase(str, Enum):
    UPCOMING = "upcoming"
    RUNNING = "running"
    FINISHED = "finished"


class ExecutionMode(str, Enum):
    RUN = "run"
    SUBMIT = "submit"


class Verdict(str, Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    input: str
    expected: str
    # Example cases are visible to contestants and used by run mode.
    example: bool = False


@dataclass(frozen=True)
class Problem:
    id: str
    title: str
    difficulty: str = "Medium"
    test_cases: tuple[TestCase, ...] = ()

    @property
    def example_cases(self) -> tuple[TestCase, ...]:
        return tuple(case for case in self.test_cases if case.example)

    @property
    def hidden_cases(self) -> tuple[TestCase, ...]:
        return tuple(case for case in self.test_cases if not case.example)


@dataclass(frozen=True)
class TestResult:
    __test__ = False

    input: str
    expected: str
    output: str | None = None
    passed: bool = False
    error: str | None = None


@dataclass(frozen=True)
class JudgeReport:
    passed: bool
    results: tuple[TestResult, ...] = ()
    # Set when the sandbox itself failed (not a wrong answer).
    infrastructure_error: str | None = None


@dataclass(frozen=True)
class Contest:
    id: str
    title: str
    start_time: datetime
    end_time: datetime
    problem_ids: tuple[str, ...]
    room_code: str
    description: str = ""
    contestants: frozenset[str] = field(default_factory=frozenset)
    created_by: str | None = None

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError("contest end_time must be after start_time")

    def has_problem(self, problem_id: str) -> bool:
        return problem_id in self.problem_ids

    def is_registered(self, contestant_id: str) -> bool:
        return contestant_id in self.contestants


@dataclass(frozen=True)
class Attempt:
    id: AttemptId
    contest_id: str
    contestant_id: str
    problem_id: str
    code: str
    language: str
    submitted_at: datetime
    mode: ExecutionMode
    verdict: Verdict = Verdict.PENDING
    results: tuple[TestResult, ...] = ()
    # Judge infrastructure failure payload; None for ordinary verdicts.
    error: str | None = None
    # Admission order within the ledger, assigned on record.
    sequence: int = 0

    @property
    def triple(self) -> tuple[str, str, str]:
        return (self.contest_id, self.contestant_id, self.problem_id)

    @property
    def is_final(self) -> bool:
        return self.verdict is not Verdict.PENDING

    @property
    def is_accepted_submit(self) -> bool:
        return self.mode is ExecutionMode.SUBMIT and self.verdict is Verdict.PASSED

    @property
    def is_judge_failure(self) -> bool:
        return self.verdict is Verdict.FAILED and self.error is not None
