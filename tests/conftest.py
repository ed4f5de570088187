from __future__ import annotations

import threading
import time
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from arena_core import (
    Attempt,
    AttemptLedger,
    Contest,
    ExecutionMode,
    InMemoryProblemCatalog,
    JudgeReport,
    Problem,
    TestCase,
    TestResult,
    Verdict,
)

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, minutes: float = 0, seconds: float = 0) -> datetime:
        self.now = T0 + timedelta(minutes=minutes, seconds=seconds)
        return self.now


class ScriptedJudge:
    """Passes code containing 'correct'; 'boom' reports an infrastructure error,
    'crash' raises, 'slow' sleeps before answering."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: list[tuple[str, str, tuple[TestCase, ...]]] = []
        self._lock = threading.Lock()

    def evaluate(self, code, language, test_cases):
        with self._lock:
            self.calls.append((code, language, tuple(test_cases)))
        if "slow" in code:
            time.sleep(1.0)
        elif self.delay:
            time.sleep(self.delay)
        if "crash" in code:
            raise RuntimeError("sandbox crashed")
        if "boom" in code:
            return JudgeReport(passed=False, infrastructure_error="sandbox unavailable")
        ok = "correct" in code
        results = tuple(
            TestResult(
                input=case.input,
                expected=case.expected,
                output=case.expected if ok else "wrong",
                passed=ok,
            )
            for case in test_cases
        )
        return JudgeReport(passed=ok, results=results)


def make_problem(problem_id: str, examples: int = 1, hidden: int = 2) -> Problem:
    cases = [TestCase(f"ex{i}", f"out{i}", example=True) for i in range(examples)]
    cases += [TestCase(f"hid{i}", f"res{i}") for i in range(hidden)]
    return Problem(id=problem_id, title=f"Problem {problem_id}", test_cases=tuple(cases))


def make_contest(
    contest_id: str = "c1",
    problems=("A", "B"),
    contestants=("alice", "bob"),
    duration_minutes: int = 120,
) -> Contest:
    return Contest(
        id=contest_id,
        title="Weekly Round",
        start_time=T0,
        end_time=T0 + timedelta(minutes=duration_minutes),
        problem_ids=tuple(problems),
        room_code="ROOM01",
        contestants=frozenset(contestants),
        created_by="organizer",
    )


def record_final(
    ledger: AttemptLedger,
    clock: FakeClock,
    contest: Contest,
    contestant: str,
    problem: str,
    minutes: float,
    verdict: Verdict,
    *,
    mode: ExecutionMode = ExecutionMode.SUBMIT,
    error: str | None = None,
) -> str:
    at = clock.set(minutes=minutes)
    return ledger.record(
        contest,
        Attempt(
            id=str(uuid.uuid4()),
            contest_id=contest.id,
            contestant_id=contestant,
            problem_id=problem,
            code="print(1)",
            language="python",
            submitted_at=at,
            mode=mode,
            verdict=verdict,
            error=error,
        ),
    )


@pytest.fixture
def clock():
    return FakeClock(T0 + timedelta(minutes=1))


@pytest.fixture
def catalog():
    return InMemoryProblemCatalog([make_problem("A"), make_problem("B"), make_problem("C")])


@pytest.fixture
def contest():
    return make_contest()


@pytest.fixture
def ledger(clock):
    return AttemptLedger(now=clock)


@pytest.fixture
def judge():
    return ScriptedJudge()
