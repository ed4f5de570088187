"""ICPC scoring derived from the attempt ledger.

Per problem:
- solved:             an accepted SUBMIT attempt exists
- solve_time_minutes: floor((accepted_at - contest start) / 1 min), never negative
- attempts:           SUBMIT attempts up to and including the accepted one

Per contestant:
- problems_solved:    number of solved problems
- penalty:            sum over solved problems of
                      solve_time_minutes + PENALTY_PER_WRONG_ATTEMPT * (attempts - 1)

Unsolved problems add no penalty regardless of how many attempts they took.
Scores are views; nothing here is persisted.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .config import PENALTY_PER_WRONG_ATTEMPT, EngineConfig
from .ledger import AttemptLedger
from .models import Contest, ExecutionMode


@dataclass(frozen=True)
class ProblemScore:
    problem_id: str
    solved: bool
    attempts: int
    solve_time_minutes: Optional[int] = None
    accepted_at: Optional[datetime] = None

    def penalty(self, per_wrong_attempt: int = PENALTY_PER_WRONG_ATTEMPT) -> int:
        if not self.solved:
            return 0
        return int(self.solve_time_minutes or 0) + per_wrong_attempt * max(self.attempts - 1, 0)


@dataclass(frozen=True)
class ContestantScore:
    contestant_id: str
    problems_solved: int
    penalty: int
    problems: tuple[ProblemScore, ...]
    # Latest accepted submission among solved problems: when the current score was reached.
    last_accepted_at: Optional[datetime] = None

    def problem(self, problem_id: str) -> Optional[ProblemScore]:
        for entry in self.problems:
            if entry.problem_id == problem_id:
                return entry
        return None


def solve_time_minutes(contest: Contest, accepted_at: datetime) -> int:
    elapsed = (accepted_at - contest.start_time).total_seconds()
    return max(0, int(elapsed // 60))


def score_problem(
    contest: Contest,
    ledger: AttemptLedger,
    contestant_id: str,
    problem_id: str,
    config: Optional[EngineConfig] = None,
) -> ProblemScore:
    config = config or EngineConfig()
    attempts = ledger.submit_attempt_count(
        contest.id,
        contestant_id,
        problem_id,
        include_judge_failures=config.charge_judge_failures,
    )
    accepted_at = ledger.first_accepted_submit_time(contest.id, contestant_id, problem_id)
    if accepted_at is None:
        return ProblemScore(problem_id=problem_id, solved=False, attempts=attempts)
    # The accepted attempt always counts, even if judge failures are not charged.
    return ProblemScore(
        problem_id=problem_id,
        solved=True,
        attempts=max(attempts, 1),
        solve_time_minutes=solve_time_minutes(contest, accepted_at),
        accepted_at=accepted_at,
    )


def score_contestant(
    contest: Contest,
    ledger: AttemptLedger,
    contestant_id: str,
    config: Optional[EngineConfig] = None,
) -> ContestantScore:
    config = config or EngineConfig()
    problems = tuple(
        score_problem(contest, ledger, contestant_id, problem_id, config)
        for problem_id in contest.problem_ids
    )
    solved = [p for p in problems if p.solved]
    return ContestantScore(
        contestant_id=contestant_id,
        problems_solved=len(solved),
        penalty=sum(p.penalty(config.penalty_per_wrong_attempt) for p in solved),
        problems=problems,
        last_accepted_at=max((p.accepted_at for p in solved), default=None),
    )


def contest_participants(contest: Contest, ledger: AttemptLedger) -> list[str]:
    """Registered roster plus anyone holding a submit attempt in the ledger."""
    participants = set(contest.contestants)
    for attempt in ledger.attempts_for(contest.id):
        if attempt.mode is ExecutionMode.SUBMIT:
            participants.add(attempt.contestant_id)
    return sorted(participants)


def score_contest(
    contest: Contest,
    ledger: AttemptLedger,
    config: Optional[EngineConfig] = None,
) -> list[ContestantScore]:
    config = config or EngineConfig()
    return [
        score_contestant(contest, ledger, contestant_id, config)
        for contestant_id in contest_participants(contest, ledger)
    ]


__all__ = [
    "PENALTY_PER_WRONG_ATTEMPT",
    "ProblemScore",
    "ContestantScore",
    "solve_time_minutes",
    "score_problem",
    "score_contestant",
    "score_contest",
    "contest_participants",
]
