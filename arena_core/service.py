"""Service facade wiring the engine components for the client-facing API.

ArenaService owns one ledger, registry, gate and leaderboard builder and turns
engine records into the JSON payloads declared in ``arena_core.types``.
Identity is taken as given: callers pass an already authenticated contestant id.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .clock import format_countdown, group_by_phase, phase, seconds_remaining, utc_now
from .config import EngineConfig
from .contests import ContestRegistry, ProblemCatalog
from .errors import NotRegistered
from .gate import Judge, SubmissionGate
from .leaderboard import LeaderboardBuilder, RankingRow
from .ledger import AttemptLedger
from .models import Attempt, Contest, ContestPhase, ExecutionMode, Problem, TestResult, Verdict
from .scoring import ProblemScore, score_problem
from .types import (
    ContestListing,
    ContestSummary,
    ContestView,
    ProblemAttemptState,
    ProblemStat,
    ProblemSummary,
    RankingEntry,
    RankingsPayload,
    RunResultPayload,
    SubmissionSummary,
    SubmitResultPayload,
    TestResultWire,
)

logger = logging.getLogger(__name__)

STATUS_ACCEPTED = "Accepted"
STATUS_WRONG_ANSWER = "Wrong Answer"
STATUS_JUDGE_ERROR = "Judge Error"
STATUS_PENDING = "Pending"


def attempt_status(attempt: Attempt) -> str:
    if attempt.verdict is Verdict.PENDING:
        return STATUS_PENDING
    if attempt.verdict is Verdict.PASSED:
        return STATUS_ACCEPTED
    if attempt.error is not None:
        return STATUS_JUDGE_ERROR
    return STATUS_WRONG_ANSWER


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _test_result_payload(result: TestResult) -> TestResultWire:
    return {
        "input": result.input,
        "expected": result.expected,
        "output": result.output,
        "pass": result.passed,
        "error": result.error,
    }


def _problem_stat(score: ProblemScore) -> ProblemStat:
    return {
        "problemId": score.problem_id,
        "solved": score.solved,
        "attempts": score.attempts,
        "solveTimeMinutes": score.solve_time_minutes,
    }


def _ranking_entry(row: RankingRow) -> RankingEntry:
    return {
        "rank": row.rank,
        "contestantId": row.contestant_id,
        "problemsSolved": row.problems_solved,
        "penalty": row.penalty,
        "lastAcceptedAt": _iso(row.last_accepted_at),
        "problemStats": [_problem_stat(p) for p in row.problems],
    }


class ArenaService:
    def __init__(
        self,
        catalog: ProblemCatalog,
        judge: Judge,
        config: Optional[EngineConfig] = None,
        *,
        now: Callable[[], datetime] = utc_now,
    ):
        self.config = config or EngineConfig()
        self.catalog = catalog
        self._now = now
        self.ledger = AttemptLedger(now=now)
        self.registry = ContestRegistry(catalog, now=now)
        self.gate = SubmissionGate(self.ledger, catalog, judge, self.config, now=now)
        self.leaderboard = LeaderboardBuilder(self.ledger, self.config, now=now)

    def close(self) -> None:
        self.gate.close()

    # ==================== CONTESTS ====================

    def _summary(self, contest: Contest, viewer: Optional[str] = None) -> ContestSummary:
        now = self._now()
        summary: ContestSummary = {
            "id": contest.id,
            "title": contest.title,
            "description": contest.description,
            "startTime": contest.start_time.isoformat(),
            "endTime": contest.end_time.isoformat(),
            "phase": phase(contest, now).value,
            "problemCount": len(contest.problem_ids),
            "participants": len(contest.contestants),
            "secondsRemaining": seconds_remaining(contest, now),
        }
        if viewer is not None and viewer == contest.created_by:
            summary["roomCode"] = contest.room_code
        return summary

    def create_contest(self, data: Dict[str, Any], organizer_id: str) -> ContestSummary:
        contest = self.registry.create(data, organizer_id)
        return self._summary(contest, organizer_id)

    def join_contest(self, room_code: str, contestant_id: str) -> Dict[str, str]:
        contest = self.registry.join(room_code, contestant_id)
        return {"message": f"Joined {contest.title}", "contestId": contest.id}

    def list_contests(self, viewer: Optional[str] = None) -> ContestListing:
        groups = group_by_phase(self.registry.all(), self._now())
        return {
            name: [self._summary(contest, viewer) for contest in contests]
            for name, contests in groups.items()
        }

    def _problem_summary(self, problem: Problem) -> ProblemSummary:
        return {
            "id": problem.id,
            "title": problem.title,
            "difficulty": problem.difficulty,
            "examples": [
                {"input": case.input, "output": case.expected}
                for case in problem.example_cases
            ],
        }

    def _attempt_state(self, contest: Contest, contestant_id: str, problem_id: str) -> ProblemAttemptState:
        score = score_problem(contest, self.ledger, contestant_id, problem_id, self.config)
        submits = [
            a
            for a in self.ledger.history(contest.id, contestant_id, problem_id)
            if a.mode is ExecutionMode.SUBMIT
        ]
        return {
            "problemId": problem_id,
            "solved": score.solved,
            "attempts": score.attempts,
            "solveTimeMinutes": score.solve_time_minutes,
            "lastStatus": attempt_status(submits[-1]) if submits else None,
            "pending": any(a.verdict is Verdict.PENDING for a in submits),
        }

    def contest_view(self, contest_id: str, contestant_id: str) -> ContestView:
        contest = self.registry.get(contest_id)
        is_organizer = contestant_id == contest.created_by
        if not contest.is_registered(contestant_id) and not is_organizer:
            raise NotRegistered("Please join the contest first")

        view: ContestView = dict(self._summary(contest, contestant_id))
        view["countdown"] = format_countdown(view["secondsRemaining"])
        if phase(contest, self._now()) is ContestPhase.UPCOMING:
            view["problems"] = []
            view["attempts"] = []
            return view
        view["problems"] = [
            self._problem_summary(self.catalog.get_problem(problem_id))
            for problem_id in contest.problem_ids
        ]
        view["attempts"] = [
            self._attempt_state(contest, contestant_id, problem_id)
            for problem_id in contest.problem_ids
        ]
        return view

    # ==================== RUN / SUBMIT ====================

    def run(self, contest_id: str, contestant_id: str, payload: Dict[str, Any]) -> RunResultPayload:
        contest = self.registry.get(contest_id)
        results = self.gate.run(
            contest,
            contestant_id,
            payload.get("problemId", ""),
            payload.get("code", ""),
            payload.get("language", ""),
        )
        return {
            "passed": bool(results) and all(r.passed for r in results),
            "testResults": [_test_result_payload(r) for r in results],
            "error": next((r.error for r in results if r.error), None),
        }

    def submit(self, contest_id: str, contestant_id: str, payload: Dict[str, Any]) -> SubmitResultPayload:
        contest = self.registry.get(contest_id)
        attempt_id = self.gate.submit(
            contest,
            contestant_id,
            payload.get("problemId", ""),
            payload.get("code", ""),
            payload.get("language", ""),
        )
        attempt = self.ledger.get(attempt_id)
        problem = self.catalog.get_problem(attempt.problem_id)
        visible = {(case.input, case.expected) for case in problem.example_cases}
        return {
            "attemptId": attempt.id,
            "status": attempt_status(attempt),
            "passed": attempt.verdict is Verdict.PASSED,
            "passedCount": sum(1 for r in attempt.results if r.passed),
            "totalCount": len(attempt.results),
            "testResults": [
                _test_result_payload(r)
                for r in attempt.results
                if (r.input, r.expected) in visible
            ],
        }

    def submissions(self, contest_id: str, contestant_id: str) -> List[SubmissionSummary]:
        """Scored submissions of one contestant, oldest first."""
        contest = self.registry.get(contest_id)
        return [
            {
                "id": attempt.id,
                "problemId": attempt.problem_id,
                "status": attempt_status(attempt),
                "language": attempt.language,
                "submittedAt": attempt.submitted_at.isoformat(),
            }
            for attempt in self.ledger.attempts_for(contest.id, contestant_id)
            if attempt.mode is ExecutionMode.SUBMIT
        ]

    # ==================== RANKINGS ====================

    def rankings(self, contest_id: str) -> RankingsPayload:
        """Leaderboard, or an explicit not-available signal.

        Not available while the contest is upcoming, while it runs (unless
        live rankings are enabled) and while finished-contest verdicts are
        still being judged.
        """
        contest = self.registry.get(contest_id)
        current = phase(contest, self._now())
        payload: RankingsPayload = {
            "contestId": contest.id,
            "problems": list(contest.problem_ids),
        }
        message = None
        if current is ContestPhase.UPCOMING:
            message = "Rankings not available: contest has not started"
        elif current is ContestPhase.RUNNING and not self.config.live_rankings:
            message = "Rankings not available until the contest has ended"
        elif current is ContestPhase.FINISHED and self.ledger.pending_count(contest.id):
            message = "Rankings are being generated"
        if message is not None:
            payload.update(status="not_available", message=message, rankings=[])
            return payload

        rows = self.leaderboard.rank(contest)
        payload.update(
            status="available",
            message=None,
            rankings=[_ranking_entry(row) for row in rows],
        )
        return payload


__all__ = ["ArenaService", "attempt_status"]
