"""Submission gate: the single admission point in front of the judge.

submit():
    validate -> phase RUNNING -> problem in contest -> contestant registered
    -> reserve a PENDING attempt in the ledger (uniqueness checked under the
       per-triple lock) -> judge ALL test cases outside any lock, bounded by a
       timeout -> commit the verdict (re-acquires the triple lock briefly).

run():
    same path restricted to example test cases; never subject to the
    one-accepted-submission rule and never scored.

Judge infrastructure failures (timeout, crash, reported infrastructure error)
are committed as FAILED attempts carrying the error text, then surfaced as the
retryable JudgeUnavailable. Nothing is retried automatically.
"""
from __future__ import annotations

import logging
import threading
import uuid
from concurrent import futures
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Sequence, Set, Tuple

from .clock import phase, utc_now
from .config import EngineConfig
from .contests import ProblemCatalog
from .errors import ContestNotRunning, JudgeUnavailable, NotRegistered, ProblemNotInContest
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
from .validation import InputSanitizer, SubmissionRequest

logger = logging.getLogger(__name__)


class Judge(Protocol):
    """Sandboxed code executor (external collaborator).

    Implementations must enforce their own hard execution limit. The gate stops
    waiting after ``judge_timeout_seconds`` but cannot interrupt a running call,
    which keeps its worker thread until it returns.
    """

    def evaluate(
        self, code: str, language: str, test_cases: Sequence[TestCase]
    ) -> JudgeReport:
        ...


class SubmissionGate:
    def __init__(
        self,
        ledger: AttemptLedger,
        catalog: ProblemCatalog,
        judge: Judge,
        config: Optional[EngineConfig] = None,
        *,
        now: Callable[[], datetime] = utc_now,
        executor: Optional[futures.Executor] = None,
    ):
        self._ledger = ledger
        self._catalog = catalog
        self._judge = judge
        self._config = config or EngineConfig()
        self._now = now
        self._owns_executor = executor is None
        self._executor = executor or futures.ThreadPoolExecutor(
            max_workers=self._config.judge_workers, thread_name_prefix="judge"
        )
        # Judge calls that outlived their timeout and still hold a worker.
        self._stuck: Set[futures.Future] = set()
        self._stuck_lock = threading.Lock()

    @property
    def stuck_judge_calls(self) -> int:
        with self._stuck_lock:
            return len(self._stuck)

    def _release(self, future: futures.Future) -> None:
        with self._stuck_lock:
            self._stuck.discard(future)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def _admit(
        self,
        contest: Contest,
        contestant_id: str,
        problem_id: str,
        code: str,
        language: str,
    ) -> Tuple[SubmissionRequest, Problem]:
        request = InputSanitizer.validate_submission(
            {"problemId": problem_id, "code": code, "language": language},
            self._config,
        )
        current_phase = phase(contest, self._now())
        if current_phase is not ContestPhase.RUNNING:
            raise ContestNotRunning(
                f"contest {contest.id} is {current_phase.value}",
                contest_id=contest.id,
                phase=current_phase.value,
            )
        if not contest.has_problem(request.problemId):
            raise ProblemNotInContest(
                f"problem {request.problemId} is not part of contest {contest.id}"
            )
        if not contest.is_registered(contestant_id):
            raise NotRegistered("Please join the contest first")
        try:
            problem = self._catalog.get_problem(request.problemId)
        except KeyError:
            raise ProblemNotInContest(
                f"problem {request.problemId} is not in the catalog"
            ) from None
        return request, problem

    def _new_attempt(
        self,
        contest: Contest,
        contestant_id: str,
        request: SubmissionRequest,
        mode: ExecutionMode,
    ) -> Attempt:
        return Attempt(
            id=str(uuid.uuid4()),
            contest_id=contest.id,
            contestant_id=contestant_id,
            problem_id=request.problemId,
            code=request.code,
            language=request.language,
            submitted_at=self._now(),
            mode=mode,
        )

    def _evaluate(
        self, code: str, language: str, test_cases: Sequence[TestCase]
    ) -> JudgeReport:
        timeout = self._config.judge_timeout_seconds
        future = self._executor.submit(self._judge.evaluate, code, language, tuple(test_cases))
        try:
            return future.result(timeout=timeout)
        except futures.TimeoutError:
            if not future.cancel():
                with self._stuck_lock:
                    self._stuck.add(future)
                    stuck = len(self._stuck)
                future.add_done_callback(self._release)
                if stuck >= self._config.judge_workers:
                    logger.error(
                        f"All {stuck} judge workers are held by calls past their timeout"
                    )
                else:
                    logger.warning(
                        f"Judge call exceeded {timeout}s; {stuck} of "
                        f"{self._config.judge_workers} workers still busy with timed-out calls"
                    )
            else:
                logger.warning(f"Judge call exceeded {timeout}s before starting")
            return JudgeReport(passed=False, infrastructure_error=f"judge timed out after {timeout}s")
        except Exception as exc:
            logger.warning(f"Judge call failed: {exc!r}")
            return JudgeReport(passed=False, infrastructure_error=f"judge error: {exc}")

    def submit(
        self,
        contest: Contest,
        contestant_id: str,
        problem_id: str,
        code: str,
        language: str,
    ) -> AttemptId:
        """Judge a final submission against every test case of the problem."""
        request, problem = self._admit(contest, contestant_id, problem_id, code, language)
        attempt_id = self._ledger.record(
            contest, self._new_attempt(contest, contestant_id, request, ExecutionMode.SUBMIT)
        )

        report = self._evaluate(request.code, request.language, problem.test_cases)
        if report.infrastructure_error:
            self._ledger.commit_verdict(
                attempt_id, Verdict.FAILED, report.results, error=report.infrastructure_error
            )
            raise JudgeUnavailable(report.infrastructure_error, attempt_id=attempt_id)

        verdict = Verdict.PASSED if report.passed else Verdict.FAILED
        self._ledger.commit_verdict(attempt_id, verdict, report.results)
        return attempt_id

    def run(
        self,
        contest: Contest,
        contestant_id: str,
        problem_id: str,
        code: str,
        language: str,
    ) -> List[TestResult]:
        """Try code on the example test cases only. Never affects scoring."""
        request, problem = self._admit(contest, contestant_id, problem_id, code, language)
        attempt_id = None
        if self._config.persist_runs:
            attempt_id = self._ledger.record(
                contest, self._new_attempt(contest, contestant_id, request, ExecutionMode.RUN)
            )

        report = self._evaluate(request.code, request.language, problem.example_cases)
        if report.infrastructure_error:
            if attempt_id is not None:
                self._ledger.commit_verdict(
                    attempt_id, Verdict.FAILED, report.results, error=report.infrastructure_error
                )
            raise JudgeUnavailable(report.infrastructure_error, attempt_id=attempt_id)

        if attempt_id is not None:
            verdict = Verdict.PASSED if report.passed else Verdict.FAILED
            self._ledger.commit_verdict(attempt_id, verdict, report.results)
        return list(report.results)


__all__ = ["Judge", "SubmissionGate"]
