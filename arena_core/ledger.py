"""Attempt ledger: the single source of truth for contest submissions.

Every attempt is keyed by its (contest, contestant, problem) triple. The ledger
holds one lock per triple; admission (record) and verdict commit each run as a
short read-check-write under that lock, so unrelated triples never wait on each
other. Judging happens outside the ledger entirely.

Reads (history, counts, snapshots) take no triple lock. A reader that races an
in-flight attempt simply does not see its verdict yet.

Invariants: a triple holds at most one SUBMIT attempt with verdict PASSED and
at most one PENDING SUBMIT attempt. SUBMIT verdicts are therefore committed in
admission order. Attempts are never removed. A PASSED commit that would break
the first invariant is stored as FAILED, queued for operator review
(``flagged()``) and reported as DuplicateSubmitError.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .clock import phase, utc_now
from .errors import ContestClosedError, DuplicateSubmitError, SubmissionPending
from .models import (
    Attempt,
    AttemptId,
    Contest,
    ContestPhase,
    ExecutionMode,
    TestResult,
    Verdict,
)

logger = logging.getLogger(__name__)

REJECTED_DUPLICATE_ERROR = "rejected: problem already accepted"

TripleKey = Tuple[str, str, str]


class AttemptLedger:
    """In-memory, thread-safe attempt store."""

    def __init__(self, now: Callable[[], datetime] = utc_now):
        self._now = now
        # Guards the shared indexes below; held only for dict/list updates.
        self._index_lock = threading.Lock()
        self._triple_locks: Dict[TripleKey, threading.Lock] = {}
        self._attempts: Dict[AttemptId, Attempt] = {}
        self._by_triple: Dict[TripleKey, List[AttemptId]] = {}
        self._by_contest: Dict[str, List[AttemptId]] = {}
        self._accepted: Dict[TripleKey, AttemptId] = {}
        # Pending SUBMIT attempts only; runs never hold back rankings.
        self._pending: Dict[str, Set[AttemptId]] = {}
        self._pending_by_triple: Dict[TripleKey, AttemptId] = {}
        self._versions: Dict[str, int] = {}
        self._flagged: List[Attempt] = []
        self._sequence = itertools.count(1)

    def _lock_for(self, key: TripleKey) -> threading.Lock:
        lock = self._triple_locks.get(key)
        if lock is None:
            with self._index_lock:
                lock = self._triple_locks.setdefault(key, threading.Lock())
        return lock

    def _bump(self, contest_id: str) -> None:
        self._versions[contest_id] = self._versions.get(contest_id, 0) + 1

    # ==================== WRITES ====================

    def record(self, contest: Contest, attempt: Attempt) -> AttemptId:
        """Append ``attempt`` to the ledger.

        The attempt may be PENDING (an admission reservation finalised later via
        commit_verdict) or already final.

        Raises:
            ContestClosedError: contest is not RUNNING on the ledger clock now.
            DuplicateSubmitError: SUBMIT attempt for a triple already accepted.
            SubmissionPending: SUBMIT attempt while another one for the triple
                is still being judged.
        """
        if attempt.contest_id != contest.id:
            raise ValueError(
                f"attempt belongs to contest {attempt.contest_id}, not {contest.id}"
            )
        key = attempt.triple
        with self._lock_for(key):
            current_phase = phase(contest, self._now())
            if current_phase is not ContestPhase.RUNNING:
                raise ContestClosedError(
                    f"contest {contest.id} is {current_phase.value}",
                    contest_id=contest.id,
                    phase=current_phase.value,
                )
            if attempt.mode is ExecutionMode.SUBMIT and key in self._accepted:
                raise DuplicateSubmitError(
                    f"problem {attempt.problem_id} already accepted",
                    attempt_id=self._accepted[key],
                )
            if attempt.mode is ExecutionMode.SUBMIT and key in self._pending_by_triple:
                raise SubmissionPending(
                    f"problem {attempt.problem_id} has a submission still being judged",
                    attempt_id=self._pending_by_triple[key],
                )
            with self._index_lock:
                if attempt.id in self._attempts:
                    raise ValueError(f"attempt id {attempt.id} already recorded")
                stored = replace(attempt, sequence=next(self._sequence))
                self._attempts[stored.id] = stored
                self._by_triple.setdefault(key, []).append(stored.id)
                self._by_contest.setdefault(stored.contest_id, []).append(stored.id)
                if stored.mode is ExecutionMode.SUBMIT:
                    if not stored.is_final:
                        self._pending.setdefault(stored.contest_id, set()).add(stored.id)
                        self._pending_by_triple[key] = stored.id
                    elif stored.is_accepted_submit:
                        self._accepted[key] = stored.id
                    self._bump(stored.contest_id)
        logger.debug(
            f"Recorded {stored.mode.value} attempt {stored.id} "
            f"({stored.contestant_id}/{stored.problem_id}) verdict={stored.verdict.value}"
        )
        return stored.id

    def commit_verdict(
        self,
        attempt_id: AttemptId,
        verdict: Verdict,
        results: Iterable[TestResult] = (),
        error: Optional[str] = None,
    ) -> Attempt:
        """Finalise a pending attempt. Each attempt is committed exactly once."""
        if verdict is Verdict.PENDING:
            raise ValueError("cannot commit a pending verdict")
        attempt = self.get(attempt_id)
        key = attempt.triple
        with self._lock_for(key):
            current = self._attempts.get(attempt_id)
            if current is None or current.is_final:
                raise ValueError(f"attempt {attempt_id} is not pending")
            final = replace(current, verdict=verdict, results=tuple(results), error=error)

            if final.is_accepted_submit and key in self._accepted:
                rejected = replace(
                    final, verdict=Verdict.FAILED, error=REJECTED_DUPLICATE_ERROR
                )
                with self._index_lock:
                    self._store_final(rejected)
                    self._flagged.append(final)
                logger.error(
                    f"Second accepted submission {attempt_id} for {key} rejected; "
                    f"kept {self._accepted[key]}. Flagged for operator review."
                )
                raise DuplicateSubmitError(
                    f"problem {final.problem_id} already accepted",
                    attempt_id=self._accepted[key],
                )

            with self._index_lock:
                self._store_final(final)
                if final.is_accepted_submit:
                    self._accepted[key] = attempt_id
        logger.info(
            f"Committed {final.mode.value} attempt {attempt_id} "
            f"({final.contestant_id}/{final.problem_id}): {final.verdict.value}"
        )
        return final

    def _store_final(self, attempt: Attempt) -> None:
        self._attempts[attempt.id] = attempt
        if attempt.mode is ExecutionMode.SUBMIT:
            self._pending.get(attempt.contest_id, set()).discard(attempt.id)
            if self._pending_by_triple.get(attempt.triple) == attempt.id:
                del self._pending_by_triple[attempt.triple]
            self._bump(attempt.contest_id)

    # ==================== READS ====================

    def get(self, attempt_id: AttemptId) -> Attempt:
        try:
            return self._attempts[attempt_id]
        except KeyError:
            raise KeyError(f"unknown attempt {attempt_id}") from None

    def _resolve(self, ids: Iterable[AttemptId]) -> Tuple[Attempt, ...]:
        resolved = []
        for attempt_id in list(ids):
            attempt = self._attempts.get(attempt_id)
            if attempt is not None:
                resolved.append(attempt)
        return tuple(resolved)

    def history(
        self, contest_id: str, contestant_id: str, problem_id: str
    ) -> Tuple[Attempt, ...]:
        """All attempts of a triple in admission order, pending ones included."""
        return self._resolve(self._by_triple.get((contest_id, contestant_id, problem_id), ()))

    def attempts_for(
        self, contest_id: str, contestant_id: Optional[str] = None
    ) -> Tuple[Attempt, ...]:
        attempts = self._resolve(self._by_contest.get(contest_id, ()))
        if contestant_id is None:
            return attempts
        return tuple(a for a in attempts if a.contestant_id == contestant_id)

    def accepted_attempt(
        self, contest_id: str, contestant_id: str, problem_id: str
    ) -> Optional[Attempt]:
        attempt_id = self._accepted.get((contest_id, contestant_id, problem_id))
        if attempt_id is None:
            return None
        return self._attempts.get(attempt_id)

    def first_accepted_submit_time(
        self, contest_id: str, contestant_id: str, problem_id: str
    ) -> Optional[datetime]:
        accepted = self.accepted_attempt(contest_id, contestant_id, problem_id)
        return accepted.submitted_at if accepted is not None else None

    def submit_attempt_count(
        self,
        contest_id: str,
        contestant_id: str,
        problem_id: str,
        *,
        include_judge_failures: bool = True,
    ) -> int:
        """Committed SUBMIT attempts regardless of verdict.

        Only attempts admitted up to and including the accepted one are counted.
        """
        accepted = self.accepted_attempt(contest_id, contestant_id, problem_id)
        count = 0
        for attempt in self.history(contest_id, contestant_id, problem_id):
            if attempt.mode is not ExecutionMode.SUBMIT or not attempt.is_final:
                continue
            if accepted is not None and attempt.sequence > accepted.sequence:
                continue
            if attempt.error == REJECTED_DUPLICATE_ERROR:
                continue
            if attempt.is_judge_failure and not include_judge_failures:
                continue
            count += 1
        return count

    def pending_count(self, contest_id: str) -> int:
        return len(self._pending.get(contest_id, ()))

    def version(self, contest_id: str) -> int:
        """Monotonic counter bumped on every SUBMIT record or commit."""
        return self._versions.get(contest_id, 0)

    def flagged(self) -> Tuple[Attempt, ...]:
        """Attempts rejected post-hoc as invariant violations."""
        return tuple(self._flagged)


__all__ = ["AttemptLedger", "TripleKey"]
