"""Contest registry and problem catalog.

Contests are frozen records; joining replaces the stored record with a copy
whose roster includes the new contestant. Problem content is read-only here.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Union

from .clock import phase, utc_now
from .errors import ContestNotFound, ContestNotRunning, ValidationError
from .models import Contest, ContestPhase, Problem
from .validation import ContestCreateRequest, InputSanitizer

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6


class ProblemCatalog(Protocol):
    def get_problem(self, problem_id: str) -> Problem:
        """Return the problem or raise KeyError."""
        ...


class InMemoryProblemCatalog:
    def __init__(self, problems: Iterable[Problem] = ()):
        self._problems: Dict[str, Problem] = {p.id: p for p in problems}

    def add(self, problem: Problem) -> None:
        self._problems[problem.id] = problem

    def get_problem(self, problem_id: str) -> Problem:
        return self._problems[problem_id]

    def __contains__(self, problem_id: object) -> bool:
        return problem_id in self._problems


class ContestRegistry:
    def __init__(self, catalog: ProblemCatalog, *, now: Callable[[], datetime] = utc_now):
        self._catalog = catalog
        self._now = now
        self._lock = threading.Lock()
        self._contests: Dict[str, Contest] = {}
        self._by_room: Dict[str, str] = {}

    def _new_room_code(self) -> str:
        while True:
            code = uuid.uuid4().hex[:ROOM_CODE_LENGTH].upper()
            if code not in self._by_room:
                return code

    def create(
        self,
        request: Union[ContestCreateRequest, Dict[str, Any]],
        organizer_id: Optional[str] = None,
    ) -> Contest:
        """Create a contest scheduled in the future.

        Raises:
            ValidationError: malformed form, start in the past, unknown problem
        """
        if not isinstance(request, ContestCreateRequest):
            request = InputSanitizer.validate_contest(request)
        if request.startTime <= self._now():
            raise ValidationError("Start time must be in the future")
        for problem_id in request.problemIds:
            try:
                self._catalog.get_problem(problem_id)
            except KeyError:
                raise ValidationError(f"Unknown problem {problem_id}") from None

        with self._lock:
            contest = Contest(
                id=str(uuid.uuid4()),
                title=request.title,
                description=request.description,
                start_time=request.startTime,
                end_time=request.endTime,
                problem_ids=tuple(request.problemIds),
                room_code=self._new_room_code(),
                created_by=organizer_id,
            )
            self._store(contest)
        logger.info(
            f"Contest {contest.id} '{contest.title}' created by {organizer_id} "
            f"(room {contest.room_code}, {len(contest.problem_ids)} problems)"
        )
        return contest

    def _store(self, contest: Contest) -> None:
        self._contests[contest.id] = contest
        self._by_room[contest.room_code] = contest.id

    def add(self, contest: Contest) -> Contest:
        """Register an externally built contest (imports, fixtures)."""
        with self._lock:
            if contest.room_code in self._by_room and self._by_room[contest.room_code] != contest.id:
                raise ValidationError(f"room code {contest.room_code} already in use")
            self._store(contest)
        return contest

    def get(self, contest_id: str) -> Contest:
        try:
            return self._contests[contest_id]
        except KeyError:
            raise ContestNotFound(f"contest {contest_id} not found") from None

    def all(self) -> List[Contest]:
        return list(self._contests.values())

    def join(self, room_code: str, contestant_id: str) -> Contest:
        """Add ``contestant_id`` to the roster of the contest behind ``room_code``.

        Joining is allowed before and during the contest, and is idempotent.
        """
        code = InputSanitizer.sanitize_room_code(room_code)
        with self._lock:
            contest_id = self._by_room.get(code)
            if contest_id is None:
                raise ContestNotFound("Invalid room ID")
            contest = self._contests[contest_id]
            if phase(contest, self._now()) is ContestPhase.FINISHED:
                raise ContestNotRunning("Contest has already ended", contest_id=contest_id)
            if contest.is_registered(contestant_id):
                return contest
            contest = replace(contest, contestants=contest.contestants | {contestant_id})
            self._contests[contest_id] = contest
        logger.info(f"Contestant {contestant_id} joined contest {contest_id}")
        return contest


__all__ = ["ProblemCatalog", "InMemoryProblemCatalog", "ContestRegistry"]
