"""Leaderboard: total ordering of contestant scores.

Comparator:
1. problems solved, descending
2. penalty minutes, ascending
3. time the current score was reached (latest accepted submission), ascending;
   contestants without any solve sort after those with one
4. contestant id, ascending (last-resort deterministic tie-break)

Ranks are 1-based positions in that order, so no two rows share a rank.
"""
from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from .clock import phase, utc_now
from .config import EngineConfig
from .ledger import AttemptLedger
from .models import Contest, ContestPhase
from .scoring import ContestantScore, ProblemScore, score_contest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingRow:
    rank: int
    contestant_id: str
    problems_solved: int
    penalty: int
    last_accepted_at: Optional[datetime]
    problems: tuple[ProblemScore, ...]


def _ranking_sort_key(score: ContestantScore) -> tuple[int, int, float, str]:
    reached = (
        score.last_accepted_at.timestamp()
        if score.last_accepted_at is not None
        else math.inf
    )
    return (-score.problems_solved, score.penalty, reached, score.contestant_id)


def compute_leaderboard(scores: Iterable[ContestantScore]) -> Tuple[RankingRow, ...]:
    """Sort scores into ranking rows. Pure and idempotent."""
    ordered = sorted(scores, key=_ranking_sort_key)
    return tuple(
        RankingRow(
            rank=position,
            contestant_id=score.contestant_id,
            problems_solved=score.problems_solved,
            penalty=score.penalty,
            last_accepted_at=score.last_accepted_at,
            problems=score.problems,
        )
        for position, score in enumerate(ordered, start=1)
    )


class LeaderboardBuilder:
    """Ranks a contest from the ledger, caching one snapshot per ledger version.

    Reads take no ledger lock. A snapshot computed while an attempt is still
    being judged simply omits it; the next ledger version recomputes.
    """

    def __init__(
        self,
        ledger: AttemptLedger,
        config: Optional[EngineConfig] = None,
        *,
        now=utc_now,
    ):
        self._ledger = ledger
        self._config = config or EngineConfig()
        self._now = now
        self._cache: Dict[str, Tuple[Tuple[int, int], Tuple[RankingRow, ...]]] = {}
        self._cache_lock = threading.Lock()

    def rank(self, contest: Contest) -> Tuple[RankingRow, ...]:
        if phase(contest, self._now()) is ContestPhase.UPCOMING:
            return ()
        # Roster only grows, so its size plus the ledger version identifies the input.
        version = (self._ledger.version(contest.id), len(contest.contestants))
        cached = self._cache.get(contest.id)
        if cached is not None and cached[0] == version:
            return cached[1]

        rows = compute_leaderboard(score_contest(contest, self._ledger, self._config))
        # Writers may have committed meanwhile; tag with the version read first so
        # the next call recomputes.
        with self._cache_lock:
            current = self._cache.get(contest.id)
            if current is None or current[0] <= version:
                self._cache[contest.id] = (version, rows)
        logger.debug(f"Leaderboard for {contest.id} recomputed at version {version[0]}")
        return rows

    def invalidate(self, contest_id: Optional[str] = None) -> None:
        with self._cache_lock:
            if contest_id is None:
                self._cache.clear()
            else:
                self._cache.pop(contest_id, None)


__all__ = ["RankingRow", "compute_leaderboard", "LeaderboardBuilder"]
