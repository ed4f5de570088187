"""Type definitions for the JSON payloads exchanged with the web client."""
from __future__ import annotations

from typing import List, Optional, TypedDict


class ContestSummary(TypedDict, total=False):
    """A contest card on the contests list page."""
    id: str
    title: str
    description: str
    startTime: str  # ISO-8601 with offset
    endTime: str
    phase: str  # 'upcoming' | 'running' | 'finished'
    problemCount: int
    participants: int
    secondsRemaining: int
    # Only shown to the organizer who created the contest.
    roomCode: Optional[str]


class ContestListing(TypedDict):
    running: List[ContestSummary]
    upcoming: List[ContestSummary]
    finished: List[ContestSummary]


class ExamplePayload(TypedDict):
    input: str
    output: str


class ProblemSummary(TypedDict):
    id: str
    title: str
    difficulty: str
    examples: List[ExamplePayload]


class ProblemAttemptState(TypedDict, total=False):
    """The caller's own progress on one problem."""
    problemId: str
    solved: bool
    attempts: int  # scored submit attempts
    solveTimeMinutes: Optional[int]
    lastStatus: Optional[str]  # 'Accepted' | 'Wrong Answer' | 'Judge Error' | 'Pending'
    pending: bool


class ContestView(ContestSummary, total=False):
    """GET /contests/{id}: summary plus problems and own attempt state."""
    countdown: str  # 'HH:MM:SS' or 'Contest ended'
    problems: List[ProblemSummary]  # empty until the contest starts
    attempts: List[ProblemAttemptState]


# Functional form: "pass" is a Python keyword.
TestResultWire = TypedDict(
    "TestResultWire",
    {
        "input": str,
        "expected": str,
        "output": Optional[str],
        "pass": bool,
        "error": Optional[str],
    },
    total=False,
)


class RunResultPayload(TypedDict, total=False):
    passed: bool
    testResults: List[TestResultWire]
    error: Optional[str]


class SubmitResultPayload(TypedDict, total=False):
    attemptId: str
    status: str
    passed: bool
    passedCount: int
    totalCount: int
    # Example-case results only; hidden cases are never echoed back.
    testResults: List[TestResultWire]


class ProblemStat(TypedDict, total=False):
    problemId: str
    solved: bool
    attempts: int
    solveTimeMinutes: Optional[int]


class RankingEntry(TypedDict):
    rank: int
    contestantId: str
    problemsSolved: int
    penalty: int
    lastAcceptedAt: Optional[str]
    problemStats: List[ProblemStat]


class RankingsPayload(TypedDict, total=False):
    contestId: str
    status: str  # 'available' | 'not_available'
    message: Optional[str]
    problems: List[str]
    rankings: List[RankingEntry]


class SubmissionSummary(TypedDict):
    id: str
    problemId: str
    status: str
    language: str
    submittedAt: str
