from datetime import timedelta

import pytest

from arena_core import ContestNotFound, ContestNotRunning, ContestRegistry, ValidationError
from conftest import T0, FakeClock


def _form(**overrides):
    form = {
        "title": "  Spring Cup ",
        "description": "Three problems, two hours",
        "startTime": (T0 + timedelta(hours=1)).isoformat(),
        "endTime": (T0 + timedelta(hours=3)).isoformat(),
        "problemIds": ["A", "B", "A"],
    }
    form.update(overrides)
    return form


@pytest.fixture
def registry(catalog):
    return ContestRegistry(catalog, now=FakeClock(T0))


def test_create_contest_normalises_form(registry):
    contest = registry.create(_form(), "organizer")
    assert contest.title == "Spring Cup"
    assert contest.problem_ids == ("A", "B")
    assert contest.created_by == "organizer"
    assert contest.contestants == frozenset()
    assert len(contest.room_code) == 6
    assert registry.get(contest.id) is contest


def test_room_codes_are_unique(registry):
    codes = {registry.create(_form(), "organizer").room_code for _ in range(20)}
    assert len(codes) == 20


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"problemIds": []},
        {"endTime": T0.isoformat()},
        {"startTime": (T0 - timedelta(minutes=1)).isoformat()},
        {"problemIds": ["A", "missing"]},
        {"startTime": "2026-03-01T11:00:00"},
    ],
)
def test_create_contest_rejects_invalid_forms(registry, overrides):
    with pytest.raises(ValidationError):
        registry.create(_form(**overrides), "organizer")
    assert registry.all() == []


def test_join_by_room_code_is_idempotent(registry):
    contest = registry.create(_form(), "organizer")
    joined = registry.join(contest.room_code.lower(), "alice")
    assert joined.is_registered("alice")
    again = registry.join(contest.room_code, "alice")
    assert again.contestants == frozenset({"alice"})
    assert registry.get(contest.id).contestants == frozenset({"alice"})


def test_join_unknown_room_code(registry):
    with pytest.raises(ContestNotFound):
        registry.join("NOPE42", "alice")


def test_join_after_end_is_refused(catalog):
    clock = FakeClock(T0)
    registry = ContestRegistry(catalog, now=clock)
    contest = registry.create(_form(), "organizer")
    clock.now = contest.end_time + timedelta(seconds=1)
    with pytest.raises(ContestNotRunning):
        registry.join(contest.room_code, "alice")


def test_get_unknown_contest(registry):
    with pytest.raises(ContestNotFound):
        registry.get("missing")
