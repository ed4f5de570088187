import threading
from datetime import timedelta

import pytest

from arena_core import (
    AlreadyAccepted,
    ContestNotRunning,
    EngineConfig,
    ExecutionMode,
    JudgeUnavailable,
    NotRegistered,
    ProblemNotInContest,
    SubmissionGate,
    SubmissionPending,
    ValidationError,
    Verdict,
)
from arena_core.scoring import score_contestant
from conftest import T0, ScriptedJudge


@pytest.fixture
def gate(ledger, catalog, judge, clock):
    gate = SubmissionGate(ledger, catalog, judge, EngineConfig(), now=clock)
    yield gate
    gate.close()


def test_submit_judges_all_test_cases_and_records_verdict(gate, ledger, judge, contest):
    attempt_id = gate.submit(contest, "alice", "A", "correct solution", "python")

    attempt = ledger.get(attempt_id)
    assert attempt.mode is ExecutionMode.SUBMIT
    assert attempt.verdict is Verdict.PASSED
    assert len(attempt.results) == 3
    _, _, cases = judge.calls[-1]
    assert {c.example for c in cases} == {True, False}


def test_wrong_then_accepted_then_already_accepted(gate, ledger, contest):
    wrong = gate.submit(contest, "alice", "A", "print('nope')", "python")
    assert ledger.get(wrong).verdict is Verdict.FAILED
    gate.submit(contest, "alice", "A", "correct", "python")

    with pytest.raises(AlreadyAccepted):
        gate.submit(contest, "alice", "A", "correct", "python")
    assert ledger.submit_attempt_count(contest.id, "alice", "A") == 2


def test_resubmitting_identical_code_after_acceptance_never_scores_twice(gate, ledger, contest):
    gate.submit(contest, "alice", "A", "correct", "python")
    for _ in range(3):
        with pytest.raises(AlreadyAccepted):
            gate.submit(contest, "alice", "A", "correct", "python")
    accepted = [a for a in ledger.history(contest.id, "alice", "A") if a.is_accepted_submit]
    assert len(accepted) == 1


def test_run_uses_example_cases_only_and_never_scores(gate, ledger, judge, contest):
    gate.submit(contest, "alice", "A", "correct", "python")
    before = score_contestant(contest, ledger, "alice")

    results = gate.run(contest, "alice", "A", "correct again", "python")

    assert [r.input for r in results] == ["ex0"]
    _, _, cases = judge.calls[-1]
    assert all(c.example for c in cases)
    run_attempts = [a for a in ledger.history(contest.id, "alice", "A") if a.mode is ExecutionMode.RUN]
    assert len(run_attempts) == 1
    assert score_contestant(contest, ledger, "alice") == before


def test_runs_do_not_block_first_submission(gate, ledger, contest):
    for _ in range(3):
        gate.run(contest, "alice", "B", "correct", "python")
    gate.submit(contest, "alice", "B", "correct", "python")
    assert ledger.first_accepted_submit_time(contest.id, "alice", "B") is not None
    assert ledger.submit_attempt_count(contest.id, "alice", "B") == 1


def test_runs_can_stay_ephemeral(ledger, catalog, judge, clock, contest):
    gate = SubmissionGate(ledger, catalog, judge, EngineConfig(persist_runs=False), now=clock)
    try:
        gate.run(contest, "alice", "A", "correct", "python")
    finally:
        gate.close()
    assert ledger.history(contest.id, "alice", "A") == ()


@pytest.mark.parametrize(
    "code, language",
    [("", "python"), ("   \n", "python"), ("correct", "cobol")],
)
def test_validation_errors_create_no_ledger_entries(gate, ledger, contest, code, language):
    with pytest.raises(ValidationError):
        gate.submit(contest, "alice", "A", code, language)
    assert ledger.history(contest.id, "alice", "A") == ()


def test_problem_must_belong_to_contest(gate, ledger, contest):
    with pytest.raises(ProblemNotInContest):
        gate.submit(contest, "alice", "C", "correct", "python")
    assert ledger.attempts_for(contest.id) == ()


def test_contestant_must_be_registered(gate, contest):
    with pytest.raises(NotRegistered):
        gate.run(contest, "mallory", "A", "correct", "python")


def test_submissions_outside_the_window_are_rejected(gate, ledger, clock, contest):
    clock.now = T0 - timedelta(seconds=1)
    with pytest.raises(ContestNotRunning):
        gate.submit(contest, "alice", "A", "correct", "python")
    clock.now = contest.end_time + timedelta(seconds=1)
    with pytest.raises(ContestNotRunning):
        gate.run(contest, "alice", "A", "correct", "python")
    assert ledger.attempts_for(contest.id) == ()


@pytest.mark.parametrize("code", ["boom", "crash"])
def test_judge_failure_is_recorded_as_failed_attempt(gate, ledger, contest, code):
    with pytest.raises(JudgeUnavailable) as excinfo:
        gate.submit(contest, "alice", "A", code, "python")

    assert excinfo.value.retryable is True
    attempt = ledger.get(excinfo.value.attempt_id)
    assert attempt.verdict is Verdict.FAILED
    assert attempt.error
    assert ledger.pending_count(contest.id) == 0
    # The contestant may resubmit; the uniqueness check is not tripped.
    gate.submit(contest, "alice", "A", "correct", "python")


def test_judge_timeout_is_bounded(ledger, catalog, judge, clock, contest):
    gate = SubmissionGate(
        ledger, catalog, judge, EngineConfig(judge_timeout_seconds=0.05), now=clock
    )
    try:
        with pytest.raises(JudgeUnavailable) as excinfo:
            gate.submit(contest, "alice", "A", "slow", "python")
        # The timed-out call keeps its worker until the judge returns.
        assert gate.stuck_judge_calls == 1
    finally:
        gate.close()
    attempt = ledger.get(excinfo.value.attempt_id)
    assert attempt.verdict is Verdict.FAILED
    assert "timed out" in attempt.error


def test_concurrent_submits_for_same_triple_accept_exactly_once(ledger, catalog, clock, contest):
    judge = ScriptedJudge(delay=0.05)
    gate = SubmissionGate(ledger, catalog, judge, EngineConfig(judge_workers=16), now=clock)
    outcomes = []
    outcomes_lock = threading.Lock()
    start = threading.Barrier(10)

    def worker():
        start.wait()
        try:
            gate.submit(contest, "alice", "A", "correct", "python")
            result = "accepted"
        except (AlreadyAccepted, SubmissionPending):
            result = "rejected"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    gate.close()

    assert outcomes.count("accepted") == 1
    assert outcomes.count("rejected") == 9
    accepted = [a for a in ledger.history(contest.id, "alice", "A") if a.is_accepted_submit]
    assert len(accepted) == 1
    assert ledger.pending_count(contest.id) == 0


def test_different_triples_proceed_in_parallel(ledger, catalog, clock, contest):
    judge = ScriptedJudge(delay=0.05)
    gate = SubmissionGate(ledger, catalog, judge, EngineConfig(judge_workers=8), now=clock)
    jobs = [("alice", "A"), ("alice", "B"), ("bob", "A"), ("bob", "B")]
    threads = [
        threading.Thread(target=gate.submit, args=(contest, who, problem, "correct", "python"))
        for who, problem in jobs
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    gate.close()

    for who, problem in jobs:
        assert ledger.first_accepted_submit_time(contest.id, who, problem) is not None
