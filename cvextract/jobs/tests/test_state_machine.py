"""Job status transition table."""
import pytest

from cvextract.jobs.errors import InvalidJobTransition
from cvextract.jobs.models import JobStatus, TERMINAL_STATUSES
from cvextract.jobs.state_machine import can_transition, ensure_transition_allowed, sources_for


def test_happy_path_transitions_allowed():
    ensure_transition_allowed(JobStatus.PENDING, JobStatus.PROCESSING)
    ensure_transition_allowed(JobStatus.PROCESSING, JobStatus.COMPLETED)
    ensure_transition_allowed(JobStatus.PROCESSING, JobStatus.RETRYING)
    ensure_transition_allowed(JobStatus.RETRYING, JobStatus.PROCESSING)


@pytest.mark.parametrize("terminal", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_statuses_have_no_exit(terminal):
    for target in JobStatus:
        assert not can_transition(terminal, target)


def test_invalid_transition_carries_both_statuses():
    with pytest.raises(InvalidJobTransition) as exc:
        ensure_transition_allowed("completed", "processing", job_id="j1")
    assert exc.value.from_status == "completed"
    assert exc.value.to_status == "processing"
    assert exc.value.code == "INVALID_TRANSITION"
    assert exc.value.job_id == "j1"


def test_pending_cannot_skip_to_completed():
    assert not can_transition(JobStatus.PENDING, JobStatus.COMPLETED)
    assert not can_transition(JobStatus.RETRYING, JobStatus.FAILED)


def test_sources_for_claim_and_cancel():
    assert sources_for(JobStatus.PROCESSING) == {JobStatus.PENDING, JobStatus.RETRYING}
    assert sources_for(JobStatus.CANCELLED) == {JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.RETRYING}
    assert sources_for(JobStatus.COMPLETED) == {JobStatus.PROCESSING}
