import pytest

from common.errors import InvalidTransitionError
from marketplace_service.app.backend.services.state_machine import (
    APPLICATION_MACHINE,
    REQUEST_MACHINE,
    COMPLETION_MACHINE,
    ApplicationStatus,
    RequestStatus,
    CompletionStatus,
)


class Row:
    def __init__(self, status):
        self.status = status


@pytest.mark.parametrize("current, target", [
    ("pending", RequestStatus.EMPLOYEE_ACCEPTED),
    ("employee_accepted", RequestStatus.IN_PROGRESS),
    ("in_progress", RequestStatus.PENDING_COMPLETION),
    ("pending_completion", RequestStatus.CLOSED),
    ("pending_completion", RequestStatus.IN_PROGRESS),
    ("pending", RequestStatus.CANCELLED),
    ("employee_accepted", RequestStatus.CANCELLED),
    ("in_progress", RequestStatus.CANCELLED),
])
def test_allowed_request_transitions(current, target):
    row = Row(current)
    REQUEST_MACHINE.transition(row, target)
    assert row.status == target.value


@pytest.mark.parametrize("current, target", [
    ("pending", RequestStatus.IN_PROGRESS),
    ("pending", RequestStatus.CLOSED),
    ("employee_accepted", RequestStatus.PENDING_COMPLETION),
    ("in_progress", RequestStatus.CLOSED),
    ("pending_completion", RequestStatus.CANCELLED),
    ("closed", RequestStatus.IN_PROGRESS),
    ("cancelled", RequestStatus.PENDING),
])
def test_rejected_request_transitions(current, target):
    row = Row(current)
    with pytest.raises(InvalidTransitionError) as excinfo:
        REQUEST_MACHINE.transition(row, target)
    assert row.status == current
    assert excinfo.value.extra["current_status"] == current
    assert excinfo.value.status_code == 409


def test_application_edits_return_to_pending():
    for current in ("pending", "approved", "rejected"):
        assert APPLICATION_MACHINE.can_transition(current, ApplicationStatus.PENDING.value)
    assert not APPLICATION_MACHINE.can_transition("approved", ApplicationStatus.REJECTED.value)
    assert not APPLICATION_MACHINE.can_transition("rejected", ApplicationStatus.APPROVED.value)


def test_completion_reviewed_once():
    row = Row("pending_review")
    COMPLETION_MACHINE.transition(row, CompletionStatus.CLOSED)
    with pytest.raises(InvalidTransitionError):
        COMPLETION_MACHINE.transition(row, CompletionStatus.CLOSED)
