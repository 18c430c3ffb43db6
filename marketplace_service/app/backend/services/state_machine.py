"""
Transition tables for every status column in the marketplace.

Status values are plain strings in the database, but they are only ever
changed through ``transition`` so an illegal move fails loudly instead of
being written by whichever code path happened to touch the row.
"""
from enum import Enum
from typing import Dict, FrozenSet

from common.errors import InvalidTransitionError


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestStatus(str, Enum):
    PENDING = "pending"
    EMPLOYEE_ACCEPTED = "employee_accepted"
    IN_PROGRESS = "in_progress"
    PENDING_COMPLETION = "pending_completion"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class CompletionStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    CLOSED = "closed"
    NEEDS_REVISION = "needs_revision"


class StateMachine:
    def __init__(self, entity: str, transitions: Dict[Enum, FrozenSet[Enum]]):
        self.entity = entity
        self.transitions = transitions
        self.status_type = type(next(iter(transitions)))

    def can_transition(self, current: str, target: str) -> bool:
        current_status = self.status_type(current)
        return self.status_type(target) in self.transitions.get(current_status, frozenset())

    def transition(self, obj, target: Enum) -> None:
        current = obj.status
        if not self.can_transition(current, target.value):
            raise InvalidTransitionError(self.entity, current, target.value)
        obj.status = target.value


APPLICATION_MACHINE = StateMachine("application", {
    ApplicationStatus.PENDING: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.PENDING,
    }),
    # An owner edit sends a reviewed application back for another review
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.PENDING}),
    ApplicationStatus.REJECTED: frozenset({ApplicationStatus.PENDING}),
})

REQUEST_MACHINE = StateMachine("service request", {
    RequestStatus.PENDING: frozenset({RequestStatus.EMPLOYEE_ACCEPTED, RequestStatus.CANCELLED}),
    RequestStatus.EMPLOYEE_ACCEPTED: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.PENDING_COMPLETION, RequestStatus.CANCELLED}),
    RequestStatus.PENDING_COMPLETION: frozenset({RequestStatus.CLOSED, RequestStatus.IN_PROGRESS}),
    RequestStatus.CLOSED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
})

COMPLETION_MACHINE = StateMachine("completion", {
    CompletionStatus.PENDING_REVIEW: frozenset({CompletionStatus.CLOSED, CompletionStatus.NEEDS_REVISION}),
    CompletionStatus.CLOSED: frozenset(),
    CompletionStatus.NEEDS_REVISION: frozenset(),
})

ACTIVE_REQUEST_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.EMPLOYEE_ACCEPTED.value,
    RequestStatus.IN_PROGRESS.value,
    RequestStatus.PENDING_COMPLETION.value,
)
