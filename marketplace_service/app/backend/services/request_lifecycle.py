"""
Service request lifecycle.

Every operation loads the request row for update, applies exactly one
REQUEST_MACHINE transition plus its side effects and commits once. Any
error rolls the whole step back.
"""
import logging
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from common.config.settings import COMMISSION_RATE
from common.errors import NotFoundError, ForbiddenError, ValidationError, ConflictError
from common.security.validation import clean_text
from user_service.app.backend.repositories import user_repository
from ..models.ServiceRequest import ServiceRequest, ServiceCompletion
from ..models.Transaction import Transaction
from ..repositories import request_repository, published_service_repository, chat_repository, coach_repository
from . import notifications
from .notifications import notify
from .state_machine import REQUEST_MACHINE, COMPLETION_MACHINE, RequestStatus, CompletionStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def split_payment(amount) -> Tuple[Decimal, Decimal]:
    """Returns (commission, employee_earnings); the two always add up to amount."""
    amount = Decimal(str(amount)).quantize(CENT)
    commission = (amount * COMMISSION_RATE).quantize(CENT, rounding=ROUND_HALF_UP)
    return commission, amount - commission


@contextmanager
def _unit_of_work(db: Session):
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def _lock_request(db: Session, request_id: int) -> ServiceRequest:
    service_request = request_repository.get_request_for_update(db, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found")
    return service_request


def _require_actor(actual_id: int, expected_id: int):
    if actual_id != expected_id:
        raise ForbiddenError("Unauthorized")


def create(db: Session, requester_id: int, published_service_id: int, service_details: str) -> ServiceRequest:
    details = clean_text(service_details, "Service details")

    service = published_service_repository.get_service_by_id(db, published_service_id)
    if service is None:
        raise NotFoundError("Service not found")
    if service.employee_id == requester_id:
        raise ValidationError("You cannot request your own service")

    service_request = request_repository.add_request(db, service, requester_id, details)
    with _unit_of_work(db):
        notify(
            db,
            service.employee_id,
            notifications.REQUEST_RECEIVED,
            "New service request",
            f"You have a new request for \"{service.title}\"",
            related_entity_id=service_request.id,
        )
    return service_request


def accept(db: Session, employee_id: int, request_id: int, employee_response: Optional[str] = None) -> ServiceRequest:
    response = clean_text(employee_response, "Employee response", required=False)
    with _unit_of_work(db):
        service_request = _lock_request(db, request_id)
        _require_actor(employee_id, service_request.employee_user_id)
        REQUEST_MACHINE.transition(service_request, RequestStatus.EMPLOYEE_ACCEPTED)
        service_request.employee_response = response
        service_request.accepted_at = func.now()
        notify(
            db,
            service_request.requester_user_id,
            notifications.REQUEST_ACCEPTED,
            "Request accepted",
            "Your service request was accepted. Confirm it to start the service.",
            related_entity_id=service_request.id,
        )
    return service_request


def reject(db: Session, employee_id: int, request_id: int, reason: Optional[str] = None) -> ServiceRequest:
    response = clean_text(reason, "Reason", required=False)
    with _unit_of_work(db):
        service_request = _lock_request(db, request_id)
        _require_actor(employee_id, service_request.employee_user_id)
        if service_request.status != RequestStatus.PENDING.value:
            raise ConflictError("Only pending requests can be rejected", current_status=service_request.status)
        REQUEST_MACHINE.transition(service_request, RequestStatus.CANCELLED)
        service_request.employee_response = response
        service_request.cancelled_at = func.now()
        notify(
            db,
            service_request.requester_user_id,
            notifications.REQUEST_REJECTED,
            "Request rejected",
            "Your service request was declined by the coach.",
            related_entity_id=service_request.id,
        )
    return service_request


def confirm(db: Session, requester_id: int, request_id: int) -> ServiceRequest:
    with _unit_of_work(db):
        service_request = _lock_request(db, request_id)
        _require_actor(requester_id, service_request.requester_user_id)
        REQUEST_MACHINE.transition(service_request, RequestStatus.IN_PROGRESS)
        service_request.started_at = func.now()
        chat_repository.open_chat(db, service_request.id)
        notify(
            db,
            service_request.employee_user_id,
            notifications.SERVICE_STARTED,
            "Service started",
            "The requester confirmed. The chat is now open.",
            related_entity_id=service_request.id,
        )
    return service_request


def complete(db: Session, employee_id: int, request_id: int, completion_notes: Optional[str] = None) -> ServiceCompletion:
    notes = clean_text(completion_notes, "Completion notes", required=False)
    with _unit_of_work(db):
        service_request = _lock_request(db, request_id)
        _require_actor(employee_id, service_request.employee_user_id)
        REQUEST_MACHINE.transition(service_request, RequestStatus.PENDING_COMPLETION)
        service_request.completed_at = func.now()
        completion = request_repository.add_completion(db, service_request.id, notes)
        notify(
            db,
            service_request.requester_user_id,
            notifications.COMPLETION_REQUESTED,
            "Completion submitted",
            "The coach marked your service as completed. An administrator will review it.",
            related_entity_id=service_request.id,
        )
    return completion


def cancel(db: Session, user_id: int, request_id: int) -> ServiceRequest:
    with _unit_of_work(db):
        service_request = _lock_request(db, request_id)
        participants = (service_request.requester_user_id, service_request.employee_user_id)
        if user_id not in participants:
            raise ForbiddenError("Unauthorized")
        REQUEST_MACHINE.transition(service_request, RequestStatus.CANCELLED)
        service_request.cancelled_at = func.now()
        chat_repository.archive_chat_for_request(db, service_request.id)

        counterparty = participants[1] if user_id == participants[0] else participants[0]
        notify(
            db,
            counterparty,
            notifications.REQUEST_CANCELLED,
            "Request cancelled",
            "A service request you take part in was cancelled.",
            related_entity_id=service_request.id,
        )
    return service_request


def _lock_reviewable_completion(db: Session, completion_id: int) -> ServiceCompletion:
    completion = request_repository.get_completion_for_update(db, completion_id)
    if completion is None:
        raise NotFoundError("Completion not found")
    # Approving twice would pay the employee twice
    if completion.status != CompletionStatus.PENDING_REVIEW.value:
        raise ConflictError("Completion has already been reviewed", current_status=completion.status)
    return completion


def approve_completion(
    db: Session,
    admin_id: int,
    completion_id: int,
    admin_notes: Optional[str] = None,
) -> Tuple[ServiceCompletion, ServiceRequest, Transaction]:
    notes = clean_text(admin_notes, "Admin notes", required=False)
    with _unit_of_work(db):
        completion = _lock_reviewable_completion(db, completion_id)
        service_request = _lock_request(db, completion.service_request_id)

        REQUEST_MACHINE.transition(service_request, RequestStatus.CLOSED)
        COMPLETION_MACHINE.transition(completion, CompletionStatus.CLOSED)

        commission, earnings = split_payment(service_request.amount)
        transaction = request_repository.add_transaction(db, service_request, service_request.amount, commission)
        user_repository.credit_wallet(db, service_request.employee_user_id, earnings)
        coach_repository.increment_completed_services(db, service_request.employee_user_id)

        completion.admin_review_notes = notes
        completion.reviewed_by_admin = admin_id
        completion.reviewed_at = func.now()
        completion.closed_at = func.now()
        service_request.closed_at = func.now()
        chat_repository.archive_chat_for_request(db, service_request.id)

        notify(
            db,
            service_request.employee_user_id,
            notifications.PAYMENT_RECEIVED,
            "Payment received",
            f"You earned ${earnings} for request #{service_request.id}",
            related_entity_id=service_request.id,
        )
        notify(
            db,
            service_request.requester_user_id,
            notifications.SERVICE_COMPLETED,
            "Service completed",
            "Your service was completed. You can now leave a review.",
            related_entity_id=service_request.id,
        )

    logger.info(
        "Request %s closed by admin %s: amount %s, commission %s, earnings %s",
        service_request.id, admin_id, service_request.amount, commission, earnings,
    )
    return completion, service_request, transaction


def reopen_completion(
    db: Session,
    admin_id: int,
    completion_id: int,
    admin_notes: Optional[str] = None,
) -> Tuple[ServiceCompletion, ServiceRequest]:
    notes = clean_text(admin_notes, "Admin notes", required=False)
    with _unit_of_work(db):
        completion = _lock_reviewable_completion(db, completion_id)
        service_request = _lock_request(db, completion.service_request_id)

        REQUEST_MACHINE.transition(service_request, RequestStatus.IN_PROGRESS)
        COMPLETION_MACHINE.transition(completion, CompletionStatus.NEEDS_REVISION)
        service_request.completed_at = None

        completion.admin_review_notes = notes
        completion.reviewed_by_admin = admin_id
        completion.reviewed_at = func.now()

        notify(
            db,
            service_request.employee_user_id,
            notifications.SERVICE_REOPENED,
            "Service reopened",
            "An administrator sent your completion back for more work.",
            related_entity_id=service_request.id,
        )
    return completion, service_request
