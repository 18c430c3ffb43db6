import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..repositories import notification_repository

logger = logging.getLogger(__name__)

REQUEST_RECEIVED = "request_received"
REQUEST_ACCEPTED = "request_accepted"
REQUEST_REJECTED = "request_rejected"
SERVICE_STARTED = "service_started"
COMPLETION_REQUESTED = "completion_requested"
PAYMENT_RECEIVED = "payment_received"
SERVICE_COMPLETED = "service_completed"
SERVICE_REOPENED = "service_reopened"
REQUEST_CANCELLED = "request_cancelled"
APPLICATION_APPROVED = "application_approved"
APPLICATION_REJECTED = "application_rejected"


def notify(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_entity_id: Optional[int] = None,
    related_entity_type: str = "service_request",
) -> bool:
    """
    Inserts a notification inside a savepoint of the caller's transaction.

    A failed insert rolls back the savepoint only and is logged; the
    surrounding operation carries on. The caller's pending changes are
    flushed first so their errors reach the caller.
    """
    db.flush()
    try:
        with db.begin_nested():
            notification_repository.add_notification(
                db,
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
            )
        return True
    except SQLAlchemyError:
        logger.exception("Failed to create %s notification for user %s", notification_type, user_id)
        return False
