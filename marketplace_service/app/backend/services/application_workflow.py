import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from common.errors import NotFoundError, ForbiddenError, ValidationError
from common.security.validation import clean_text, validate_price
from user_service.app.backend.repositories import user_repository
from ..models.ServiceApplication import ServiceApplication
from ..repositories import application_repository, coach_repository, game_repository, published_service_repository
from .notifications import notify, APPLICATION_APPROVED, APPLICATION_REJECTED
from .state_machine import APPLICATION_MACHINE, ApplicationStatus

logger = logging.getLogger(__name__)


def _clean_fields(title: str, description: str, price):
    return (
        clean_text(title, "Title"),
        clean_text(description, "Description"),
        validate_price(price),
    )


def submit(db: Session, user_id: int, game_id: int, title: str, description: str, price) -> ServiceApplication:
    safe_title, safe_description, safe_price = _clean_fields(title, description, price)
    if game_repository.get_game_by_id(db, game_id) is None:
        raise NotFoundError("Game not found")
    return application_repository.add_application(db, user_id, game_id, safe_title, safe_description, safe_price)


def edit(db: Session, user_id: int, application_id: int, title: str, description: str, price) -> ServiceApplication:
    """Owner edit. Any edit sends the application back to review; admin notes stay for history."""
    safe_title, safe_description, safe_price = _clean_fields(title, description, price)

    application = application_repository.get_application_for_update(db, application_id)
    if application is None:
        raise NotFoundError("Application not found")
    if application.user_id != user_id:
        raise ForbiddenError("Unauthorized")

    try:
        APPLICATION_MACHINE.transition(application, ApplicationStatus.PENDING)
        application.title = safe_title
        application.description = safe_description
        application.price = safe_price
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    return application


def approve(db: Session, application_id: int, admin_id: int, admin_notes: Optional[str] = None) -> ServiceApplication:
    application = application_repository.get_application_for_update(db, application_id)
    if application is None:
        raise NotFoundError("Application not found")
    notes = clean_text(admin_notes, "Admin notes", required=False)
    if game_repository.get_game_by_id(db, application.game_id) is None:
        raise ValidationError("Game is no longer available")

    # Status, listing, employee flag and profile land together or not at all
    try:
        APPLICATION_MACHINE.transition(application, ApplicationStatus.APPROVED)
        application.admin_notes = notes
        application.reviewed_by = admin_id
        application.reviewed_at = func.now()

        service = published_service_repository.publish_from_application(db, application)

        applicant = user_repository.get_user_by_id(db, application.user_id)
        user_repository.mark_as_employee(db, applicant)
        coach_repository.ensure_profile(db, applicant.id)

        notify(
            db,
            applicant.id,
            APPLICATION_APPROVED,
            "Application approved",
            f"Your service \"{application.title}\" is now published",
            related_entity_id=service.id,
            related_entity_type="published_service",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Application %s approved by admin %s, listing %s", application_id, admin_id, service.id)
    db.refresh(application)
    return application


def reject(db: Session, application_id: int, admin_id: int, reason: Optional[str] = None) -> ServiceApplication:
    application = application_repository.get_application_for_update(db, application_id)
    if application is None:
        raise NotFoundError("Application not found")
    notes = clean_text(reason, "Reason", required=False)

    try:
        APPLICATION_MACHINE.transition(application, ApplicationStatus.REJECTED)
        application.admin_notes = notes
        application.reviewed_by = admin_id
        application.reviewed_at = func.now()
        notify(
            db,
            application.user_id,
            APPLICATION_REJECTED,
            "Application rejected",
            f"Your service \"{application.title}\" was not approved",
            related_entity_id=application.id,
            related_entity_type="service_application",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    return application
