from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.errors import NotFoundError, ForbiddenError, ValidationError, ConflictError
from common.security.validation import clean_text
from ..models.Review import Review
from ..repositories import request_repository, review_repository, coach_repository
from .state_machine import RequestStatus


def submit_review(db: Session, reviewer_id: int, request_id: int, rating: int, review_text: Optional[str]) -> Review:
    if rating is None or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    text = clean_text(review_text, "Review text", required=False)

    service_request = request_repository.get_request_by_id(db, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found")
    if service_request.requester_user_id != reviewer_id:
        raise ForbiddenError("Unauthorized")
    if service_request.status != RequestStatus.CLOSED.value:
        raise ValidationError("Only closed requests can be reviewed")
    if review_repository.get_review_by_request_id(db, request_id):
        raise ConflictError("This request has already been reviewed")

    try:
        review = review_repository.add_review(
            db, request_id, reviewer_id, service_request.employee_user_id, rating, text,
        )
        avg_rating, total = review_repository.get_rating_summary(db, service_request.employee_user_id)
        coach_repository.set_rating(
            db,
            service_request.employee_user_id,
            Decimal(str(avg_rating)).quantize(Decimal("0.01")),
            total,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("This request has already been reviewed")

    db.refresh(review)
    return review
