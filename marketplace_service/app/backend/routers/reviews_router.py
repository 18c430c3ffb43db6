from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.pydantic.marketplace import ReviewPayload
from common.pydantic.views import review_view
from common.security.tokens import Identity
from user_service.app.backend.services.access import require_active_user
from ..repositories import review_repository
from ..services import review_service

router = APIRouter()


@router.post("/reviews", status_code=201)
async def create_review(
    payload: ReviewPayload,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    review = review_service.submit_review(db, identity.id, payload.service_request_id, payload.rating, payload.review_text)
    return {"message": "Review submitted", "review": review_view(review)}

@router.get("/reviews/{coach_id}")
async def list_reviews(
    coach_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    reviews = review_repository.get_reviews_for_coach(db, coach_id, limit=limit, offset=(page - 1) * limit)
    return {"reviews": [review_view(review) for review in reviews], "page": page, "limit": limit}
