from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from typing import List, Optional, Tuple

from ..models.Review import Review


def get_review_by_request_id(db: Session, request_id: int) -> Optional[Review]:
    return db.query(Review).filter(Review.service_request_id == request_id).first()

def add_review(db: Session, request_id: int, reviewer_id: int, reviewed_id: int, rating: int, review_text: Optional[str]) -> Review:
    review = Review(
        service_request_id=request_id,
        reviewer_user_id=reviewer_id,
        reviewed_user_id=reviewed_id,
        rating=rating,
        review_text=review_text,
    )
    db.add(review)
    db.flush()
    return review

def get_rating_summary(db: Session, reviewed_user_id: int) -> Tuple[Optional[float], int]:
    avg_rating, total = db.query(func.avg(Review.rating), func.count(Review.id))\
        .filter(Review.reviewed_user_id == reviewed_user_id)\
        .one()
    return avg_rating, total

def get_reviews_for_coach(db: Session, coach_id: int, limit: int = 10, offset: int = 0) -> List[Review]:
    return db.query(Review)\
        .options(joinedload(Review.reviewer))\
        .filter(Review.reviewed_user_id == coach_id)\
        .order_by(Review.created_at.desc(), Review.id.desc())\
        .limit(limit)\
        .offset(offset)\
        .all()
