from sqlalchemy.orm import Session, joinedload
from sqlalchemy import or_
from typing import List, Optional

from ..models.Coach import EmployeeProfile, EmployeeSpecialization
from ..models.PublishedService import PublishedService
from user_service.app.backend.models.User import User


def get_profile(db: Session, user_id: int) -> Optional[EmployeeProfile]:
    return db.query(EmployeeProfile).filter(EmployeeProfile.user_id == user_id).first()

def ensure_profile(db: Session, user_id: int) -> EmployeeProfile:
    """Creates the profile on first approval, reactivates it otherwise. Does not commit."""
    profile = get_profile(db, user_id)
    if profile is None:
        profile = EmployeeProfile(user_id=user_id, status="active", is_verified=False)
        db.add(profile)
    else:
        profile.status = "active"
    db.flush()
    return profile

def get_coaches(db: Session, game_id: Optional[int] = None, limit: int = 10, offset: int = 0) -> List[User]:
    query = db.query(User)\
        .join(EmployeeProfile, EmployeeProfile.user_id == User.id)\
        .options(joinedload(User.employee_profile))\
        .filter(
            User.is_employee.is_(True),
            User.account_status == "active",
            EmployeeProfile.status == "active",
        )

    if game_id:
        specialized = db.query(EmployeeSpecialization.employee_id).filter(EmployeeSpecialization.game_id == game_id)
        publishing = db.query(PublishedService.employee_id).filter(
            PublishedService.game_id == game_id,
            PublishedService.is_active.is_(True),
        )
        query = query.filter(or_(User.id.in_(specialized), User.id.in_(publishing)))

    return query.order_by(EmployeeProfile.rating.desc(), User.id.asc()).limit(limit).offset(offset).all()

def get_coach(db: Session, user_id: int) -> Optional[User]:
    return db.query(User)\
        .options(joinedload(User.employee_profile))\
        .filter(User.id == user_id, User.is_employee.is_(True))\
        .first()

def get_specializations(db: Session, employee_id: int) -> List[EmployeeSpecialization]:
    return db.query(EmployeeSpecialization)\
        .options(joinedload(EmployeeSpecialization.game))\
        .filter(EmployeeSpecialization.employee_id == employee_id)\
        .order_by(EmployeeSpecialization.is_primary.desc(), EmployeeSpecialization.id)\
        .all()

def upsert_specialization(
    db: Session,
    employee_id: int,
    game_id: int,
    rank_in_game: Optional[str],
    years_in_game: Optional[int],
    hourly_rate,
    is_primary: bool,
) -> EmployeeSpecialization:
    if is_primary:
        db.query(EmployeeSpecialization)\
            .filter(EmployeeSpecialization.employee_id == employee_id)\
            .update({EmployeeSpecialization.is_primary: False}, synchronize_session=False)

    specialization = db.query(EmployeeSpecialization).filter(
        EmployeeSpecialization.employee_id == employee_id,
        EmployeeSpecialization.game_id == game_id,
    ).first()
    if specialization is None:
        specialization = EmployeeSpecialization(employee_id=employee_id, game_id=game_id)
        db.add(specialization)

    specialization.rank_in_game = rank_in_game
    specialization.years_in_game = years_in_game
    specialization.hourly_rate = hourly_rate
    specialization.is_primary = is_primary
    db.commit()
    db.refresh(specialization)
    return specialization

def update_bio(db: Session, user_id: int, bio: Optional[str]) -> Optional[EmployeeProfile]:
    profile = get_profile(db, user_id)
    if profile:
        profile.bio = bio
        db.commit()
        db.refresh(profile)
    return profile

def increment_completed_services(db: Session, user_id: int) -> EmployeeProfile:
    profile = get_profile(db, user_id) or ensure_profile(db, user_id)
    db.query(EmployeeProfile).filter(EmployeeProfile.id == profile.id).update(
        {EmployeeProfile.total_services_completed: EmployeeProfile.total_services_completed + 1},
        synchronize_session=False,
    )
    db.flush()
    return profile

def set_rating(db: Session, user_id: int, rating, total_reviews: int) -> EmployeeProfile:
    profile = get_profile(db, user_id) or ensure_profile(db, user_id)
    profile.rating = rating
    profile.total_reviews = total_reviews
    db.flush()
    return profile
