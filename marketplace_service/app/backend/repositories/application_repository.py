from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from decimal import Decimal

from ..models.ServiceApplication import ServiceApplication


def add_application(db: Session, user_id: int, game_id: int, title: str, description: str, price: Decimal) -> ServiceApplication:
    application = ServiceApplication(
        user_id=user_id,
        game_id=game_id,
        title=title,
        description=description,
        price=price,
        status="pending",
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    return application

def get_application_for_update(db: Session, application_id: int) -> Optional[ServiceApplication]:
    return db.query(ServiceApplication)\
        .filter(ServiceApplication.id == application_id)\
        .populate_existing()\
        .with_for_update()\
        .first()

def get_applications_by_user_id(db: Session, user_id: int) -> List[ServiceApplication]:
    return db.query(ServiceApplication)\
        .options(joinedload(ServiceApplication.game))\
        .filter(ServiceApplication.user_id == user_id)\
        .order_by(ServiceApplication.submitted_at.desc(), ServiceApplication.id.desc())\
        .all()

def get_applications_by_status(db: Session, status: str) -> List[ServiceApplication]:
    return db.query(ServiceApplication)\
        .options(joinedload(ServiceApplication.game), joinedload(ServiceApplication.user))\
        .filter(ServiceApplication.status == status)\
        .order_by(ServiceApplication.submitted_at.asc(), ServiceApplication.id.asc())\
        .all()

def count_applications_by_status(db: Session, status: str) -> int:
    return db.query(ServiceApplication).filter(ServiceApplication.status == status).count()
