from sqlalchemy.orm import Session, joinedload
from typing import List, Optional

from ..models.PublishedService import PublishedService
from ..models.ServiceApplication import ServiceApplication


def get_services(
    db: Session,
    game_id: Optional[int] = None,
    employee_id: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[PublishedService]:
    query = db.query(PublishedService)\
        .options(joinedload(PublishedService.employee), joinedload(PublishedService.game))\
        .filter(PublishedService.is_active.is_(True))

    if game_id:
        query = query.filter(PublishedService.game_id == game_id)
    if employee_id:
        query = query.filter(PublishedService.employee_id == employee_id)

    return query.order_by(PublishedService.created_at.desc(), PublishedService.id.desc()).limit(limit).offset(offset).all()

def get_service_by_id(db: Session, service_id: int, active_only: bool = True) -> Optional[PublishedService]:
    query = db.query(PublishedService)\
        .options(joinedload(PublishedService.employee), joinedload(PublishedService.game))\
        .filter(PublishedService.id == service_id)
    if active_only:
        query = query.filter(PublishedService.is_active.is_(True))
    return query.first()

def get_service_by_application_id(db: Session, application_id: int) -> Optional[PublishedService]:
    return db.query(PublishedService).filter(PublishedService.application_id == application_id).first()

def publish_from_application(db: Session, application: ServiceApplication) -> PublishedService:
    """Copies the reviewed application into its listing. Does not commit."""
    service = get_service_by_application_id(db, application.id)
    if service is None:
        service = PublishedService(employee_id=application.user_id, application_id=application.id)
        db.add(service)

    service.game_id = application.game_id
    service.title = application.title
    service.description = application.description
    service.price = application.price
    service.is_active = True
    db.flush()
    return service

def count_services(db: Session) -> int:
    return db.query(PublishedService).filter(PublishedService.is_active.is_(True)).count()
