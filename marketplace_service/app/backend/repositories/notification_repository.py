from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional

from ..models.Notification import Notification


def add_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    related_entity_type: Optional[str] = "service_request",
    related_entity_id: Optional[int] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        notification_type=notification_type,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        title=title,
        message=message,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification

def get_notifications_for_user(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

def mark_as_read(db: Session, notification_id: int, user_id: int) -> int:
    updated_count = db.query(Notification)\
        .filter(Notification.id == notification_id, Notification.user_id == user_id)\
        .update({Notification.is_read: True, Notification.read_at: func.now()}, synchronize_session=False)
    db.commit()
    return updated_count

def mark_all_as_read(db: Session, user_id: int) -> int:
    updated_count = db.query(Notification)\
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))\
        .update({Notification.is_read: True, Notification.read_at: func.now()}, synchronize_session=False)
    db.commit()
    return updated_count

def count_unread(db: Session, user_id: int) -> int:
    return db.query(Notification).filter(Notification.user_id == user_id, Notification.is_read.is_(False)).count()
