from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError
from common.pydantic.marketplace import NotificationOut
from common.security.dependencies import require_user
from common.security.tokens import Identity
from ..repositories import notification_repository

router = APIRouter()


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    identity: Identity = Depends(require_user),
    db: Session = Depends(get_db),
):
    notifications = notification_repository.get_notifications_for_user(db, identity.id, unread_only=unread_only)
    return {"notifications": [NotificationOut.model_validate(item).model_dump() for item in notifications]}

@router.get("/notifications/unread-count")
async def unread_count(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    return {"count": notification_repository.count_unread(db, identity.id)}

@router.post("/notifications/read-all")
async def mark_all_read(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    updated_count = notification_repository.mark_all_as_read(db, identity.id)
    return {"message": "All notifications marked as read", "updated": updated_count}

@router.post("/notifications/{notification_id}/read")
async def mark_read(notification_id: int, identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    if not notification_repository.mark_as_read(db, notification_id, identity.id):
        raise NotFoundError("Notification not found")
    return {"message": "Notification marked as read"}
