from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.pydantic.marketplace import MessagePayload
from common.security.dependencies import require_user
from common.security.tokens import Identity
from user_service.app.backend.services.access import require_active_user
from ..services import chat_service

router = APIRouter()


@router.get("/chats")
async def list_chats(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    return {"chats": chat_service.list_chats(db, identity.id)}

@router.get("/chats/{chat_id}/messages")
async def get_messages(
    chat_id: int,
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(require_user),
    db: Session = Depends(get_db),
):
    messages = chat_service.get_messages(db, identity.id, chat_id, limit=limit, offset=offset)
    return {"messages": [chat_service.message_view(message) for message in messages]}

@router.post("/chats/{chat_id}/messages", status_code=201)
async def post_message(
    chat_id: int,
    payload: MessagePayload,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    message = chat_service.post_message(db, identity.id, chat_id, payload.message)
    return {"message": chat_service.message_view(message)}
