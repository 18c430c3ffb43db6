from sqlalchemy.orm import Session, joinedload
from sqlalchemy import or_, func
from typing import List, Optional

from ..models.Chat import Chat, ChatMessage
from ..models.ServiceRequest import ServiceRequest


def get_chat_by_id(db: Session, chat_id: int) -> Optional[Chat]:
    return db.query(Chat)\
        .options(joinedload(Chat.service_request))\
        .filter(Chat.id == chat_id)\
        .first()

def get_chat_by_request_id(db: Session, request_id: int) -> Optional[Chat]:
    return db.query(Chat).filter(Chat.service_request_id == request_id).first()

def open_chat(db: Session, request_id: int) -> Chat:
    """Returns the request's chat, creating it if needed. Does not commit."""
    chat = get_chat_by_request_id(db, request_id)
    if chat is None:
        chat = Chat(service_request_id=request_id, is_archived=False)
        db.add(chat)
        db.flush()
    return chat

def archive_chat_for_request(db: Session, request_id: int) -> Optional[Chat]:
    chat = get_chat_by_request_id(db, request_id)
    if chat and not chat.is_archived:
        chat.is_archived = True
        chat.archived_at = func.now()
        db.flush()
    return chat

def get_chats_for_user(db: Session, user_id: int) -> List[Chat]:
    return db.query(Chat)\
        .join(Chat.service_request)\
        .options(joinedload(Chat.service_request).joinedload(ServiceRequest.published_service))\
        .filter(or_(ServiceRequest.requester_user_id == user_id, ServiceRequest.employee_user_id == user_id))\
        .order_by(Chat.created_at.desc(), Chat.id.desc())\
        .all()

def get_all_chats(db: Session, archived: Optional[bool] = None) -> List[Chat]:
    query = db.query(Chat).options(
        joinedload(Chat.service_request).joinedload(ServiceRequest.published_service),
    )
    if archived is not None:
        query = query.filter(Chat.is_archived.is_(archived))
    return query.order_by(Chat.created_at.desc(), Chat.id.desc()).all()

def get_messages(db: Session, chat_id: int, limit: Optional[int] = None, offset: int = 0) -> List[ChatMessage]:
    query = db.query(ChatMessage)\
        .options(joinedload(ChatMessage.sender))\
        .filter(ChatMessage.chat_id == chat_id)\
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
    if limit is not None:
        query = query.limit(limit).offset(offset)
    return query.all()

def get_last_message(db: Session, chat_id: int) -> Optional[ChatMessage]:
    return db.query(ChatMessage)\
        .filter(ChatMessage.chat_id == chat_id)\
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())\
        .first()

def count_messages(db: Session, chat_id: int) -> int:
    return db.query(ChatMessage).filter(ChatMessage.chat_id == chat_id).count()

def add_message(db: Session, chat_id: int, sender_user_id: int, message: str) -> ChatMessage:
    new_message = ChatMessage(chat_id=chat_id, sender_user_id=sender_user_id, message=message)
    db.add(new_message)
    db.commit()
    db.refresh(new_message)
    return new_message
