from typing import List, Optional, Dict, Any

from sqlalchemy.orm import Session

from common.errors import NotFoundError, ForbiddenError, ConflictError
from common.pydantic.marketplace import ChatMessageOut
from common.security.validation import clean_text
from ..models.Chat import Chat, ChatMessage
from ..repositories import chat_repository


def message_view(message: ChatMessage) -> Dict[str, Any]:
    data = ChatMessageOut.model_validate(message).model_dump()
    data["full_name"] = message.sender.full_name if message.sender else None
    return data


def chat_view(db: Session, chat: Chat, with_counts: bool = False) -> Dict[str, Any]:
    service_request = chat.service_request
    last_message = chat_repository.get_last_message(db, chat.id)
    view = {
        "id": chat.id,
        "service_request_id": chat.service_request_id,
        "is_archived": chat.is_archived,
        "created_at": chat.created_at,
        "archived_at": chat.archived_at,
        "request_status": service_request.status,
        "requester_user_id": service_request.requester_user_id,
        "employee_user_id": service_request.employee_user_id,
        "service_title": service_request.published_service.title if service_request.published_service else None,
        "last_message": last_message.message if last_message else None,
        "last_message_at": last_message.created_at if last_message else None,
    }
    if with_counts:
        view["message_count"] = chat_repository.count_messages(db, chat.id)
    return view


def _participant_chat(db: Session, chat_id: int, user_id: int) -> Chat:
    chat = chat_repository.get_chat_by_id(db, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    service_request = chat.service_request
    if user_id not in (service_request.requester_user_id, service_request.employee_user_id):
        raise ForbiddenError("Unauthorized")
    return chat


def list_chats(db: Session, user_id: int) -> List[Dict[str, Any]]:
    return [chat_view(db, chat) for chat in chat_repository.get_chats_for_user(db, user_id)]


def get_messages(db: Session, user_id: int, chat_id: int, limit: Optional[int] = None, offset: int = 0) -> List[ChatMessage]:
    chat = _participant_chat(db, chat_id, user_id)
    return chat_repository.get_messages(db, chat.id, limit=limit, offset=offset)


def post_message(db: Session, user_id: int, chat_id: int, message: str) -> ChatMessage:
    chat = _participant_chat(db, chat_id, user_id)
    if chat.is_archived:
        raise ConflictError("Chat is archived")
    text = clean_text(message, "Message")
    return chat_repository.add_message(db, chat.id, user_id, text)


def list_all_chats(db: Session, status: str = "all") -> List[Dict[str, Any]]:
    archived = {"active": False, "archived": True}.get(status)
    return [chat_view(db, chat, with_counts=True) for chat in chat_repository.get_all_chats(db, archived=archived)]


def read_any_chat(db: Session, chat_id: int) -> List[ChatMessage]:
    chat = chat_repository.get_chat_by_id(db, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat_repository.get_messages(db, chat.id)
