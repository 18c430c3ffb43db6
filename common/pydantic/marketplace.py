from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class GameCreatePayload(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    popularity_rank: Optional[int] = None


class GameUpdatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    popularity_rank: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "is_active")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class SpecializationPayload(BaseModel):
    game_id: int
    rank_in_game: Optional[str] = None
    years_in_game: Optional[int] = None
    hourly_rate: Optional[float] = None
    is_primary: bool = False


class ApplicationPayload(BaseModel):
    game_id: int
    title: str
    description: str
    price: float


class ApplicationUpdatePayload(BaseModel):
    title: str
    description: str
    price: float


class ApplicationReviewPayload(BaseModel):
    admin_notes: Optional[str] = None


class ApplicationRejectPayload(BaseModel):
    reason: Optional[str] = None


class ServiceRequestPayload(BaseModel):
    published_service_id: int
    service_details: str


class AcceptRequestPayload(BaseModel):
    employee_response: Optional[str] = None


class CompleteRequestPayload(BaseModel):
    completion_notes: Optional[str] = None


class CompletionReviewPayload(BaseModel):
    admin_notes: Optional[str] = None


class MessagePayload(BaseModel):
    message: str


class ReviewPayload(BaseModel):
    service_request_id: int
    rating: int
    review_text: Optional[str] = None


class GameOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    popularity_rank: Optional[int] = None
    is_active: bool


class EmployeeProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bio: Optional[str] = None
    rating: float
    total_reviews: int
    total_services_completed: int
    status: str
    is_verified: bool


class SpecializationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    game_id: int
    rank_in_game: Optional[str] = None
    years_in_game: Optional[int] = None
    hourly_rate: Optional[float] = None
    is_primary: bool


class ApplicationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    game_id: int
    title: str
    description: str
    price: float
    status: str
    admin_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class PublishedServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    application_id: int
    game_id: int
    title: str
    description: str
    price: float
    is_active: bool
    created_at: Optional[datetime] = None


class ServiceRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    published_service_id: int
    requester_user_id: int
    employee_user_id: int
    amount: float
    service_details: str
    employee_response: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class CompletionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_request_id: int
    employee_completion_notes: Optional[str] = None
    admin_review_notes: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    chat_id: int
    sender_user_id: int
    message: str
    created_at: Optional[datetime] = None
    full_name: Optional[str] = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_request_id: int
    reviewer_user_id: int
    reviewed_user_id: int
    rating: int
    review_text: Optional[str] = None
    created_at: Optional[datetime] = None
    full_name: Optional[str] = None


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    notification_type: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
