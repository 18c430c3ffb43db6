"""Response shapes built from ORM rows. Money goes out as float."""
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from common.pydantic.marketplace import (
    EmployeeProfileOut,
    SpecializationOut,
    ApplicationOut,
    PublishedServiceOut,
    ServiceRequestOut,
    CompletionOut,
    GameOut,
    ReviewOut,
)
from common.pydantic.user import PublicUserOut


def profile_view(profile) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return EmployeeProfileOut.model_validate(profile).model_dump()


def game_view(game) -> Dict[str, Any]:
    return GameOut.model_validate(game).model_dump()


def specialization_view(specialization) -> Dict[str, Any]:
    data = SpecializationOut.model_validate(specialization).model_dump()
    data["game_name"] = specialization.game.name if specialization.game else None
    return data


def coach_view(user) -> Dict[str, Any]:
    data = PublicUserOut.model_validate(user).model_dump()
    data["employee_profile"] = profile_view(user.employee_profile)
    return data


def service_view(service) -> Dict[str, Any]:
    data = PublishedServiceOut.model_validate(service).model_dump()
    data["game_name"] = service.game.name if service.game else None
    data["employee_name"] = service.employee.full_name if service.employee else None
    return data


def days_since(moment: Optional[datetime]) -> int:
    if moment is None:
        return 0
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return max((now - moment).days, 0)


def application_view(application, with_applicant: bool = False) -> Dict[str, Any]:
    data = ApplicationOut.model_validate(application).model_dump()
    data["game_name"] = application.game.name if application.game else None
    if with_applicant:
        data["applicant_name"] = application.user.full_name if application.user else None
        data["applicant_email"] = application.user.email if application.user else None
        data["days_pending"] = days_since(application.submitted_at)
    return data


def completion_view(completion) -> Dict[str, Any]:
    return CompletionOut.model_validate(completion).model_dump()


def request_view(service_request) -> Dict[str, Any]:
    data = ServiceRequestOut.model_validate(service_request).model_dump()
    service = service_request.published_service
    data["service_title"] = service.title if service else None
    data["game_id"] = service.game_id if service else None
    data["requester_name"] = service_request.requester.full_name if service_request.requester else None
    data["employee_name"] = service_request.employee.full_name if service_request.employee else None
    data["chat_id"] = service_request.chat.id if service_request.chat else None
    return data


def review_view(review) -> Dict[str, Any]:
    data = ReviewOut.model_validate(review).model_dump()
    data["full_name"] = review.reviewer.full_name if review.reviewer else None
    return data
