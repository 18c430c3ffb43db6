from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError, ForbiddenError
from common.pydantic.marketplace import ServiceRequestPayload, AcceptRequestPayload, CompleteRequestPayload
from common.pydantic.views import request_view, completion_view
from common.security.dependencies import get_current_identity, require_user
from common.security.tokens import Identity
from user_service.app.backend.services.access import require_active_user
from ..repositories import request_repository
from ..services import request_lifecycle

router = APIRouter()


def _fresh_view(db: Session, request_id: int) -> dict:
    return request_view(request_repository.get_request_by_id(db, request_id))


@router.post("/requests", status_code=201)
async def create_request(
    payload: ServiceRequestPayload,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    service_request = request_lifecycle.create(db, identity.id, payload.published_service_id, payload.service_details)
    return {"message": "Service request created", "request": _fresh_view(db, service_request.id)}

@router.get("/requests/employee/pending")
async def employee_requests(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    requests = request_repository.get_requests_for_employee(db, identity.id)
    return {"requests": [request_view(item) for item in requests]}

@router.get("/requests/user/my-requests")
async def my_requests(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    requests = request_repository.get_requests_for_requester(db, identity.id)
    return {"requests": [request_view(item) for item in requests]}

@router.get("/requests/{request_id}")
async def get_request(
    request_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    service_request = request_repository.get_request_by_id(db, request_id)
    if service_request is None:
        raise NotFoundError("Service request not found")
    participants = (service_request.requester_user_id, service_request.employee_user_id)
    if not identity.is_admin and identity.id not in participants:
        raise ForbiddenError("Unauthorized")

    request_data = request_view(service_request)
    request_data["completions"] = [completion_view(item) for item in service_request.completions]
    return {"request": request_data}

@router.post("/requests/{request_id}/accept")
async def accept_request(
    request_id: int,
    payload: Optional[AcceptRequestPayload] = None,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    response = payload.employee_response if payload else None
    request_lifecycle.accept(db, identity.id, request_id, response)
    return {"message": "Request accepted", "request": _fresh_view(db, request_id)}

@router.post("/requests/{request_id}/reject")
async def reject_request(
    request_id: int,
    payload: Optional[AcceptRequestPayload] = None,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    reason = payload.employee_response if payload else None
    request_lifecycle.reject(db, identity.id, request_id, reason)
    return {"message": "Request rejected", "request": _fresh_view(db, request_id)}

@router.post("/requests/{request_id}/confirm")
async def confirm_request(
    request_id: int,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    request_lifecycle.confirm(db, identity.id, request_id)
    return {"message": "Request confirmed, service started", "request": _fresh_view(db, request_id)}

@router.post("/requests/{request_id}/complete")
async def complete_request(
    request_id: int,
    payload: Optional[CompleteRequestPayload] = None,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    notes = payload.completion_notes if payload else None
    completion = request_lifecycle.complete(db, identity.id, request_id, notes)
    return {
        "message": "Completion submitted for admin review",
        "request": _fresh_view(db, request_id),
        "completion": completion_view(completion),
    }

@router.post("/requests/{request_id}/cancel")
async def cancel_request(
    request_id: int,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    request_lifecycle.cancel(db, identity.id, request_id)
    return {"message": "Request cancelled", "request": _fresh_view(db, request_id)}
