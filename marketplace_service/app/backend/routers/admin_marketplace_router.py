from typing import Optional

from fastapi import APIRouter, Request, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import ValidationError
from common.pydantic.marketplace import CompletionReviewPayload
from common.pydantic.views import request_view, completion_view
from common.security.dependencies import require_admin
from common.security.tokens import Identity
from user_service.app.backend.repositories import user_repository
from user_service.app.backend.services.audit import (
    audited,
    record_audit,
    APPROVE_COMPLETION,
    REOPEN_COMPLETION,
    VIEW_CHAT_MESSAGES,
)
from ..repositories import (
    analytics_repository,
    application_repository,
    published_service_repository,
    request_repository,
)
from ..services import chat_service, request_lifecycle
from ..services.state_machine import ACTIVE_REQUEST_STATUSES, ApplicationStatus, RequestStatus

router = APIRouter()

CHAT_FILTERS = ("active", "archived", "all")


@router.get("/admin/dashboard")
async def dashboard(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    total_revenue, total_commission = request_repository.get_revenue_totals(db)
    return {
        "stats": {
            "total_users": user_repository.count_users(db),
            "total_employees": user_repository.count_users(db, employees_only=True),
            "pending_applications": application_repository.count_applications_by_status(db, ApplicationStatus.PENDING.value),
            "active_services": published_service_repository.count_services(db),
            "active_requests": request_repository.count_requests_by_statuses(db, ACTIVE_REQUEST_STATUSES),
            "pending_completions": request_repository.count_pending_completions(db),
            "total_revenue": float(total_revenue),
            "total_commission": float(total_commission),
        }
    }

@router.get("/admin/analytics")
async def analytics(
    days: int = Query(30, alias="range"),
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if days not in analytics_repository.ANALYTICS_RANGES:
        raise ValidationError("Range must be one of 7, 30 or 365 days")
    return {"analytics": analytics_repository.build_report(db, days)}

@router.get("/admin/completions/pending")
async def pending_completions(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    completions = []
    for completion in request_repository.get_pending_completions(db):
        completion_data = completion_view(completion)
        completion_data["request"] = request_view(completion.service_request)
        completions.append(completion_data)
    return {"completions": completions}

@router.post("/admin/completions/{completion_id}/approve")
@audited(APPROVE_COMPLETION, "service_completion", target_param="completion_id")
async def approve_completion(
    request: Request,
    completion_id: int,
    payload: Optional[CompletionReviewPayload] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin_notes = payload.admin_notes if payload else None
    completion, service_request, transaction = request_lifecycle.approve_completion(db, admin.id, completion_id, admin_notes)
    commission = float(transaction.commission_amount)
    earnings = float(transaction.amount - transaction.commission_amount)
    record_audit(
        request,
        details=f"Closed request {service_request.id}: amount {transaction.amount}, commission {transaction.commission_amount}",
    )
    return {
        "message": "Completion approved, payment released",
        "completion": completion_view(completion),
        "request": request_view(service_request),
        "payment": {
            "amount": float(transaction.amount),
            "commission": commission,
            "employee_earnings": earnings,
        },
    }

@router.post("/admin/completions/{completion_id}/reopen")
@audited(REOPEN_COMPLETION, "service_completion", target_param="completion_id")
async def reopen_completion(
    request: Request,
    completion_id: int,
    payload: Optional[CompletionReviewPayload] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin_notes = payload.admin_notes if payload else None
    completion, service_request = request_lifecycle.reopen_completion(db, admin.id, completion_id, admin_notes)
    record_audit(request, details=f"Reopened request {service_request.id}")
    return {
        "message": "Completion sent back for revision",
        "completion": completion_view(completion),
        "request": request_view(service_request),
    }

@router.get("/admin/chats")
async def list_chats(
    status: str = "all",
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if status not in CHAT_FILTERS:
        raise ValidationError("Status must be one of active, archived or all")
    return {"chats": chat_service.list_all_chats(db, status)}

@router.get("/admin/chats/{chat_id}/messages")
@audited(VIEW_CHAT_MESSAGES, "chat", target_param="chat_id")
async def read_chat(
    request: Request,
    chat_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    messages = chat_service.read_any_chat(db, chat_id)
    return {"messages": [chat_service.message_view(message) for message in messages]}

@router.get("/admin/requests")
async def list_requests(
    status: Optional[str] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if status and status not in [item.value for item in RequestStatus]:
        raise ValidationError("Unknown request status")
    return {"requests": [request_view(item) for item in request_repository.get_all_requests(db, status)]}
