from typing import Optional

from fastapi import APIRouter, Request, Depends
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.pydantic.marketplace import ApplicationPayload, ApplicationUpdatePayload, ApplicationReviewPayload, ApplicationRejectPayload
from common.pydantic.views import application_view, service_view
from common.security.dependencies import require_admin, require_user
from common.security.tokens import Identity
from user_service.app.backend.services.access import require_active_user
from user_service.app.backend.services.audit import audited, record_audit, APPROVE_APPLICATION, REJECT_APPLICATION
from ..repositories import application_repository, published_service_repository
from ..services import application_workflow
from ..services.state_machine import ApplicationStatus

router = APIRouter()


@router.post("/applications", status_code=201)
async def submit_application(
    payload: ApplicationPayload,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    application = application_workflow.submit(
        db, identity.id, payload.game_id, payload.title, payload.description, payload.price,
    )
    return {"message": "Application submitted successfully", "application": application_view(application)}

@router.get("/applications/my-applications")
async def my_applications(identity: Identity = Depends(require_user), db: Session = Depends(get_db)):
    applications = application_repository.get_applications_by_user_id(db, identity.id)
    return {"applications": [application_view(application) for application in applications]}

@router.put("/applications/{application_id}")
async def edit_application(
    application_id: int,
    payload: ApplicationUpdatePayload,
    identity: Identity = Depends(require_active_user),
    db: Session = Depends(get_db),
):
    application = application_workflow.edit(
        db, identity.id, application_id, payload.title, payload.description, payload.price,
    )
    return {"message": "Application updated and resubmitted for review", "application": application_view(application)}

@router.get("/applications/pending")
async def pending_applications(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    applications = application_repository.get_applications_by_status(db, ApplicationStatus.PENDING.value)
    return {"applications": [application_view(application, with_applicant=True) for application in applications]}

@router.post("/applications/{application_id}/approve")
@audited(APPROVE_APPLICATION, "service_application", target_param="application_id")
async def approve_application(
    request: Request,
    application_id: int,
    payload: Optional[ApplicationReviewPayload] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    admin_notes = payload.admin_notes if payload else None
    application = application_workflow.approve(db, application_id, admin.id, admin_notes)
    service = published_service_repository.get_service_by_application_id(db, application.id)
    record_audit(request, details=f"Approved application \"{application.title}\", published service {service.id}")
    return {
        "message": "Application approved and service published",
        "application": application_view(application),
        "published_service": service_view(service),
    }

@router.post("/applications/{application_id}/reject")
@audited(REJECT_APPLICATION, "service_application", target_param="application_id")
async def reject_application(
    request: Request,
    application_id: int,
    payload: Optional[ApplicationRejectPayload] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    reason = payload.reason if payload else None
    application = application_workflow.reject(db, application_id, admin.id, reason)
    record_audit(request, details=f"Rejected application \"{application.title}\"")
    return {"message": "Application rejected", "application": application_view(application)}
