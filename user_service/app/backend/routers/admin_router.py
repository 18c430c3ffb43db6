from typing import Optional

from fastapi import APIRouter, Request, Depends, Query
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError, ValidationError, ConflictError
from common.pydantic.user import UserStatusPayload, UserAdminView, AdminOut, AdminLogOut, AdminCreatePayload, AdminUpdatePayload
from common.security.dependencies import require_admin
from common.security.tokens import Identity, AdminRole
from ..models.User import ACCOUNT_STATUSES
from ..repositories import user_repository, admin_repository, admin_log_repository
from ..services.access import require_super_admin
from ..services.audit import (
    audited,
    record_audit,
    UPDATE_USER_STATUS,
    UNBLOCK_USER,
    VIEW_ADMIN_LOGS,
    CREATE_ADMIN,
    UPDATE_ADMIN,
    DELETE_ADMIN,
    UNBLOCK_ADMIN,
)

router = APIRouter()

ADMIN_ROLES = [role.value for role in AdminRole]


def user_admin_view(user) -> dict:
    return UserAdminView.model_validate(user).model_dump()


def admin_view(admin) -> dict:
    return AdminOut.from_admin(admin).model_dump()


@router.get("/admin/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    users = user_repository.get_all_users(db, limit=limit, offset=(page - 1) * limit)
    return {
        "users": [user_admin_view(user) for user in users],
        "total": user_repository.count_users(db),
        "page": page,
        "limit": limit,
    }

@router.get("/admin/users/blocked")
async def list_blocked_accounts(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return {
        "users": [user_admin_view(user) for user in user_repository.get_blocked_users(db)],
        "admins": [admin_view(blocked) for blocked in admin_repository.get_blocked_admins(db)],
    }

@router.put("/admin/users/{user_id}/status")
@audited(UPDATE_USER_STATUS, "user", target_param="user_id")
async def update_user_status(
    request: Request,
    user_id: int,
    payload: UserStatusPayload,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if payload.account_status not in ACCOUNT_STATUSES:
        raise ValidationError(f"Invalid status. Allowed values: {', '.join(ACCOUNT_STATUSES)}")

    user = user_repository.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    previous_status = user.account_status

    user = user_repository.set_account_status(db, user_id, payload.account_status)
    record_audit(request, details=f"Status changed from {previous_status} to {user.account_status}")
    return {"message": "User status updated successfully", "user": user_admin_view(user)}

@router.put("/admin/users/{user_id}/unblock")
@audited(UNBLOCK_USER, "user", target_param="user_id")
async def unblock_user(
    request: Request,
    user_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = user_repository.unblock_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    record_audit(request, details=f"Unblocked {user.email}")
    return {"message": "User unblocked successfully", "user": user_admin_view(user)}

@router.get("/admin/logs")
@audited(VIEW_ADMIN_LOGS, "admin_logs")
async def list_admin_logs(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = admin_log_repository.get_admin_logs(
        db, limit=limit, offset=(page - 1) * limit, target_type=target_type, target_id=target_id
    )
    logs = []
    for log, admin_name, admin_email in rows:
        log_data = AdminLogOut.model_validate(log).model_dump()
        log_data["admin_name"] = admin_name
        log_data["admin_email"] = admin_email
        logs.append(log_data)
    total = admin_log_repository.count_admin_logs(db, target_type, target_id)
    return {"logs": logs, "total": total, "page": page, "limit": limit}

# --- admin management, super admins only ---

@router.get("/admin/admins")
async def list_admins(admin: Identity = Depends(require_super_admin), db: Session = Depends(get_db)):
    return {"admins": [admin_view(item) for item in admin_repository.get_all_admins(db)]}

@router.post("/admin/admins", status_code=201)
@audited(CREATE_ADMIN, "admin")
async def create_admin(
    request: Request,
    payload: AdminCreatePayload,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if payload.role not in ADMIN_ROLES:
        raise ValidationError(f"Invalid role. Allowed values: {', '.join(ADMIN_ROLES)}")

    user = user_repository.get_user_by_id(db, payload.user_id)
    if user is None:
        raise NotFoundError("User not found")
    if admin_repository.get_admin_by_email(db, user.email):
        raise ConflictError("User is already an admin")

    # The new admin signs in with the same credentials as the user account
    new_admin = admin_repository.create_admin(
        db,
        email=user.email,
        full_name=user.full_name,
        role=payload.role,
        password_hash=user.password_hash,
    )
    record_audit(request, details=f"Promoted user {user.id} to {payload.role} admin", target_id=new_admin.id)
    return {"message": "Admin created successfully", "admin": admin_view(new_admin)}

@router.put("/admin/admins/{admin_id}")
@audited(UPDATE_ADMIN, "admin", target_param="admin_id")
async def update_admin(
    request: Request,
    admin_id: int,
    payload: AdminUpdatePayload,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if admin_id == admin.id:
        raise ValidationError("You cannot modify your own account")

    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data provided for update")
    if "role" in update_data and update_data["role"] not in ADMIN_ROLES:
        raise ValidationError(f"Invalid role. Allowed values: {', '.join(ADMIN_ROLES)}")

    updated_admin = admin_repository.update_admin(db, admin_id, update_data)
    if updated_admin is None:
        raise NotFoundError("Admin not found")
    record_audit(request, details=", ".join(f"{key}={value}" for key, value in update_data.items()))
    return {"message": "Admin updated successfully", "admin": admin_view(updated_admin)}

@router.delete("/admin/admins/{admin_id}")
@audited(DELETE_ADMIN, "admin", target_param="admin_id")
async def delete_admin(
    request: Request,
    admin_id: int,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if admin_id == admin.id:
        raise ValidationError("You cannot delete your own account")

    target = admin_repository.get_admin_by_id(db, admin_id)
    if target is None:
        raise NotFoundError("Admin not found")
    email = target.email

    admin_repository.delete_admin_by_id(db, admin_id)
    record_audit(request, details=f"Deleted admin {email}")
    return {"message": "Admin deleted successfully"}

@router.put("/admin/admins/{admin_id}/unblock")
@audited(UNBLOCK_ADMIN, "admin", target_param="admin_id")
async def unblock_admin(
    request: Request,
    admin_id: int,
    admin: Identity = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    unblocked = admin_repository.unblock_admin(db, admin_id)
    if unblocked is None:
        raise NotFoundError("Admin not found")
    record_audit(request, details=f"Unblocked admin {unblocked.email}")
    return {"message": "Admin unblocked successfully", "admin": admin_view(unblocked)}
