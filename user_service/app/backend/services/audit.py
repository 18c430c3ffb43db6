"""
Admin audit trail.

``audited`` wraps an admin endpoint and appends one ``admin_logs`` row after
the endpoint returns successfully.

The wrapped endpoint must accept ``request`` and ``db`` keyword arguments and
either an ``admin`` identity or set ``request.state.audit_admin_id`` itself
(the admin login endpoint has no identity yet). Handlers can refine the entry
through ``record_audit``.
"""
import functools
import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..repositories import admin_log_repository

logger = logging.getLogger(__name__)

ADMIN_LOGIN = "ADMIN_LOGIN"
ADMIN_LOGOUT = "ADMIN_LOGOUT"
CREATE_GAME = "CREATE_GAME"
UPDATE_GAME = "UPDATE_GAME"
DELETE_GAME = "DELETE_GAME"
APPROVE_APPLICATION = "APPROVE_APPLICATION"
REJECT_APPLICATION = "REJECT_APPLICATION"
UPDATE_USER_STATUS = "UPDATE_USER_STATUS"
UNBLOCK_USER = "UNBLOCK_USER"
APPROVE_COMPLETION = "APPROVE_COMPLETION"
REOPEN_COMPLETION = "REOPEN_COMPLETION"
VIEW_CHAT_MESSAGES = "VIEW_CHAT_MESSAGES"
VIEW_ADMIN_LOGS = "VIEW_ADMIN_LOGS"
CREATE_ADMIN = "CREATE_ADMIN"
UPDATE_ADMIN = "UPDATE_ADMIN"
DELETE_ADMIN = "DELETE_ADMIN"
UNBLOCK_ADMIN = "UNBLOCK_ADMIN"


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


def record_audit(request: Request, details: Optional[str] = None, target_id: Optional[int] = None, admin_id: Optional[int] = None):
    if details is not None:
        request.state.audit_details = details
    if target_id is not None:
        request.state.audit_target_id = target_id
    if admin_id is not None:
        request.state.audit_admin_id = admin_id


def write_admin_log(
    db: Session,
    admin_id: int,
    action: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    details: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> bool:
    # Never fails the action being audited
    try:
        admin_log_repository.add_admin_log(db, admin_id, action, target_type, target_id, details, ip_address)
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to write admin log %s for admin %s", action, admin_id)
        return False


def audited(action: str, target_type: Optional[str] = None, target_param: Optional[str] = None):
    def decorator(endpoint):
        @functools.wraps(endpoint)
        async def wrapper(*args, **kwargs):
            result = await endpoint(*args, **kwargs)

            request: Request = kwargs["request"]
            db: Session = kwargs["db"]
            state = request.state

            admin_id = getattr(state, "audit_admin_id", None)
            if admin_id is None and kwargs.get("admin") is not None:
                admin_id = kwargs["admin"].id
            if admin_id is None:
                logger.error("Audited endpoint %s finished without an acting admin", endpoint.__name__)
                return result

            target_id = getattr(state, "audit_target_id", None)
            if target_id is None and target_param:
                target_id = kwargs.get(target_param)

            write_admin_log(
                db,
                admin_id=admin_id,
                action=action,
                target_type=target_type,
                target_id=target_id,
                details=getattr(state, "audit_details", None),
                ip_address=client_ip(request),
            )
            return result
        return wrapper
    return decorator
