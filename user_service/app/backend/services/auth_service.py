import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.config.settings import MAX_LOGIN_ATTEMPTS
from common.errors import AuthenticationError, AccountBlockedError, ForbiddenError, ConflictError
from common.security.passwords import verify_password
from common.security.tokens import Identity, Role, AdminRole, create_access_token
from common.security.validation import validate_email, validate_password, clean_text
from ..models.User import User
from ..models.Admin import Admin
from ..repositories import user_repository, admin_repository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def user_identity(user: User) -> Identity:
    return Identity(
        id=user.id,
        role=Role.EMPLOYEE if user.is_employee else Role.USER,
        email=user.email,
    )


def admin_identity(admin: Admin) -> Identity:
    return Identity(id=admin.id, role=Role.ADMIN, email=admin.email, admin_role=AdminRole(admin.role))


def register(db: Session, email: str, password: str, full_name: str) -> Tuple[User, str]:
    safe_email = validate_email(email)
    plain_password = validate_password(password)
    safe_name = clean_text(full_name, "Full name")

    if user_repository.get_user_by_email(db, safe_email):
        raise ConflictError("Email already registered")

    try:
        user = user_repository.create_user(db, safe_email, plain_password, safe_name)
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.rollback()
        raise ConflictError("Email already registered")

    return user, create_access_token(user_identity(user))


def login(db: Session, email: str, password: str) -> Tuple[User, str]:
    safe_email = validate_email(email)
    plain_password = validate_password(password)

    user = user_repository.get_user_by_email(db, safe_email)
    if user is None:
        raise AuthenticationError(INVALID_CREDENTIALS, attempts_remaining=MAX_LOGIN_ATTEMPTS)

    if user.account_status == "blocked":
        raise AccountBlockedError(
            "Account is blocked due to too many failed login attempts. "
            "Please contact an administrator to unblock your account."
        )
    if user.account_status != "active":
        raise ForbiddenError(f"Account is {user.account_status}. Please contact support.")

    if not verify_password(plain_password, user.password_hash):
        attempts_remaining = user_repository.record_failed_login(db, user)
        if user.account_status == "blocked":
            logger.warning("User %s blocked after %s failed login attempts", user.id, MAX_LOGIN_ATTEMPTS)
            raise AccountBlockedError(
                "Account has been blocked due to too many failed login attempts. "
                "Please contact an administrator."
            )
        raise AuthenticationError(INVALID_CREDENTIALS, attempts_remaining=attempts_remaining)

    user = user_repository.record_successful_login(db, user)
    return user, create_access_token(user_identity(user))


def admin_login(db: Session, email: str, password: str) -> Tuple[Admin, str]:
    safe_email = validate_email(email)
    plain_password = validate_password(password)

    admin = admin_repository.get_admin_by_email(db, safe_email)
    if admin is None:
        raise AuthenticationError(INVALID_CREDENTIALS, attempts_remaining=MAX_LOGIN_ATTEMPTS)

    if not admin.is_active:
        raise AccountBlockedError(
            "Admin account is blocked due to too many failed login attempts. "
            "Please contact a super administrator."
        )

    if not verify_password(plain_password, admin.password_hash):
        attempts_remaining = admin_repository.record_failed_login(db, admin)
        if not admin.is_active:
            logger.warning("Admin %s blocked after %s failed login attempts", admin.id, MAX_LOGIN_ATTEMPTS)
            raise AccountBlockedError(
                "Admin account has been blocked due to too many failed login attempts. "
                "Please contact a super administrator."
            )
        raise AuthenticationError(INVALID_CREDENTIALS, attempts_remaining=attempts_remaining)

    admin = admin_repository.record_successful_login(db, admin)
    return admin, create_access_token(admin_identity(admin))


def refresh(identity: Identity) -> str:
    return create_access_token(identity)


def ensure_bootstrap_admin(db: Session, email: str, password: str, full_name: str) -> Admin:
    safe_email = validate_email(email)
    existing = admin_repository.get_admin_by_email(db, safe_email)
    if existing:
        return existing
    admin = admin_repository.create_admin(
        db,
        email=safe_email,
        full_name=clean_text(full_name, "Full name"),
        role=AdminRole.SUPER.value,
        password=validate_password(password),
    )
    logger.info("Bootstrap super admin %s created", admin.id)
    return admin
