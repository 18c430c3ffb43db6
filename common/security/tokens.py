from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import jwt, JWTError

from common.config.settings import JWT_SECRET, JWT_ALGORITHM, ACCESS_TOKEN_EXPIRE_DAYS
from common.errors import AuthenticationError


class Role(str, Enum):
    USER = "user"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class AdminRole(str, Enum):
    REGULAR = "regular"
    SUPER = "super"


@dataclass(frozen=True)
class Identity:
    """Who is calling. Resolved once from the token and passed explicitly to handlers."""
    id: int
    role: Role
    email: Optional[str] = None
    admin_role: Optional[AdminRole] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_super_admin(self) -> bool:
        return self.is_admin and self.admin_role == AdminRole.SUPER


def create_access_token(identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {
        "sub": str(identity.id),
        "role": identity.role.value,
        "exp": expire,
    }
    if identity.email:
        to_encode["email"] = identity.email
    if identity.admin_role:
        to_encode["admin_role"] = identity.admin_role.value
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    # Tampered, malformed and expired tokens all collapse into the same error
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        admin_role = payload.get("admin_role")
        return Identity(
            id=int(payload["sub"]),
            role=Role(payload["role"]),
            email=payload.get("email"),
            admin_role=AdminRole(admin_role) if admin_role else None,
        )
    except (JWTError, KeyError, ValueError, TypeError):
        raise AuthenticationError("Invalid token")
