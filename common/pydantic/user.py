from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class RegisterPayload(BaseModel):
    email: str
    password: str
    full_name: str


class LoginPayload(BaseModel):
    email: str
    password: str


class UserUpdatePayload(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None


class UserStatusPayload(BaseModel):
    account_status: str


class AdminCreatePayload(BaseModel):
    user_id: int
    role: str = "regular"


class AdminUpdatePayload(BaseModel):
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("role", "is_active")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    is_employee: bool
    is_admin: bool = False
    wallet_balance: float
    created_at: Optional[datetime] = None


class UserAdminView(UserOut):
    account_status: str
    failed_login_attempts: int
    last_login: Optional[datetime] = None


class PublicUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    is_employee: bool
    created_at: Optional[datetime] = None


class AdminOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str
    admin_role: str
    is_admin: bool = True
    is_employee: bool = False
    is_active: bool
    failed_login_attempts: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_admin(cls, admin) -> "AdminOut":
        return cls(
            id=admin.id,
            email=admin.email,
            full_name=admin.full_name,
            admin_role=admin.role,
            is_active=admin.is_active,
            failed_login_attempts=admin.failed_login_attempts,
            created_at=admin.created_at,
        )


class AdminLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    admin_id: int
    action: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    admin_name: Optional[str] = None
    admin_email: Optional[str] = None
