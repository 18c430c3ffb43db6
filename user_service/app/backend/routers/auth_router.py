from fastapi import APIRouter, Request, Depends, status
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError
from common.pydantic.user import RegisterPayload, LoginPayload, UserOut, AdminOut
from common.security.dependencies import get_current_identity, require_admin
from common.security.tokens import Identity
from common.pydantic.views import profile_view
from ..repositories import user_repository, admin_repository
from ..services import auth_service
from ..services.audit import audited, record_audit, ADMIN_LOGIN, ADMIN_LOGOUT

router = APIRouter()


def user_out(user) -> dict:
    return UserOut.model_validate(user).model_dump()


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterPayload, db: Session = Depends(get_db)):
    user, token = auth_service.register(db, payload.email, payload.password, payload.full_name)
    return {"message": "User registered successfully", "token": token, "user": user_out(user)}

@router.post("/auth/login")
async def login(payload: LoginPayload, db: Session = Depends(get_db)):
    user, token = auth_service.login(db, payload.email, payload.password)
    return {"message": "Login successful", "token": token, "user": user_out(user)}

@router.post("/auth/admin-login")
@audited(ADMIN_LOGIN, "admin")
async def admin_login(request: Request, payload: LoginPayload, db: Session = Depends(get_db)):
    admin, token = auth_service.admin_login(db, payload.email, payload.password)
    record_audit(request, details="Admin logged in", target_id=admin.id, admin_id=admin.id)
    return {"message": "Login successful", "token": token, "admin": AdminOut.from_admin(admin).model_dump()}

@router.post("/auth/refresh")
async def refresh(identity: Identity = Depends(get_current_identity)):
    return {"token": auth_service.refresh(identity)}

@router.post("/auth/logout")
async def logout(identity: Identity = Depends(get_current_identity)):
    # Tokens are stateless; the client drops its copy
    return {"message": "Logged out successfully"}

@router.post("/auth/admin-logout")
@audited(ADMIN_LOGOUT, "admin")
async def admin_logout(request: Request, admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    record_audit(request, details="Admin logged out", target_id=admin.id)
    return {"message": "Logged out successfully"}

@router.get("/auth/me")
async def me(identity: Identity = Depends(get_current_identity), db: Session = Depends(get_db)):
    if identity.is_admin:
        admin = admin_repository.get_admin_by_id(db, identity.id)
        if admin is None:
            raise NotFoundError("Admin not found")
        return {"admin": AdminOut.from_admin(admin).model_dump()}

    user = user_repository.get_user_by_id(db, identity.id)
    if user is None:
        raise NotFoundError("User not found")
    user_data = user_out(user)
    user_data["account_status"] = user.account_status
    user_data["employee_profile"] = profile_view(user.employee_profile)
    return {"user": user_data}
