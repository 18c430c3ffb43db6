from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import NotFoundError, ForbiddenError, ValidationError
from common.pydantic.user import UserUpdatePayload, PublicUserOut, UserOut
from common.pydantic.views import profile_view
from common.security.dependencies import get_current_identity
from common.security.tokens import Identity
from common.security.validation import clean_text
from marketplace_service.app.backend.repositories import coach_repository
from ..repositories import user_repository

router = APIRouter()


@router.get("/users/{user_id}")
async def get_user(user_id: int, db: Session = Depends(get_db)):
    user = user_repository.get_active_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    user_data = PublicUserOut.model_validate(user).model_dump()
    user_data["employee_profile"] = profile_view(user.employee_profile) if user.is_employee else None
    return {"user": user_data}

@router.put("/users/{user_id}")
async def update_user_details(
    user_id: int,
    payload: UserUpdatePayload,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if not identity.is_admin and identity.id != user_id:
        raise ForbiddenError("Unauthorized")

    update_data = payload.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No data provided for update")

    user = user_repository.get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    if "full_name" in update_data:
        user = user_repository.update_user(db, user_id, {"full_name": clean_text(update_data["full_name"], "Full name")})
    if "bio" in update_data and user.is_employee:
        coach_repository.update_bio(db, user_id, clean_text(update_data["bio"], "Bio", required=False))

    db.refresh(user)
    user_data = UserOut.model_validate(user).model_dump()
    user_data["employee_profile"] = profile_view(user.employee_profile)
    return {"message": "Profile updated successfully", "user": user_data}
