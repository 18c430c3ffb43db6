from fastapi import Depends
from sqlalchemy.orm import Session

from common.db.database import get_db
from common.errors import ForbiddenError
from common.security.dependencies import require_admin, require_user
from common.security.tokens import Identity, AdminRole
from ..repositories import user_repository, admin_repository

# Roles travel inside the token. These re-read the live record.


def require_active_user(identity: Identity = Depends(require_user), db: Session = Depends(get_db)) -> Identity:
    user = user_repository.get_user_by_id(db, identity.id)
    if user is None or user.account_status != "active":
        raise ForbiddenError("Account is not active")
    return identity


def require_super_admin(identity: Identity = Depends(require_admin), db: Session = Depends(get_db)) -> Identity:
    admin = admin_repository.get_admin_by_id(db, identity.id)
    if admin is None or not admin.is_active or admin.role != AdminRole.SUPER.value:
        raise ForbiddenError("Super admin access required")
    return identity
