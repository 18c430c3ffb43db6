from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from common.errors import AuthenticationError, ForbiddenError
from common.security.tokens import Identity, decode_access_token

auth_scheme = HTTPBearer(auto_error=False)


def get_current_identity(credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)) -> Identity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return decode_access_token(credentials.credentials)


def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise ForbiddenError("Admin access required")
    return identity


def require_user(identity: Identity = Depends(get_current_identity)) -> Identity:
    # Admin ids live in a separate table, so an admin token never names a user row
    if identity.is_admin:
        raise ForbiddenError("This action is only available to user accounts")
    return identity
