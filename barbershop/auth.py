import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import ForbiddenError, UnauthorizedError
from .models import User
from .security_utils import verify_jwt_token
from .shared.constants import USER_ACTIVE

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def resolve_token_user(db: Session, token: str, expected_type: str = ACCESS_TOKEN) -> User:
    """Decode a bearer token and load its active user, raising 401 on any failure"""
    payload = verify_jwt_token(token)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")

    if payload.get("type") != expected_type:
        logger.warning(f"⚠️ Rejected {payload.get('type')} token where {expected_type} was expected")
        raise UnauthorizedError("Invalid token type")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token subject") from None

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UnauthorizedError("User not found")

    if user.status != USER_ACTIVE:
        logger.warning(f"⚠️ Token presented for {user.status} user {user.id}")
        raise UnauthorizedError("Account is not active")

    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Authenticated user from the Authorization: Bearer header"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authenticated. Please provide a valid Bearer token in the Authorization header.")
    return resolve_token_user(db, credentials.credentials)


def require_roles(*roles: str):
    """
    Create a dependency that only admits users of the given types

    Example usage:
        @router.post("", dependencies=[Depends(require_roles("admin"))])
    """

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.user_type not in roles:
            logger.warning(
                f"⚠️ User {current_user.id} ({current_user.user_type}) denied, requires one of {roles}"
            )
            raise ForbiddenError(f"This action requires one of the roles: {', '.join(roles)}")
        return current_user

    return role_checker
