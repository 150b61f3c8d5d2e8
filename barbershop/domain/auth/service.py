"""Auth service - Registration, login with lockout, token issuing and profile changes"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import ACCESS_TOKEN, REFRESH_TOKEN, resolve_token_user
from ...config import (
    ACCESS_TOKEN_EXPIRE_HOURS,
    ACCOUNT_LOCK_MINUTES,
    MAX_FAILED_LOGIN_ATTEMPTS,
    REFRESH_TOKEN_EXPIRE_DAYS,
)
from ...errors import ConflictError, ForbiddenError, UnauthorizedError
from ...models import User
from ...security_utils import (
    create_jwt_token,
    hash_password_bcrypt,
    log_security_event,
    verify_password_bcrypt,
)
from ...shared.constants import USER_ACTIVE
from ...shared.timeutils import utcnow
from .repository import UserRepository
from .schemas import ChangePasswordRequest, LoginRequest, ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def issue_tokens(self, user: User) -> dict:
        claims = {"sub": str(user.id), "email": user.email, "user_type": user.user_type}
        access_ttl = timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
        return {
            "access_token": create_jwt_token({**claims, "type": ACCESS_TOKEN}, access_ttl),
            "refresh_token": create_jwt_token(
                {**claims, "type": REFRESH_TOKEN}, timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
            ),
            "token_type": "bearer",
            "expires_in": int(access_ttl.total_seconds()),
            "user": user,
        }

    def register(self, data: RegisterRequest) -> dict:
        logger.info(f"📥 Registering {data.user_type} account for {data.email}")

        if self.repo.get_by_email(self.db, data.email):
            raise ConflictError("An account with this email already exists")

        user = self.repo.create_user(
            self.db,
            email=data.email,
            password_hash=hash_password_bcrypt(data.password),
            name=data.name,
            phone=data.phone,
            user_type=data.user_type,
            status=USER_ACTIVE,
        )
        log_security_event("register", user_id=user.id, details={"user_type": user.user_type})
        logger.info(f"✅ Registered user {user.id}")
        return self.issue_tokens(user)

    def login(self, data: LoginRequest, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_by_email(self.db, data.email)
        if not user:
            log_security_event("login_failed", ip_address=ip_address, details={"reason": "unknown_email"})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        now = utcnow()
        if user.locked_until and user.locked_until > now:
            log_security_event("login_locked", user_id=user.id, ip_address=ip_address)
            raise UnauthorizedError(
                f"Account is locked due to too many failed login attempts. Try again after {user.locked_until.isoformat()}"
            )

        if not verify_password_bcrypt(data.password, user.password_hash):
            attempts = (user.failed_login_attempts or 0) + 1
            updates = {"failed_login_attempts": attempts}
            if attempts >= MAX_FAILED_LOGIN_ATTEMPTS:
                updates["locked_until"] = now + timedelta(minutes=ACCOUNT_LOCK_MINUTES)
                logger.warning(f"⚠️ Locking user {user.id} after {attempts} failed logins")
            self.repo.update_user(self.db, user, **updates)
            log_security_event(
                "login_failed", user_id=user.id, ip_address=ip_address, details={"attempts": attempts}
            )
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if user.status != USER_ACTIVE:
            raise ForbiddenError("Account is not active")

        self.repo.update_user(
            self.db, user, failed_login_attempts=0, locked_until=None, last_login_at=now
        )
        log_security_event("login", user_id=user.id, ip_address=ip_address)
        return self.issue_tokens(user)

    def refresh(self, refresh_token: str) -> dict:
        user = resolve_token_user(self.db, refresh_token, expected_type=REFRESH_TOKEN)
        return self.issue_tokens(user)

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        updates = {}
        if data.name is not None:
            updates["name"] = data.name.strip()
        if data.phone is not None:
            updates["phone"] = data.phone
        if not updates:
            return user
        return self.repo.update_user(self.db, user, **updates)

    def change_password(self, user: User, data: ChangePasswordRequest) -> None:
        if not verify_password_bcrypt(data.current_password, user.password_hash):
            log_security_event("password_change_failed", user_id=user.id)
            raise UnauthorizedError("Current password is incorrect")

        self.repo.update_user(self.db, user, password_hash=hash_password_bcrypt(data.new_password))
        log_security_event("password_changed", user_id=user.id)
