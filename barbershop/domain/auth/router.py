"""Auth router - registration, login and account endpoints"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import AUTH_RATE_LIMIT_REQUESTS, AUTH_RATE_LIMIT_WINDOW
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter, get_client_ip
from ...security_utils import log_security_event
from ...shared.responses import MessageData, SuccessResponse, ok
from .schemas import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)

auth_rate_limit = create_rate_limiter(
    limit=AUTH_RATE_LIMIT_REQUESTS, window_seconds=AUTH_RATE_LIMIT_WINDOW, key_prefix="rate_limit:auth"
)

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db)


# ============================================================================
# PUBLIC
# ============================================================================


@router.post(
    "/register",
    response_model=SuccessResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_rate_limit)],
)
def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create a customer or barber account and return a token pair"""
    return ok(service.register(data))


@router.post(
    "/login", response_model=SuccessResponse[TokenResponse], dependencies=[Depends(auth_rate_limit)]
)
def login(
    data: LoginRequest, request: Request, service: AuthService = Depends(get_auth_service)
):
    return ok(service.login(data, ip_address=get_client_ip(request)))


@router.post(
    "/refresh", response_model=SuccessResponse[TokenResponse], dependencies=[Depends(auth_rate_limit)]
)
def refresh(data: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a new token pair"""
    return ok(service.refresh(data.refresh_token))


# ============================================================================
# AUTHENTICATED
# ============================================================================


@router.get("/me", response_model=SuccessResponse[UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ok(current_user)


@router.put("/profile", response_model=SuccessResponse[UserResponse])
def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return ok(service.update_profile(current_user, data))


@router.post("/change-password", response_model=SuccessResponse[MessageData])
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    service.change_password(current_user, data)
    return ok({"message": "Password changed successfully"})


@router.post("/logout", response_model=SuccessResponse[MessageData])
def logout(request: Request, current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards them"""
    log_security_event("logout", user_id=current_user.id, ip_address=get_client_ip(request))
    return ok({"message": "Logged out successfully"})
