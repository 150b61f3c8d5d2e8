"""
Security utilities: password hashing, JWT handling and security audit logging
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt
from passlib.context import CryptContext

from .config import BCRYPT_ROUNDS, JWT_ALGORITHM, SECRET_KEY

logger = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password_bcrypt(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password_bcrypt(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


def check_password_strength(password: str) -> dict[str, Any]:
    """
    Check a password against the account password rules

    Returns:
        dict with 'is_valid' (bool) and 'feedback' (list of problems)
    """
    feedback = []

    if len(password) < PASSWORD_MIN_LENGTH:
        feedback.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        feedback.append(f"Password must be at most {PASSWORD_MAX_LENGTH} characters long")
    if not re.search(r"[A-Za-z]", password):
        feedback.append("Add letters")
    if not re.search(r"\d", password):
        feedback.append("Add numbers")

    common_passwords = ["password1", "12345678", "qwerty123", "letmein1"]
    if password.lower() in common_passwords:
        feedback.append("This is a commonly used password - choose something unique")

    return {"is_valid": not feedback, "feedback": feedback}


# ============================================================================
# TOKEN GENERATION & VALIDATION
# ============================================================================


def create_jwt_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT token

    Args:
        data: Claims to encode in the token
        expires_delta: Token expiration time (default 15 minutes)
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=15))

    to_encode.update({"exp": expire, "iat": now})
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def log_security_event(
    event_type: str,
    user_id: Optional[int] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """
    Log security-related events for audit trail

    Args:
        event_type: Type of security event (login, logout, failed_auth, etc.)
        user_id: User identifier
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": details or {},
    }

    logger.info(f"SECURITY_EVENT: {log_entry}")
