"""
Security Headers Middleware for FastAPI

Adds security headers to all responses:
- X-Frame-Options: Prevents clickjacking attacks
- X-Content-Type-Options: Prevents MIME type sniffing
- Referrer-Policy: Controls referrer information leakage
- Content-Security-Policy: Restricts resource loading
- Strict-Transport-Security: Enforces HTTPS (production only)
- Permissions-Policy: Controls browser features
- Cache-Control: Prevents caching of API responses
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import IS_PRODUCTION

logger = logging.getLogger(__name__)

# The API only serves JSON, so nothing may be loaded or framed
CSP_POLICY = "; ".join(
    [
        "default-src 'none'",
        "frame-ancestors 'none'",
        "base-uri 'none'",
        "form-action 'none'",
    ]
)

PERMISSIONS_POLICY = ", ".join(
    [
        "accelerometer=()",
        "camera=()",
        "geolocation=()",
        "gyroscope=()",
        "magnetometer=()",
        "microphone=()",
        "payment=()",
        "usb=()",
    ]
)


def get_security_headers_dict() -> dict:
    """Security headers applied to every API response"""
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": CSP_POLICY,
        "Permissions-Policy": PERMISSIONS_POLICY,
        "X-Permitted-Cross-Domain-Policies": "none",
    }

    if IS_PRODUCTION:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all responses"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.headers = get_security_headers_dict()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Skip security headers for excluded paths (e.g., health checks)
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        for name, value in self.headers.items():
            response.headers[name] = value

        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        return response
