"""
Security headers for API responses

The header set is computed once at import; HSTS is only sent when
ENVIRONMENT=production. Booking and account payloads are personal, so
responses default to no-store unless a route set its own Cache-Control.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import FRONTEND_URL

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
FRONTEND_ORIGINS = [
    o.strip() for o in os.getenv("FRONTEND_ORIGINS", FRONTEND_URL).split(",") if o.strip()
]

# Features a JSON API never needs
DISABLED_FEATURES = ("camera", "geolocation", "microphone", "payment", "usb")


def build_security_headers(production: bool = IS_PRODUCTION) -> dict[str, str]:
    csp = "; ".join(
        [
            "default-src 'none'",
            "frame-ancestors " + " ".join(["'self'", *FRONTEND_ORIGINS]),
            "base-uri 'none'",
        ]
    )
    headers = {
        "X-Frame-Options": "SAMEORIGIN",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": csp,
        "Permissions-Policy": ", ".join(f"{feature}=()" for feature in DISABLED_FEATURES),
    }
    if production:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = build_security_headers()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(self.headers)
        response.headers.setdefault("Cache-Control", "no-store")
        return response
