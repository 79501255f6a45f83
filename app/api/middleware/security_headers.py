# 📄 File: app/api/middleware/security_headers.py
# 🧭 Purpose (Layman Explanation): 
# Adds protective labels to every answer the API sends so browsers refuse to run injected scripts,
# embed our pages in other sites or guess file types.
# 🧪 Purpose (Technical Summary): 
# Security headers middleware adding Content-Security-Policy, HSTS, X-Content-Type-Options,
# X-Frame-Options and related hardening headers to all responses, error responses included.
# 🔗 Dependencies: 
# starlette BaseHTTPMiddleware, app.shared.config.settings
# 🔄 Connected Modules / Calls From: 
# app.main.py (middleware registration)

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from app.shared.config.settings import Settings, get_settings

from . import get_middleware_config


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security headers middleware for enhanced security.
    Adds various security headers to all responses.
    """

    def __init__(self, app: ASGIApp, settings: Settings = None):
        super().__init__(app)
        self.settings = settings or get_settings()
        config = get_middleware_config("security_headers")

        self.security_headers = {
            # Prevent MIME type sniffing
            "X-Content-Type-Options": "nosniff",

            # Prevent clickjacking
            "X-Frame-Options": "DENY",

            # Enforce HTTPS
            "Strict-Transport-Security": config["hsts"],

            # Content Security Policy
            "Content-Security-Policy": config["content_security_policy"],

            "Referrer-Policy": "strict-origin-when-cross-origin",
            "X-API-Version": "v1",
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Add security headers to responses."""
        response = await call_next(request)
        for header, value in self.security_headers.items():
            response.headers.setdefault(header, value)
        return response
