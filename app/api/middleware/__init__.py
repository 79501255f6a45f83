# 📄 File: app/api/middleware/__init__.py
# 🧭 Purpose (Layman Explanation): 
# This file organizes the middleware components that wrap every request to the KrishiVedha API,
# stamping each one with an ID, logging it, adding safety headers and catching errors.
# 🧪 Purpose (Technical Summary): 
# Package initialization for API middleware components, providing centralized imports and configuration
# for request logging, security headers and error handling middleware.
# 🔗 Dependencies: 
# FastAPI middleware components, app.shared.core
# 🔄 Connected Modules / Calls From: 
# app.main.py, FastAPI application setup, middleware registration

"""
KrishiVedha API Middleware Package

Per-route admission (rate limiting, authentication, validation, ownership)
runs as FastAPI dependencies; this package holds the cross-cutting layers
wrapped around every request.

Middleware Stack Order (outermost first):
    1. RequestLoggingMiddleware (request ID, access log)
    2. SecurityHeadersMiddleware (response hardening headers)
    3. ErrorHandlingMiddleware (last-resort error envelope)
    4. Application Routes (innermost)
"""

from typing import Any, Dict

# Middleware configuration constants
MIDDLEWARE_CONFIG = {
    "logging": {
        "enabled": True,
        "exclude_paths": [
            "/health/live",
        ],
    },
    "security_headers": {
        "enabled": True,
        "content_security_policy": (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; "
            "script-src 'self'; img-src 'self' data: https:"
        ),
        "hsts": "max-age=31536000; includeSubDomains; preload",
    },
}

# Common HTTP headers used by middleware
COMMON_HEADERS = {
    "REQUEST_ID": "X-Request-ID",
    "RESPONSE_TIME": "X-Response-Time",
    "API_VERSION": "X-API-Version",
}


def get_middleware_config(middleware_name: str) -> Dict[str, Any]:
    """
    Get configuration for a specific middleware
    
    Args:
        middleware_name: Name of the middleware
        
    Returns:
        Middleware configuration dictionary
    """
    return MIDDLEWARE_CONFIG.get(middleware_name, {})


def should_exclude_path(middleware_name: str, path: str) -> bool:
    """
    Check if a path should be excluded from middleware processing
    
    Args:
        middleware_name: Name of the middleware
        path: Request path to check
        
    Returns:
        True if path should be excluded, False otherwise
    """
    exclude_paths = get_middleware_config(middleware_name).get("exclude_paths", [])

    # Check for exact matches and prefix matches
    for exclude_path in exclude_paths:
        if path == exclude_path or path.startswith(exclude_path + "/"):
            return True

    return False


from .error_handling import ErrorHandlingMiddleware, build_error_response, register_exception_handlers
from .logging import RequestLoggingMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "MIDDLEWARE_CONFIG",
    "COMMON_HEADERS",
    "get_middleware_config",
    "should_exclude_path",
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "build_error_response",
    "register_exception_handlers",
]
