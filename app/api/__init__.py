# 📄 File: app/api/__init__.py
# 🧭 Purpose (Layman Explanation): 
# This file marks the api folder as a Python package so other parts of the app can import and use
# the API functionality, like a table of contents for all our API features.
# 🧪 Purpose (Technical Summary): 
# Package initialization for the API layer, providing version constants and the
# exceptions shared by every endpoint.
# 🔗 Dependencies: 
# app.shared.core.exceptions
# 🔄 Connected Modules / Calls From: 
# app.main.py, all API route imports, middleware imports

"""
KrishiVedha API Package

Structure:
    api/
    ├── __init__.py          # This file
    ├── middleware/          # Error handling, request logging, security headers
    └── v1/                  # API version 1
        ├── router.py        # Main v1 router
        └── health.py        # Health check endpoints
"""

# API configuration constants
API_PREFIX = "/api"
CURRENT_VERSION = "v1"
SUPPORTED_VERSIONS = ["v1"]

# API response headers
DEFAULT_HEADERS = {
    "X-API-Version": CURRENT_VERSION,
    "X-App-Name": "KrishiVedha",
}

from app.shared.core.exceptions import (
    KrishiVedhaException,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    RateLimitError,
)

__all__ = [
    "KrishiVedhaException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitError",
    "API_PREFIX",
    "CURRENT_VERSION",
    "SUPPORTED_VERSIONS",
    "DEFAULT_HEADERS",
]
