# 📄 File: app/api/v1/__init__.py
# 🧭 Purpose (Layman Explanation): 
# This file organizes version 1 of our API, like having a dedicated section for the first version
# of the KrishiVedha features so we can add new versions later without breaking existing apps.
# 🧪 Purpose (Technical Summary): 
# Package initialization for API version 1, providing route prefixes, OpenAPI tags and
# version-specific configuration for all v1 API endpoints.
# 🔗 Dependencies: 
# None (package initialization)
# 🔄 Connected Modules / Calls From: 
# app.api.v1.router, app.main.py, all v1 route modules

"""
KrishiVedha API Version 1

Core Features:
- User registration, login, password reset and profile
- Farm management
- Crop management and crop photo uploads
- Community posts and comments

Structure:
    v1/
    ├── __init__.py          # This file
    ├── router.py            # Main v1 router aggregation
    └── health.py            # Health check endpoints
"""

from typing import Any, Dict

# API v1 metadata
__version__ = "1.0.0"
__api_version__ = "v1"
__status__ = "stable"

# API v1 route prefixes
ROUTE_PREFIXES = {
    "auth": "/auth",
    "farms": "/farms",
    "crops": "/crops",
    "community": "/community",
}

# API v1 tags for OpenAPI documentation
API_TAGS = [
    {
        "name": "Authentication",
        "description": "Registration, login, password reset and profile",
    },
    {
        "name": "Farms",
        "description": "Farm management",
    },
    {
        "name": "Crops",
        "description": "Crop management and crop photos",
    },
    {
        "name": "Community",
        "description": "Community posts and comments",
    },
    {
        "name": "Health Check",
        "description": "System health and status monitoring",
    },
    {
        "name": "API Info",
        "description": "API version information",
    },
]

# Response schemas for common API responses
COMMON_RESPONSES = {
    400: {"description": "Bad request - validation error"},
    401: {"description": "Unauthorized - authentication required"},
    403: {"description": "Forbidden - not the owner of the resource"},
    404: {"description": "Resource not found"},
    429: {"description": "Too many requests - rate limit exceeded"},
}


def get_api_info() -> Dict[str, Any]:
    """
    Get API v1 information and configuration
    
    Returns:
        Dictionary with API v1 metadata and configuration
    """
    return {
        "version": __version__,
        "api_version": __api_version__,
        "status": __status__,
        "route_prefixes": ROUTE_PREFIXES,
    }


__all__ = [
    "ROUTE_PREFIXES",
    "API_TAGS",
    "COMMON_RESPONSES",
    "get_api_info",
]
