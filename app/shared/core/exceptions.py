# 📄 File: app/shared/core/exceptions.py
# 🧭 Purpose (Layman Explanation):
# This file defines all the special error types the KrishiVedha API uses to communicate
# what went wrong (bad login, someone else's farm, too many requests) in a clear, organized way.
# 🧪 Purpose (Technical Summary):
# Custom exception hierarchy providing specific error types with HTTP status codes,
# error codes and details. Every type maps onto exactly one error-taxonomy kind in
# app.shared.core.error_classifier.
# 🔗 Dependencies:
# FastAPI status constants, typing
# 🔄 Connected Modules / Calls From:
# Admission pipeline stages, error classifier, retry orchestrator, API endpoints

from typing import Any, Dict, List, Optional

from fastapi import status


class KrishiVedhaException(Exception):
    """
    Base exception class for the KrishiVedha API.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__.upper()
        super().__init__(self.message)


# =============================================================================
# AUTHENTICATION & AUTHORIZATION EXCEPTIONS
# =============================================================================

class AuthReason:
    """Reasons an authentication attempt can fail, exposed as error codes."""
    NO_TOKEN = "AUTH_NO_TOKEN"
    INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    USER_NOT_FOUND = "AUTH_USER_NOT_FOUND"
    USER_INACTIVE = "AUTH_USER_INACTIVE"
    REQUIRED = "AUTH_001"


class AuthenticationError(KrishiVedhaException):
    """
    Exception raised for authentication failures.
    Used when the bearer credential is missing, invalid, expired or
    resolves to no usable identity. ``reason`` is one of ``AuthReason``.
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        reason: str = AuthReason.REQUIRED,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None
    ):
        if not details:
            details = {}
        if user_id:
            details["user_id"] = user_id

        self.reason = reason
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
            error_code=reason
        )


class AuthorizationError(KrishiVedhaException):
    """
    Exception raised for authorization failures.
    The actor is known but not permitted to act on the resource.
    """

    def __init__(
        self,
        message: str = "Access denied",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        if user_id:
            details["user_id"] = user_id

        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
            error_code="AUTHORIZATION_ERROR"
        )


# =============================================================================
# VALIDATION & DATA EXCEPTIONS
# =============================================================================

class ValidationError(KrishiVedhaException):
    """
    Exception raised for data validation failures.
    Carries every field violation found in one pass as
    ``[{"field", "message", "value"}]``.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[Dict[str, Any]]] = None,
        source: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}
        if source:
            details["source"] = source

        self.errors = errors or []
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code="VALIDATION_ERROR"
        )


class NotFoundError(KrishiVedhaException):
    """
    Exception raised when requested resource is not found.
    """

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code="NOT_FOUND"
        )


class ConflictError(KrishiVedhaException):
    """
    Exception raised for resource conflicts.
    Used when data was modified concurrently or a unique value already exists.
    """

    def __init__(
        self,
        message: str = "Resource conflict",
        resource_type: Optional[str] = None,
        conflict_field: Optional[str] = None,
        conflict_data: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if resource_type:
            details["resource_type"] = resource_type
        if conflict_field:
            details["conflict_field"] = conflict_field

        self.conflict_data = conflict_data
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
            error_code="CONFLICT_ERROR"
        )


# =============================================================================
# ADMISSION CONTROL EXCEPTIONS
# =============================================================================

class RateLimitError(KrishiVedhaException):
    """
    Exception raised when rate limits are exceeded.
    ``retry_after_ms`` is the time left in the current window.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        tier: Optional[str] = None,
        limit: Optional[int] = None,
        window_ms: Optional[int] = None,
        retry_after_ms: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if tier:
            details["tier"] = tier
        if limit:
            details["limit"] = limit
        if window_ms:
            details["window_ms"] = window_ms

        self.tier = tier
        self.limit = limit
        self.window_ms = window_ms
        self.retry_after_ms = retry_after_ms
        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details=details,
            error_code="RATE_LIMIT_EXCEEDED"
        )


# =============================================================================
# CONNECTIVITY & EXTERNAL SERVICE EXCEPTIONS
# =============================================================================

class NetworkError(KrishiVedhaException):
    """
    Exception raised when a call to another service cannot reach it.
    """

    def __init__(
        self,
        message: str = "Network connection failed",
        service: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}
        if service:
            details["service"] = service

        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            error_code="NETWORK_ERROR"
        )


class OfflineError(KrishiVedhaException):
    """
    Exception raised when the device or service is known to be offline.
    Resolved locally by queueing work rather than reported with a status.
    """

    def __init__(
        self,
        message: str = "Service is offline",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details,
            error_code="OFFLINE_ERROR"
        )


class ExternalServiceError(KrishiVedhaException):
    """
    Exception raised when external service calls fail.
    Raised by the image storage when a photo cannot be written.
    """

    def __init__(
        self,
        message: str = "External service error",
        service: Optional[str] = None,
        service_status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        if service:
            details["service"] = service
        if service_status_code:
            details["service_status_code"] = service_status_code

        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            details=details,
            error_code="EXTERNAL_SERVICE_ERROR"
        )
