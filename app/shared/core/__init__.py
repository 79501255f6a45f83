"""
Core utilities package for the KrishiVedha API.
Provides the admission pipeline stages, error classification and retry orchestration.
"""

from .authorization import (
    OwnershipAuthorizer,
    ResourceLoaderRegistry,
    ResourceReference,
    extract_owner_id,
)
from .error_classifier import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    get_error_classifier,
)
from .exceptions import (
    KrishiVedhaException,
    AuthenticationError,
    AuthorizationError,
    AuthReason,
    ValidationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
    NetworkError,
    OfflineError,
    ExternalServiceError,
)
from .rate_limiter import (
    MemoryBucketStore,
    RateLimiter,
    RateLimitTier,
    RedisBucketStore,
    STANDARD_TIERS,
    build_rate_limiters,
)
from .retry import RetryOrchestrator, RetryPolicy, resolve_policy
from .sanitizer import sanitize
from .security import Authenticator, Principal, TokenService
from .validation import RequestValidator, validate_object_id

__all__ = [
    # Authorization
    "OwnershipAuthorizer",
    "ResourceLoaderRegistry",
    "ResourceReference",
    "extract_owner_id",

    # Error classification
    "ClassifiedError",
    "ErrorClassifier",
    "ErrorKind",
    "get_error_classifier",

    # Exceptions
    "KrishiVedhaException",
    "AuthenticationError",
    "AuthorizationError",
    "AuthReason",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "NetworkError",
    "OfflineError",
    "ExternalServiceError",

    # Rate limiting
    "MemoryBucketStore",
    "RateLimiter",
    "RateLimitTier",
    "RedisBucketStore",
    "STANDARD_TIERS",
    "build_rate_limiters",

    # Retry
    "RetryOrchestrator",
    "RetryPolicy",
    "resolve_policy",

    # Sanitizing, security, validation
    "sanitize",
    "Authenticator",
    "Principal",
    "TokenService",
    "RequestValidator",
    "validate_object_id",
]
