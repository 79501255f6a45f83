"""
Error classification for the KrishiVedha API.

Maps any raised failure (our own exception types, framework HTTP errors,
socket/OS errors, or plain error payloads received from other services)
onto exactly one entry of a closed taxonomy. The result carries the
retry and recovery metadata used by the error envelope and by the retry
orchestrator.

Classification order:
    1. Typed application exceptions are mapped by type.
    2. Everything else walks CLASSIFICATION_RULES top to bottom; the first
       rule with a matching code, status, name, type or text fragment wins.
    3. No match means SERVER.
"""

import errno
import math
import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    AuthReason,
    ConflictError,
    NetworkError,
    NotFoundError,
    OfflineError,
    RateLimitError,
    ValidationError,
)
from .validation import format_errors


class ErrorKind(str, Enum):
    """Closed error taxonomy."""
    NETWORK = "NETWORK_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    AUTH = "AUTH_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    NOT_FOUND = "NOT_FOUND_ERROR"
    OFFLINE = "OFFLINE_ERROR"
    CONFLICT = "CONFLICT_ERROR"
    SERVER = "SERVER_ERROR"


@dataclass(frozen=True)
class KindProfile:
    """Fixed metadata attached to every classification of one kind."""
    code: str
    status_code: int
    message: str
    user_message: str
    retryable: bool
    recovery_type: str
    retry_after_ms: Optional[int] = None
    requires_resolution: bool = False


KIND_PROFILES: Dict[ErrorKind, KindProfile] = {
    ErrorKind.NETWORK: KindProfile(
        code="NET_001",
        status_code=503,
        message="Network connection failed. Please check your internet connection and try again.",
        user_message="Connection problem. Please try again.",
        retryable=True,
        recovery_type="retry",
        retry_after_ms=5000,
    ),
    ErrorKind.VALIDATION: KindProfile(
        code="VAL_001",
        status_code=400,
        message="The information provided is invalid.",
        user_message="Please check your input and try again.",
        retryable=False,
        recovery_type="fix_input",
    ),
    ErrorKind.AUTH: KindProfile(
        code=AuthReason.REQUIRED,
        status_code=401,
        message="Authentication failed. Please log in again.",
        user_message="Session expired. Please log in again.",
        retryable=False,
        recovery_type="reauthenticate",
    ),
    ErrorKind.AUTHORIZATION: KindProfile(
        code="AUTHZ_001",
        status_code=403,
        message="Access denied: You can only modify your own resources.",
        user_message="You don't have permission to perform this action.",
        retryable=False,
        recovery_type="contact_owner",
    ),
    ErrorKind.RATE_LIMIT: KindProfile(
        code="RATE_001",
        status_code=429,
        message="Too many requests. Please wait before trying again.",
        user_message="Slow down! Please wait a moment before trying again.",
        retryable=True,
        recovery_type="wait_retry",
        retry_after_ms=60000,
    ),
    ErrorKind.NOT_FOUND: KindProfile(
        code="NOT_001",
        status_code=404,
        message="The requested resource was not found.",
        user_message="The item you're looking for doesn't exist or has been removed.",
        retryable=False,
        recovery_type="navigate_back",
    ),
    ErrorKind.OFFLINE: KindProfile(
        code="OFF_001",
        status_code=503,
        message="You appear to be offline. Changes will be saved locally.",
        user_message="No internet connection. Working offline.",
        retryable=True,
        recovery_type="offline_mode",
        retry_after_ms=10000,
    ),
    ErrorKind.CONFLICT: KindProfile(
        code="CONF_001",
        status_code=409,
        message="Conflict detected. Data has been modified by another user.",
        user_message="Someone else updated this data. Please refresh and try again.",
        retryable=True,
        recovery_type="resolve_conflict",
        requires_resolution=True,
    ),
    ErrorKind.SERVER: KindProfile(
        code="SVR_001",
        status_code=500,
        message="An unexpected error occurred. Please try again later.",
        user_message="Something went wrong. Please try again.",
        retryable=True,
        recovery_type="retry",
        retry_after_ms=30000,
    ),
}

AUTH_REASON_MESSAGES: Dict[str, str] = {
    AuthReason.NO_TOKEN: "Access token required",
    AuthReason.INVALID_TOKEN: "Invalid token",
    AuthReason.TOKEN_EXPIRED: "Token expired",
    AuthReason.USER_NOT_FOUND: "User not found",
    AuthReason.USER_INACTIVE: "User account is inactive",
}

# (operation, kind) -> user-facing text
OPERATION_MESSAGES: Dict[Tuple[str, ErrorKind], str] = {
    ("save_crop", ErrorKind.NETWORK): "Unable to save your crop information. Please check your connection.",
    ("save_crop", ErrorKind.VALIDATION): "Please check your crop details and try again.",
    ("save_crop", ErrorKind.SERVER): "Failed to save crop. Please try again.",
    ("upload_image", ErrorKind.NETWORK): "Image upload failed. Please check your connection and try again.",
    ("upload_image", ErrorKind.VALIDATION): "Image is too large or not a supported type. Please choose another image.",
    ("upload_image", ErrorKind.SERVER): "Failed to upload image. Please try again.",
    ("sync_data", ErrorKind.NETWORK): "Unable to sync your data. Working offline for now.",
    ("sync_data", ErrorKind.CONFLICT): "Data conflict detected. Please resolve conflicts and try again.",
    ("sync_data", ErrorKind.SERVER): "Sync failed. Your changes are saved locally.",
    ("load_data", ErrorKind.NETWORK): "Unable to load fresh data. Showing offline data.",
    ("load_data", ErrorKind.NOT_FOUND): "The requested information is not available.",
    ("load_data", ErrorKind.SERVER): "Failed to load data. Please refresh and try again.",
}

RECOVERY_SUGGESTIONS: Dict[ErrorKind, Tuple[str, ...]] = {
    ErrorKind.NETWORK: ("Check your internet connection", "Try again in a few moments"),
    ErrorKind.VALIDATION: ("Review the information you entered", "Make sure all required fields are filled"),
    ErrorKind.AUTH: ("Log out and log back in", "Check your credentials", "Contact support if the problem persists"),
    ErrorKind.AUTHORIZATION: ("Make sure you are signed in with the account that owns this item",),
    ErrorKind.RATE_LIMIT: ("Wait a moment before trying again", "Reduce the frequency of your requests"),
    ErrorKind.NOT_FOUND: ("Refresh the list and try again",),
    ErrorKind.OFFLINE: ("Continue working offline", "Your changes will sync when you are back online"),
    ErrorKind.CONFLICT: ("Refresh to see the latest version", "Choose which changes to keep"),
}
DEFAULT_SUGGESTIONS: Tuple[str, ...] = ("Try again later", "Contact support if the problem persists")

# Operations that can carry on without connectivity
OFFLINE_CAPABLE_OPERATIONS = frozenset({"save_crop", "sync_data", "load_data", "save_activity"})

NETWORK_ERROR_CODES = frozenset({
    "NETWORK_ERROR", "ENOTFOUND", "ECONNREFUSED", "ECONNRESET", "ETIMEDOUT",
    "EHOSTUNREACH", "ENETUNREACH", "EAI_AGAIN",
})


@dataclass(frozen=True)
class FailureFacts:
    """The observable attributes of a raw failure the rule table matches on."""
    message: str
    status: Optional[int]
    name: str
    code: Optional[str]
    offline: bool
    exception: Optional[BaseException] = None


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of the ordered rule table. A rule matches when ANY of its
    predicates matches; empty predicates never match.
    """
    kind: ErrorKind
    codes: frozenset = frozenset()
    statuses: Tuple[int, ...] = ()
    names: Tuple[str, ...] = ()
    types: Tuple[Type[BaseException], ...] = ()
    text: Tuple[str, ...] = ()
    offline_marker: bool = False

    def matches(self, facts: FailureFacts) -> bool:
        if facts.code and facts.code.upper() in self.codes:
            return True
        if facts.status is not None and facts.status in self.statuses:
            return True
        if any(facts.name.endswith(name) for name in self.names):
            return True
        if self.types and isinstance(facts.exception, self.types):
            return True
        if self.offline_marker and facts.offline:
            return True
        return any(fragment in facts.message for fragment in self.text)


CLASSIFICATION_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        ErrorKind.NETWORK,
        codes=NETWORK_ERROR_CODES,
        types=(ConnectionError, TimeoutError, socket.gaierror),
        text=("network", "connection"),
    ),
    ClassificationRule(
        ErrorKind.VALIDATION,
        statuses=(400,),
        names=("ValidationError",),
        text=("validation",),
    ),
    ClassificationRule(
        ErrorKind.AUTH,
        statuses=(401,),
        names=("UnauthorizedError",),
        text=("unauthorized", "authentication"),
    ),
    ClassificationRule(ErrorKind.AUTHORIZATION, statuses=(403,)),
    ClassificationRule(
        ErrorKind.RATE_LIMIT,
        statuses=(429,),
        text=("rate limit", "too many requests"),
    ),
    ClassificationRule(ErrorKind.NOT_FOUND, statuses=(404,), text=("not found",)),
    ClassificationRule(
        ErrorKind.OFFLINE,
        codes=frozenset({"OFFLINE_ERROR", "OFFLINE"}),
        offline_marker=True,
        text=("offline",),
    ),
    ClassificationRule(
        ErrorKind.CONFLICT,
        statuses=(409,),
        codes=frozenset({"CONFLICT", "CONFLICT_ERROR"}),
        text=("conflict",),
    ),
)

TYPED_KINDS: Tuple[Tuple[Type[BaseException], ErrorKind], ...] = (
    (AuthenticationError, ErrorKind.AUTH),
    (AuthorizationError, ErrorKind.AUTHORIZATION),
    (ValidationError, ErrorKind.VALIDATION),
    (NotFoundError, ErrorKind.NOT_FOUND),
    (ConflictError, ErrorKind.CONFLICT),
    (RateLimitError, ErrorKind.RATE_LIMIT),
    (NetworkError, ErrorKind.NETWORK),
    (OfflineError, ErrorKind.OFFLINE),
)


@dataclass(frozen=True)
class ClassifiedError:
    """Result of classifying one raw failure. Produced only by ErrorClassifier."""
    kind: ErrorKind
    code: str
    message: str
    user_message: str
    retryable: bool
    status_code: int
    recovery: Dict[str, Any] = field(default_factory=dict)
    retry_after_ms: Optional[int] = None
    requires_resolution: bool = False
    field_errors: Tuple[Dict[str, Any], ...] = ()

    @property
    def auto_retryable(self) -> bool:
        """Whether a retry may be scheduled without the caller resolving anything first."""
        return self.retryable and not self.requires_resolution

    @property
    def retry_after_seconds(self) -> Optional[int]:
        if self.retry_after_ms is None:
            return None
        return max(1, math.ceil(self.retry_after_ms / 1000))

    def to_dict(self) -> Dict[str, Any]:
        """Error part of the response envelope."""
        payload: Dict[str, Any] = {
            "type": self.kind.value,
            "code": self.code,
            "message": self.message,
            "userMessage": self.user_message,
            "retryable": self.retryable,
            "recovery": dict(self.recovery),
        }
        if self.retry_after_ms is not None:
            payload["retryAfter"] = self.retry_after_seconds
        return payload


class ErrorClassifier:
    """
    Deterministic failure classifier.

    Holds no mutable state; classifying the same failure twice yields equal
    results.
    """

    def __init__(
        self,
        rules: Tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
        operation_messages: Optional[Mapping[Tuple[str, ErrorKind], str]] = None,
    ):
        self.rules = rules
        self.operation_messages = dict(
            OPERATION_MESSAGES if operation_messages is None else operation_messages
        )

    def classify(self, failure: Any, operation: Optional[str] = None) -> ClassifiedError:
        """
        Classify a raw failure.

        Args:
            failure: An exception, or a mapping with ``message``, ``status``,
                ``name``, ``code`` and ``offline`` keys
            operation: Optional operation name used to pick user-facing text

        Returns:
            ClassifiedError: The single matching taxonomy entry
        """
        facts = extract_facts(failure)
        kind = self.kind_of(facts)
        profile = KIND_PROFILES[kind]

        code = profile.code
        message = profile.message
        if kind is ErrorKind.AUTH:
            reason = getattr(failure, "reason", None)
            if reason in AUTH_REASON_MESSAGES:
                code = reason
                message = AUTH_REASON_MESSAGES[reason]

        status_code = profile.status_code
        if kind is ErrorKind.SERVER and facts.status is not None and 500 <= facts.status < 600:
            status_code = facts.status

        field_errors = tuple(_field_errors(failure))
        retry_after_ms = profile.retry_after_ms
        if kind is ErrorKind.RATE_LIMIT:
            retry_after_ms = _retry_after_ms(failure, default=profile.retry_after_ms)

        return ClassifiedError(
            kind=kind,
            code=code,
            message=message,
            user_message=self.user_message(kind, operation),
            retryable=profile.retryable,
            status_code=status_code,
            recovery=self._recovery(kind, profile, failure, field_errors, retry_after_ms, operation),
            retry_after_ms=retry_after_ms,
            requires_resolution=profile.requires_resolution,
            field_errors=field_errors,
        )

    def kind_of(self, facts: FailureFacts) -> ErrorKind:
        """Resolve the taxonomy entry for extracted failure facts."""
        if facts.exception is not None:
            for exc_type, kind in TYPED_KINDS:
                if isinstance(facts.exception, exc_type):
                    return kind
        for rule in self.rules:
            if rule.matches(facts):
                return rule.kind
        return ErrorKind.SERVER

    def user_message(self, kind: ErrorKind, operation: Optional[str] = None) -> str:
        """Operation-specific text, falling back to the generic message of the kind."""
        if operation:
            specific = self.operation_messages.get((operation, kind))
            if specific:
                return specific
        return KIND_PROFILES[kind].user_message

    def recovery_suggestions(self, kind: ErrorKind, operation: Optional[str] = None) -> List[str]:
        suggestions = list(RECOVERY_SUGGESTIONS.get(kind, DEFAULT_SUGGESTIONS))
        if kind is ErrorKind.NETWORK and operation in OFFLINE_CAPABLE_OPERATIONS:
            suggestions.append("Continue working offline")
        return suggestions

    def _recovery(
        self,
        kind: ErrorKind,
        profile: KindProfile,
        failure: Any,
        field_errors: Tuple[Dict[str, Any], ...],
        retry_after_ms: Optional[int],
        operation: Optional[str],
    ) -> Dict[str, Any]:
        recovery: Dict[str, Any] = {"type": profile.recovery_type}

        if kind is ErrorKind.NETWORK:
            recovery.update(maxAttempts=3, backoffMs=2000)
        elif kind is ErrorKind.SERVER:
            recovery.update(maxAttempts=1, backoffMs=5000)
        elif kind is ErrorKind.VALIDATION:
            recovery["fields"] = [error["field"] for error in field_errors if error.get("field")]
        elif kind is ErrorKind.AUTH:
            recovery["redirectTo"] = "/login"
        elif kind is ErrorKind.RATE_LIMIT:
            recovery["waitMs"] = retry_after_ms
        elif kind is ErrorKind.NOT_FOUND:
            recovery["fallbackRoute"] = "/dashboard"
        elif kind is ErrorKind.OFFLINE:
            recovery["enableOfflineSync"] = True
        elif kind is ErrorKind.CONFLICT:
            recovery["options"] = ["use_server", "use_local", "merge"]
            conflict_data = getattr(failure, "conflict_data", None)
            if conflict_data is not None:
                recovery["conflictData"] = conflict_data

        recovery["suggestions"] = self.recovery_suggestions(kind, operation)
        return recovery


# =============================================================================
# FACT EXTRACTION
# =============================================================================

def extract_facts(failure: Any) -> FailureFacts:
    """Read message, status, name, code and offline marker from a raw failure."""
    if isinstance(failure, Mapping):
        status = _as_int(failure.get("status") or failure.get("status_code") or failure.get("statusCode"))
        return FailureFacts(
            message=str(failure.get("message") or "").lower(),
            status=status,
            name=str(failure.get("name") or ""),
            code=_as_code(failure.get("code") or failure.get("type")),
            offline=bool(failure.get("offline", False)),
        )

    if isinstance(failure, BaseException):
        return FailureFacts(
            message=_message_of(failure).lower(),
            status=_status_of(failure),
            name=str(getattr(failure, "name", None) or type(failure).__name__),
            code=_code_of(failure),
            offline=bool(getattr(failure, "offline", False)),
            exception=failure,
        )

    return FailureFacts(message=str(failure or "").lower(), status=None, name="", code=None, offline=False)


def _message_of(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str):
        return message
    detail = getattr(exc, "detail", None)
    if isinstance(detail, str):
        return detail
    return str(exc)


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        status = _as_int(getattr(exc, attr, None))
        if status is not None:
            return status
    response = getattr(exc, "response", None)
    if response is not None:
        return _as_int(getattr(response, "status_code", None) or getattr(response, "status", None))
    return None


def _code_of(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "error_code", None) or getattr(exc, "code", None)
    if code is None and isinstance(exc, OSError) and exc.errno in errno.errorcode:
        code = errno.errorcode[exc.errno]
    return _as_code(code)


def _as_code(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return errno.errorcode.get(value)
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _field_errors(failure: Any) -> List[Dict[str, Any]]:
    errors = getattr(failure, "errors", None)
    if callable(errors):
        # pydantic and FastAPI validation errors expose errors() with "loc" entries
        raw = errors()
        return format_errors(raw) if isinstance(raw, list) else []
    if isinstance(errors, list):
        return [dict(error) for error in errors if isinstance(error, Mapping)]
    return []


def _retry_after_ms(failure: Any, default: Optional[int]) -> Optional[int]:
    retry_after_ms = getattr(failure, "retry_after_ms", None)
    if retry_after_ms is not None:
        return int(retry_after_ms)

    if isinstance(failure, Mapping):
        seconds = _as_int(failure.get("retryAfter") or failure.get("retry_after"))
    else:
        seconds = _as_int(getattr(failure, "retry_after", None))
        headers = getattr(failure, "headers", None) or {}
        if seconds is None and hasattr(headers, "get"):
            seconds = _as_int(headers.get("retry-after") or headers.get("Retry-After"))
    if seconds is not None:
        return seconds * 1000
    return default


_default_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get the shared classifier instance."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = ErrorClassifier()
    return _default_classifier
