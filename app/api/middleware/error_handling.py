# 📄 File: app/api/middleware/error_handling.py
# 🧭 Purpose (Layman Explanation):
# This file catches any errors that happen in our app and turns them into friendly, consistent error messages
# that farmers' phones can understand, like "please log in again" or "wait a minute before retrying".
# 🧪 Purpose (Technical Summary):
# Global error handling: every failure is classified once by the ErrorClassifier and rendered as the
# JSON error envelope with the matching HTTP status, rate-limit and authentication headers.
# Internal messages and tracebacks go to the log only.
# 🔗 Dependencies:
# FastAPI, starlette, app.shared.core.error_classifier, app.shared.core.exceptions
# 🔄 Connected Modules / Calls From:
# app.main.py (middleware and exception handler registration), all API endpoints

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.shared.core.error_classifier import ClassifiedError, ErrorClassifier, ErrorKind, get_error_classifier
from app.shared.core.exceptions import KrishiVedhaException, RateLimitError
from app.shared.utils.logging import get_logger

logger = get_logger(__name__)


def get_classifier(request: Request) -> ErrorClassifier:
    pipeline = getattr(request.app.state, "pipeline", None)
    return pipeline.classifier if pipeline is not None else get_error_classifier()


def public_message(exc: Exception, classified: ClassifiedError) -> str:
    """
    Top-level message of the envelope.

    Messages of our own exceptions and of client-side HTTP errors are meant
    for the caller; anything classified as SERVER gets the generic text.
    """
    if isinstance(exc, StarletteHTTPException) and exc.status_code < 500 and isinstance(exc.detail, str):
        return exc.detail
    if classified.kind is ErrorKind.SERVER:
        return classified.message
    if isinstance(exc, RequestValidationError):
        return "Validation failed"
    if isinstance(exc, KrishiVedhaException):
        return exc.message
    return classified.message


def rate_limit_headers(request: Request) -> Dict[str, str]:
    """Quota headers of the limits the request already passed, if any."""
    decision = getattr(request.state, "rate_limit", None)
    return decision.headers() if decision is not None else {}


def error_headers(exc: Exception, classified: ClassifiedError) -> Dict[str, str]:
    headers = {"X-Error-Code": classified.code}

    if classified.kind is ErrorKind.RATE_LIMIT and classified.retry_after_seconds is not None:
        headers["Retry-After"] = str(classified.retry_after_seconds)
        headers["RateLimit-Reset"] = str(classified.retry_after_seconds)
        headers["RateLimit-Remaining"] = "0"
        if isinstance(exc, RateLimitError) and exc.limit:
            headers["RateLimit-Limit"] = str(exc.limit)

    if classified.kind is ErrorKind.AUTH:
        headers["WWW-Authenticate"] = "Bearer"

    if isinstance(exc, StarletteHTTPException) and exc.headers:
        headers.update(exc.headers)

    return headers


def build_error_response(
    request: Request,
    exc: Exception,
    operation: Optional[str] = None,
) -> JSONResponse:
    """
    Classify ``exc`` and render the error envelope.

    Args:
        request: HTTP request the failure belongs to
        exc: The raw failure
        operation: Optional operation name for user-facing messages

    Returns:
        JSON error response
    """
    classified = get_classifier(request).classify(exc, operation)

    status_code = classified.status_code
    if isinstance(exc, StarletteHTTPException) and classified.kind is ErrorKind.SERVER:
        status_code = exc.status_code

    content: Dict[str, Any] = {
        "success": False,
        "message": public_message(exc, classified),
        "error": classified.to_dict(),
    }
    if classified.field_errors:
        content["errors"] = list(classified.field_errors)
    if classified.retry_after_seconds is not None and classified.kind is ErrorKind.RATE_LIMIT:
        content["retryAfter"] = classified.retry_after_seconds

    _log_error(request, exc, classified, status_code)

    headers = rate_limit_headers(request)
    headers.update(error_headers(exc, classified))
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content),
        headers=headers,
    )


def _log_error(request: Request, exc: Exception, classified: ClassifiedError, status_code: int) -> None:
    log_context = {
        "method": request.method,
        "path": str(request.url.path),
        "status_code": status_code,
        "error_type": classified.kind.value,
        "error_code": classified.code,
        "exception_type": type(exc).__name__,
    }

    if classified.kind is ErrorKind.SERVER and status_code >= 500:
        # Server errors - log as error with full traceback
        logger.error(
            f"Server error in {request.method} {request.url.path}: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
            **log_context
        )
    elif status_code >= 500:
        logger.warning(f"Service unavailable in {request.method} {request.url.path}: {exc}", **log_context)
    else:
        # Client errors - log as info (not our fault)
        logger.info(f"Client error in {request.method} {request.url.path}", **log_context)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Catches exceptions no registered handler took care of and converts
    them into the classified error envelope instead of a bare 500.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return build_error_response(request, exc)


async def _handle_exception(request: Request, exc: Exception) -> JSONResponse:
    return build_error_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Route our exceptions, request validation failures and HTTP errors through the classifier."""
    app.add_exception_handler(KrishiVedhaException, _handle_exception)
    app.add_exception_handler(RequestValidationError, _handle_exception)
    app.add_exception_handler(StarletteHTTPException, _handle_exception)
