"""Tests for failure classification."""

import socket

import pytest
from starlette.exceptions import HTTPException

from app.shared.core.error_classifier import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    extract_facts,
)
from app.shared.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    AuthReason,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


class TestTypedFailures:
    """Test classification of application exception types."""

    def test_authentication_reason_becomes_code(self, classifier):
        result = classifier.classify(AuthenticationError("Token expired", reason=AuthReason.TOKEN_EXPIRED))
        assert result.kind is ErrorKind.AUTH
        assert result.code == "AUTH_TOKEN_EXPIRED"
        assert result.message == "Token expired"
        assert result.status_code == 401
        assert result.retryable is False
        assert result.recovery["redirectTo"] == "/login"

    def test_generic_authentication_code(self, classifier):
        result = classifier.classify(AuthenticationError("Invalid email or password"))
        assert result.code == "AUTH_001"

    def test_authorization(self, classifier):
        result = classifier.classify(AuthorizationError("Access denied"))
        assert result.kind is ErrorKind.AUTHORIZATION
        assert result.status_code == 403
        assert result.code == "AUTHZ_001"

    def test_validation_keeps_field_errors(self, classifier):
        errors = [{"field": "name", "message": "Field required", "value": None}]
        result = classifier.classify(ValidationError("Validation failed", errors=errors))
        assert result.kind is ErrorKind.VALIDATION
        assert result.field_errors == tuple(errors)
        assert result.recovery["fields"] == ["name"]

    def test_not_found(self, classifier):
        result = classifier.classify(NotFoundError("Farm not found"))
        assert result.kind is ErrorKind.NOT_FOUND
        assert result.status_code == 404
        assert result.retryable is False

    def test_conflict_requires_resolution(self, classifier):
        result = classifier.classify(ConflictError("Version mismatch", conflict_data={"version": 3}))
        assert result.kind is ErrorKind.CONFLICT
        assert result.retryable is True
        assert result.requires_resolution is True
        assert result.auto_retryable is False
        assert result.recovery["conflictData"] == {"version": 3}

    def test_rate_limit_uses_remaining_window(self, classifier):
        exc = RateLimitError("Too many", tier="auth", limit=5, window_ms=900_000, retry_after_ms=42_300)
        result = classifier.classify(exc)
        assert result.kind is ErrorKind.RATE_LIMIT
        assert result.retry_after_ms == 42_300
        assert result.retry_after_seconds == 43
        assert result.to_dict()["retryAfter"] == 43

    def test_storage_failure_is_server_error(self, classifier):
        result = classifier.classify(ExternalServiceError("Image storage write failed", service="image_storage"))
        assert result.kind is ErrorKind.SERVER
        assert result.status_code == 502
        assert result.retryable is True


class TestRuleTable:
    """Test the ordered rules for untyped failures."""

    def test_connection_errors_are_network(self, classifier):
        assert classifier.classify(ConnectionRefusedError()).kind is ErrorKind.NETWORK
        assert classifier.classify(TimeoutError()).kind is ErrorKind.NETWORK
        assert classifier.classify(socket.gaierror()).kind is ErrorKind.NETWORK

    def test_network_code(self, classifier):
        assert classifier.classify({"code": "ECONNRESET"}).kind is ErrorKind.NETWORK

    def test_network_wins_over_status(self, classifier):
        result = classifier.classify({"message": "Network request failed", "status": 404})
        assert result.kind is ErrorKind.NETWORK

    def test_status_codes(self, classifier):
        assert classifier.classify({"status": 400}).kind is ErrorKind.VALIDATION
        assert classifier.classify({"status": 401}).kind is ErrorKind.AUTH
        assert classifier.classify({"status": 403}).kind is ErrorKind.AUTHORIZATION
        assert classifier.classify({"status": 429}).kind is ErrorKind.RATE_LIMIT
        assert classifier.classify({"status": 404}).kind is ErrorKind.NOT_FOUND
        assert classifier.classify({"status": 409}).kind is ErrorKind.CONFLICT

    def test_message_fragments(self, classifier):
        assert classifier.classify(RuntimeError("Unauthorized access")).kind is ErrorKind.AUTH
        assert classifier.classify(RuntimeError("Rate limit reached")).kind is ErrorKind.RATE_LIMIT
        assert classifier.classify(RuntimeError("Record not found")).kind is ErrorKind.NOT_FOUND

    def test_validation_name_suffix(self, classifier):
        assert classifier.classify({"name": "SchemaValidationError"}).kind is ErrorKind.VALIDATION

    def test_offline_marker(self, classifier):
        result = classifier.classify({"offline": True, "message": "queued"})
        assert result.kind is ErrorKind.OFFLINE
        assert result.recovery["enableOfflineSync"] is True

    def test_unmatched_is_server(self, classifier):
        result = classifier.classify(RuntimeError("boom"))
        assert result.kind is ErrorKind.SERVER
        assert result.status_code == 500
        assert result.retryable is True

    def test_server_keeps_5xx_status(self, classifier):
        assert classifier.classify({"status": 502}).status_code == 502

    def test_http_exception(self, classifier):
        assert classifier.classify(HTTPException(status_code=404)).kind is ErrorKind.NOT_FOUND
        assert classifier.classify(HTTPException(status_code=405)).kind is ErrorKind.SERVER

    def test_rate_limit_retry_after_header(self, classifier):
        exc = HTTPException(status_code=429, headers={"Retry-After": "7"})
        assert classifier.classify(exc).retry_after_ms == 7000

    def test_rate_limit_default_wait(self, classifier):
        assert classifier.classify({"status": 429}).retry_after_ms == 60_000

    def test_deterministic(self, classifier):
        failure = {"status": 503, "message": "upstream"}
        assert classifier.classify(failure) == classifier.classify(failure)


class TestMessages:
    """Test user-facing text."""

    def test_operation_specific_message(self, classifier):
        result = classifier.classify(ConnectionError(), operation="upload_image")
        assert result.user_message == "Image upload failed. Please check your connection and try again."

    def test_generic_message_fallback(self, classifier):
        result = classifier.classify(NotFoundError(), operation="upload_image")
        assert result.user_message == "The item you're looking for doesn't exist or has been removed."

    def test_offline_suggestion_for_offline_capable_operation(self, classifier):
        suggestions = classifier.recovery_suggestions(ErrorKind.NETWORK, "sync_data")
        assert "Continue working offline" in suggestions
        assert "Continue working offline" not in classifier.recovery_suggestions(ErrorKind.NETWORK, "upload_image")

    def test_to_dict(self, classifier):
        payload = classifier.classify(NotFoundError("Crop not found")).to_dict()
        assert payload["type"] == "NOT_FOUND_ERROR"
        assert payload["code"] == "NOT_001"
        assert payload["retryable"] is False
        assert "retryAfter" not in payload


class TestExtractFacts:
    def test_mapping(self):
        facts = extract_facts({"message": "Connection RESET", "statusCode": "503", "code": "econnreset"})
        assert facts.message == "connection reset"
        assert facts.status == 503
        assert facts.code == "econnreset"

    def test_os_error_code(self):
        import errno

        facts = extract_facts(OSError(errno.ECONNREFUSED, "refused"))
        assert facts.code == "ECONNREFUSED"

    def test_classified_error_is_frozen(self, classifier):
        result = classifier.classify(RuntimeError("x"))
        assert isinstance(result, ClassifiedError)
        with pytest.raises(Exception):
            result.kind = ErrorKind.AUTH
