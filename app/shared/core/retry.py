"""
Retry orchestration for internal operations.

Wraps a zero-argument coroutine function in an attempt loop driven by a
named RetryPolicy. Whether a failure is retried, and how long to wait
before the next attempt, depend only on the error classification and the
policy. The attempt loop is tenacity's AsyncRetrying with policy-derived
stop, wait and retry callables.
"""

import asyncio
import random
from dataclasses import dataclass, fields, replace
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_base,
    stop_after_attempt,
    stop_when_event_set,
)
from tenacity.wait import wait_base

from ..utils.logging import get_logger
from .error_classifier import ErrorClassifier, get_error_classifier

logger = get_logger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.1


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff shape for one class of operation."""
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    jitter: bool = True

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays must not be negative")
        if self.backoff_multiplier < 1:
            raise ValueError("backoff_multiplier must be at least 1")

    def delay_ms(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """
        Delay to wait after failed attempt number ``attempt`` (1-based).

        ``min(max_delay, base_delay * multiplier ** (attempt - 1))``, inflated by
        up to 10% when jitter is enabled.
        """
        delay = min(
            float(self.max_delay_ms),
            self.base_delay_ms * (self.backoff_multiplier ** (attempt - 1)),
        )
        if self.jitter and delay > 0:
            delay += delay * JITTER_RATIO * (rng or random).random()
        return delay


DEFAULT_POLICY = RetryPolicy()

RETRY_POLICIES: Dict[str, RetryPolicy] = {
    "api_call": replace(DEFAULT_POLICY, max_attempts=3, base_delay_ms=2000),
    "network_call": replace(DEFAULT_POLICY, max_attempts=3, base_delay_ms=1000),
    "file_upload": replace(DEFAULT_POLICY, max_attempts=2, base_delay_ms=5000),
    "sync_operation": replace(DEFAULT_POLICY, max_attempts=5, base_delay_ms=1000),
    "auth_request": replace(DEFAULT_POLICY, max_attempts=1, base_delay_ms=0),
    "critical_operation": replace(DEFAULT_POLICY, max_attempts=5, base_delay_ms=500),
}

_POLICY_FIELDS = {f.name for f in fields(RetryPolicy)}


def normalize_operation_class(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def resolve_policy(
    operation_class: str,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> RetryPolicy:
    """
    Resolve the policy for an operation class.

    Built-in entries are looked up by normalized name ("file-upload" and
    "file_upload" are the same class); unknown classes use the defaults.
    Override mappings are merged field by field on top.
    """
    key = normalize_operation_class(operation_class)
    policy = RETRY_POLICIES.get(key, DEFAULT_POLICY)

    for name, override in (overrides or {}).items():
        if normalize_operation_class(name) != key:
            continue
        unknown = set(override) - _POLICY_FIELDS
        if unknown:
            raise ValueError(f"Unknown retry policy fields for '{name}': {sorted(unknown)}")
        policy = replace(policy, **override)
    return policy


# =============================================================================
# TENACITY ADAPTERS
# =============================================================================

class retry_if_classified_retryable(retry_base):
    """Retry only failures the classifier marks as automatically retryable."""

    def __init__(self, classifier: ErrorClassifier, operation: Optional[str] = None):
        self.classifier = classifier
        self.operation = operation

    def __call__(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False
        exc = outcome.exception()
        # Task cancellation and interpreter exits are never retried
        if not isinstance(exc, Exception):
            return False
        return self.classifier.classify(exc, self.operation).auto_retryable


class wait_retry_policy(wait_base):
    """Backoff computed from a RetryPolicy, in seconds."""

    def __init__(self, policy: RetryPolicy, rng: Optional[random.Random] = None):
        self.policy = policy
        self.rng = rng

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.policy.delay_ms(retry_state.attempt_number, self.rng) / 1000.0


class RetryOrchestrator:
    """
    Runs operations under named retry policies.

    The backoff is a real suspension point (``asyncio.sleep`` by default),
    so other requests keep progressing while one operation waits. An
    ``asyncio.Event`` passed as ``cancel_event`` stops further attempts
    once set; the last failure is re-raised.
    """

    def __init__(
        self,
        classifier: Optional[ErrorClassifier] = None,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.classifier = classifier or get_error_classifier()
        self.overrides = dict(overrides or {})
        self.sleep = sleep
        self.rng = rng

    def policy_for(self, operation_class: str) -> RetryPolicy:
        return resolve_policy(operation_class, self.overrides)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_class: str = "default",
        *,
        operation_name: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails with a non-retryable
        error, exhausts its attempts or is cancelled.

        Args:
            operation: Zero-argument coroutine function
            operation_class: Policy name (e.g. "file_upload")
            operation_name: Name used for user-facing messages and logs
            policy: Explicit policy, bypassing the named table
            cancel_event: Stops scheduling further attempts once set

        Returns:
            The operation's result

        Raises:
            The original failure of the last attempt
        """
        policy = policy or self.policy_for(operation_class)
        name = operation_name or operation_class

        stop = stop_after_attempt(policy.max_attempts)
        if cancel_event is not None:
            stop = stop | stop_when_event_set(cancel_event)

        retrying = AsyncRetrying(
            stop=stop,
            wait=wait_retry_policy(policy, self.rng),
            retry=retry_if_classified_retryable(self.classifier, operation_name),
            sleep=self.sleep,
            before_sleep=self._log_retry(name, policy),
            reraise=True,
        )

        last_error: Optional[BaseException] = None
        attempt_number = 0
        try:
            async for attempt in retrying:
                attempt_number = attempt.retry_state.attempt_number
                if cancel_event is not None and cancel_event.is_set() and last_error is not None:
                    logger.info(
                        "Retry cancelled",
                        operation=name,
                        attempt=attempt_number,
                    )
                    raise last_error
                with attempt:
                    try:
                        result = await operation()
                    except Exception as exc:
                        last_error = exc
                        raise
        except Exception as exc:
            classified = self.classifier.classify(exc, operation_name)
            logger.warning(
                f"Operation {name} failed after {attempt_number} attempt(s)",
                operation=name,
                attempts=attempt_number,
                error_type=classified.kind.value,
                error_code=classified.code,
            )
            raise

        if attempt_number > 1:
            logger.info(
                f"Operation {name} succeeded after retry",
                operation=name,
                attempts=attempt_number,
            )
        return result

    def _log_retry(self, name: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            logger.warning(
                f"Retrying {name} in {delay * 1000:.0f}ms",
                operation=name,
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                delay_ms=round(delay * 1000),
                error=type(exc).__name__ if exc else None,
            )

        return before_sleep
