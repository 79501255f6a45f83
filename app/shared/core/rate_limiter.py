"""
Rate limiting implementation for the KrishiVedha API.
Provides per-tier fixed-window limits keyed by client identity, with an
in-process bucket store and a Redis-backed store for multi-process deployments.
"""

import asyncio
import math
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

import redis.asyncio as redis

from ..utils.logging import get_logger
from .exceptions import RateLimitError

logger = get_logger(__name__)

KeyFunction = Callable[[Any], str]


@dataclass(frozen=True)
class RateLimitTier:
    """Rate limiting rule configuration for one group of routes."""
    name: str
    window_ms: int
    limit: int
    message: str = "Too many requests from this IP, please try again later."
    skip_successful: bool = False
    key_fn: Optional[KeyFunction] = None  # None = client IP

    def __post_init__(self):
        """Validate tier configuration."""
        if self.limit <= 0:
            raise ValueError("Rate limit must be positive")
        if self.window_ms <= 0:
            raise ValueError("Rate limit window must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "window_ms": self.window_ms,
            "limit": self.limit,
            "skip_successful": self.skip_successful,
        }


STANDARD_TIERS: Dict[str, RateLimitTier] = {
    tier.name: tier
    for tier in (
        RateLimitTier(
            name="general",
            window_ms=15 * 60 * 1000,
            limit=100,
            message="Too many API requests, please try again later.",
        ),
        RateLimitTier(
            name="auth",
            window_ms=15 * 60 * 1000,
            limit=5,
            message="Too many authentication attempts, please try again later.",
            skip_successful=True,
        ),
        RateLimitTier(
            name="password-reset",
            window_ms=60 * 60 * 1000,
            limit=3,
            message="Too many password reset attempts, please try again later.",
        ),
        RateLimitTier(
            name="upload",
            window_ms=60 * 1000,
            limit=20,
            message="Too many file upload requests, please wait a moment.",
        ),
        RateLimitTier(
            name="community",
            window_ms=10 * 60 * 1000,
            limit=10,
            message="Too many community interactions, please slow down.",
        ),
    )
}


@dataclass
class RateLimitBucket:
    """Counter for one (tier, key) pair within the current window."""
    key: str
    window_start_ms: int
    count: int
    limit: int
    window_ms: int

    def elapsed_ms(self, now_ms: int) -> int:
        return now_ms - self.window_start_ms

    def expired(self, now_ms: int) -> bool:
        return self.elapsed_ms(now_ms) >= self.window_ms


class BucketStore(Protocol):
    """Storage contract for rate limit buckets. ``hit`` must be atomic per key."""

    async def hit(self, tier: str, key: str, limit: int, window_ms: int, now_ms: int) -> RateLimitBucket:
        ...

    async def decrement(self, tier: str, key: str, window_start_ms: int) -> bool:
        ...

    async def reset(self, tier: str, key: str) -> None:
        ...


class MemoryBucketStore:
    """
    Process-local bucket table.

    Increment-and-compare runs under one ``asyncio.Lock`` so two concurrent
    requests for the same key never observe the same pre-increment count.
    Buckets are created lazily and replaced on window rollover; buckets of
    keys that never come back are dropped by a sweep that runs at most once
    per ``sweep_interval_ms``.
    """

    def __init__(self, sweep_interval_ms: int = 60 * 1000):
        self._buckets: Dict[Tuple[str, str], RateLimitBucket] = {}
        self._lock = asyncio.Lock()
        self.sweep_interval_ms = sweep_interval_ms
        self._last_sweep_ms: Optional[int] = None

    async def hit(self, tier: str, key: str, limit: int, window_ms: int, now_ms: int) -> RateLimitBucket:
        async with self._lock:
            self._sweep(now_ms)
            bucket = self._buckets.get((tier, key))
            if bucket is None or bucket.expired(now_ms):
                bucket = RateLimitBucket(
                    key=key,
                    window_start_ms=now_ms,
                    count=1,
                    limit=limit,
                    window_ms=window_ms,
                )
                self._buckets[(tier, key)] = bucket
            else:
                bucket.count += 1
            return replace(bucket)

    def _sweep(self, now_ms: int) -> None:
        # Caller holds the lock
        if self._last_sweep_ms is None:
            self._last_sweep_ms = now_ms
            return
        if now_ms - self._last_sweep_ms < self.sweep_interval_ms:
            return

        self._last_sweep_ms = now_ms
        expired = [slot for slot, bucket in self._buckets.items() if bucket.expired(now_ms)]
        for slot in expired:
            del self._buckets[slot]
        if expired:
            logger.debug("Expired rate limit buckets dropped", count=len(expired), remaining=len(self._buckets))

    async def decrement(self, tier: str, key: str, window_start_ms: int) -> bool:
        async with self._lock:
            bucket = self._buckets.get((tier, key))
            if bucket is None or bucket.window_start_ms != window_start_ms or bucket.count <= 0:
                return False
            bucket.count -= 1
            return True

    async def reset(self, tier: str, key: str) -> None:
        async with self._lock:
            self._buckets.pop((tier, key), None)

    def __len__(self) -> int:
        return len(self._buckets)


class RedisBucketStore:
    """
    Fixed-window buckets shared across processes through Redis.

    A Lua script increments the counter and arms the expiry in one atomic
    step; the remaining TTL gives the window start back.
    """

    HIT_SCRIPT = """
    local count = redis.call('INCR', KEYS[1])
    if count == 1 then
        redis.call('PEXPIRE', KEYS[1], ARGV[1])
    end
    local ttl = redis.call('PTTL', KEYS[1])
    if ttl < 0 then
        redis.call('PEXPIRE', KEYS[1], ARGV[1])
        ttl = tonumber(ARGV[1])
    end
    return {count, ttl}
    """

    DECREMENT_SCRIPT = """
    local count = tonumber(redis.call('GET', KEYS[1]) or '0')
    if count > 0 then
        redis.call('DECR', KEYS[1])
        return 1
    end
    return 0
    """

    def __init__(self, client: redis.Redis, prefix: str = "rate_limit"):
        self.redis = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "rate_limit") -> "RedisBucketStore":
        return cls(redis.from_url(url), prefix=prefix)

    def _key(self, tier: str, key: str) -> str:
        return f"{self.prefix}:{tier}:{key}"

    async def hit(self, tier: str, key: str, limit: int, window_ms: int, now_ms: int) -> RateLimitBucket:
        count, ttl = await self.redis.eval(self.HIT_SCRIPT, 1, self._key(tier, key), window_ms)
        return RateLimitBucket(
            key=key,
            window_start_ms=now_ms - (window_ms - int(ttl)),
            count=int(count),
            limit=limit,
            window_ms=window_ms,
        )

    async def decrement(self, tier: str, key: str, window_start_ms: int) -> bool:
        # The key expires with its window, so an existing key is the current window.
        result = await self.redis.eval(self.DECREMENT_SCRIPT, 1, self._key(tier, key))
        return bool(result)

    async def reset(self, tier: str, key: str) -> None:
        await self.redis.delete(self._key(tier, key))

    async def close(self) -> None:
        await self.redis.aclose()


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of an admitted rate limit check."""
    tier: str
    key: str
    limit: int
    remaining: int
    reset_ms: int
    window_start_ms: int

    def headers(self) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(max(0, math.ceil(self.reset_ms / 1000))),
        }


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimiter:
    """
    Fixed-window limiter for one tier.

    One instance per tier is shared by every request; all mutable state
    lives in the injected bucket store.
    """

    def __init__(
        self,
        tier: RateLimitTier,
        store: BucketStore,
        clock: Callable[[], int] = monotonic_ms,
    ):
        self.tier = tier
        self.store = store
        self.clock = clock

    async def acquire(self, key: str, path: Optional[str] = None) -> RateLimitDecision:
        """
        Count one request for ``key``.

        Args:
            key: Client identity (IP address unless the tier says otherwise)
            path: Request path, for logging only

        Returns:
            RateLimitDecision: Remaining quota in the current window

        Raises:
            RateLimitError: If the request exceeds the tier limit
        """
        now_ms = self.clock()
        bucket = await self.store.hit(self.tier.name, key, self.tier.limit, self.tier.window_ms, now_ms)
        reset_ms = max(0, self.tier.window_ms - bucket.elapsed_ms(now_ms))

        if bucket.count > self.tier.limit:
            logger.warning(
                f"Rate limit exceeded for {key} on tier {self.tier.name}",
                ip=key,
                path=path,
                tier=self.tier.name,
                limit=self.tier.limit,
            )
            raise RateLimitError(
                message=self.tier.message,
                tier=self.tier.name,
                limit=self.tier.limit,
                window_ms=self.tier.window_ms,
                retry_after_ms=max(1, reset_ms),
            )

        return RateLimitDecision(
            tier=self.tier.name,
            key=key,
            limit=self.tier.limit,
            remaining=max(0, self.tier.limit - bucket.count),
            reset_ms=reset_ms,
            window_start_ms=bucket.window_start_ms,
        )

    async def refund(self, decision: RateLimitDecision) -> bool:
        """
        Un-count a request that completed successfully.

        Only tiers configured with ``skip_successful`` refund, and only
        while the window the request was counted in is still current.
        """
        if not self.tier.skip_successful:
            return False
        return await self.store.decrement(self.tier.name, decision.key, decision.window_start_ms)

    async def reset(self, key: str) -> None:
        await self.store.reset(self.tier.name, key)
        logger.info(f"Rate limit reset for {key} on tier {self.tier.name}")


def resolve_tiers(overrides: Optional[Mapping[str, Mapping[str, Any]]] = None) -> Dict[str, RateLimitTier]:
    """
    Merge configured overrides into the standard tiers.

    Overrides may set ``window_ms``, ``limit`` and ``message``; an unknown
    tier name defines a new tier and must give both ``window_ms`` and ``limit``.
    """
    tiers = dict(STANDARD_TIERS)
    for name, override in (overrides or {}).items():
        allowed = {"window_ms", "limit", "message"}
        unknown = set(override) - allowed
        if unknown:
            raise ValueError(f"Unknown rate limit fields for tier '{name}': {sorted(unknown)}")
        if name in tiers:
            tiers[name] = replace(tiers[name], **override)
        else:
            if "window_ms" not in override or "limit" not in override:
                raise ValueError(f"New rate limit tier '{name}' needs window_ms and limit")
            tiers[name] = RateLimitTier(name=name, **override)
    return tiers


def build_rate_limiters(
    store: BucketStore,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    clock: Callable[[], int] = monotonic_ms,
) -> Dict[str, RateLimiter]:
    """One limiter per tier, all sharing ``store``."""
    return {
        name: RateLimiter(tier, store, clock=clock)
        for name, tier in resolve_tiers(overrides).items()
    }
