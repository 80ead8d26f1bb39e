from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

import redis


REDIS_TIMEOUT_SECONDS = 0.2
SWEEP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    max_requests: int
    window_seconds: int
    message: str
    skip_successful_requests: bool = False


GLOBAL_POLICY = RateLimitPolicy(
    name="global",
    max_requests=1000,
    window_seconds=15 * 60,
    message="Too many requests from this IP, please try again later.",
)
STRICT_POLICY = RateLimitPolicy(
    name="strict",
    max_requests=100,
    window_seconds=15 * 60,
    message="Too many requests for this endpoint, please try again later.",
)
AUTH_POLICY = RateLimitPolicy(
    name="auth",
    max_requests=10,
    window_seconds=15 * 60,
    message="Too many authentication attempts, please try again later.",
    skip_successful_requests=True,
)
CREATION_POLICY = RateLimitPolicy(
    name="creation",
    max_requests=50,
    window_seconds=60 * 60,
    message="Too many creation requests, please try again later.",
)


@dataclass(frozen=True)
class WindowCount:
    count: int
    resets_in_seconds: float


class CounterStore(Protocol):
    def increment(self, key: str, window_seconds: int) -> WindowCount: ...

    def decrement(self, key: str) -> None: ...


@dataclass
class _Window:
    count: int
    started_at: float
    window_seconds: int

    def expired(self, now: float) -> bool:
        return now - self.started_at >= self.window_seconds


class InMemoryCounterStore:
    """Fixed-window counters for a single process."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        *,
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, _Window] = {}
        self._sweep_interval_seconds = sweep_interval_seconds
        self._next_sweep_at = clock() + sweep_interval_seconds

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.expired(now)]
        for key in expired:
            del self._windows[key]
        self._next_sweep_at = now + self._sweep_interval_seconds

    def increment(self, key: str, window_seconds: int) -> WindowCount:
        now = self._clock()
        with self._lock:
            # Keys come from client-supplied headers; drop finished windows periodically.
            if now >= self._next_sweep_at:
                self._sweep(now)
            window = self._windows.get(key)
            if window is None or window.expired(now):
                window = _Window(count=0, started_at=now, window_seconds=window_seconds)
                self._windows[key] = window
            window.count += 1
            return WindowCount(window.count, max(0.0, window.started_at + window_seconds - now))

    def decrement(self, key: str) -> None:
        with self._lock:
            window = self._windows.get(key)
            if window is not None and window.count > 0:
                window.count -= 1


class RedisCounterStore:
    """Fixed-window counters shared by every worker through Redis."""

    def __init__(self, client: redis.Redis, *, key_prefix: str = "rate_limit") -> None:
        self._redis = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCounterStore":
        client = redis.Redis.from_url(
            redis_url,
            socket_connect_timeout=REDIS_TIMEOUT_SECONDS,
            socket_timeout=REDIS_TIMEOUT_SECONDS,
        )
        return cls(client)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    def increment(self, key: str, window_seconds: int) -> WindowCount:
        redis_key = self._key(key)
        pipeline = self._redis.pipeline(transaction=True)
        pipeline.set(redis_key, 0, ex=window_seconds, nx=True)
        pipeline.incr(redis_key)
        pipeline.ttl(redis_key)
        _created, count, ttl = pipeline.execute()
        resets_in = float(ttl) if isinstance(ttl, int) and ttl > 0 else float(window_seconds)
        return WindowCount(int(count), resets_in)

    def decrement(self, key: str) -> None:
        redis_key = self._key(key)
        remaining = self._redis.decr(redis_key)
        if int(remaining) < 0:
            self._redis.set(redis_key, 0, keepttl=True)


@dataclass(frozen=True)
class RateLimitDecision:
    policy: RateLimitPolicy
    allowed: bool
    count: int
    resets_in_seconds: float

    @property
    def remaining(self) -> int:
        return max(0, self.policy.max_requests - self.count)

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.policy.max_requests),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(math.ceil(self.resets_in_seconds)),
        }


@dataclass(frozen=True)
class RateLimitRule:
    policy: RateLimitPolicy
    path_prefix: str = "/"
    methods: frozenset[str] | None = None

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method.upper() not in self.methods:
            return False
        if self.path_prefix == "/":
            return True
        return path == self.path_prefix or path.startswith(self.path_prefix.rstrip("/") + "/")


def default_rules() -> list[RateLimitRule]:
    return [
        RateLimitRule(GLOBAL_POLICY),
        RateLimitRule(STRICT_POLICY, path_prefix="/health/detailed", methods=frozenset({"GET"})),
        RateLimitRule(AUTH_POLICY, path_prefix="/api/auth"),
        RateLimitRule(CREATION_POLICY, path_prefix="/api/demo/users", methods=frozenset({"POST"})),
    ]


@dataclass
class AdmissionGate:
    store: CounterStore
    rules: list[RateLimitRule] = field(default_factory=default_rules)

    @staticmethod
    def counter_key(policy: RateLimitPolicy, client_ip: str) -> str:
        return f"{policy.name}:{client_ip}"

    def admit(self, client_ip: str, *, method: str, path: str) -> list[RateLimitDecision]:
        """Count the request against every matching policy.

        Stops at the first policy whose quota is exceeded; that decision is the
        last element of the returned list.
        """
        decisions: list[RateLimitDecision] = []
        for rule in self.rules:
            if not rule.matches(method, path):
                continue
            policy = rule.policy
            window = self.store.increment(self.counter_key(policy, client_ip), policy.window_seconds)
            decision = RateLimitDecision(
                policy=policy,
                allowed=window.count <= policy.max_requests,
                count=window.count,
                resets_in_seconds=window.resets_in_seconds,
            )
            decisions.append(decision)
            if not decision.allowed:
                break
        return decisions

    def record_outcome(self, client_ip: str, decisions: list[RateLimitDecision], *, status_code: int) -> None:
        if status_code >= 400:
            return
        for decision in decisions:
            if decision.policy.skip_successful_requests:
                self.store.decrement(self.counter_key(decision.policy, client_ip))
