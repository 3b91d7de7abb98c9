import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from redis import Redis
from redis.exceptions import RedisError

from . import exceptions

logger = logging.getLogger(__name__)


class CounterBackend(Protocol):
    def incr_with_window(self, key: str, window: int) -> int:
        """Increment ``key`` and start its expiry window if this is the first hit."""
        ...

    def delete(self, key: str) -> None:
        ...


class RedisCounterBackend:
    def __init__(self, client: Redis):
        self.client = client

    def incr_with_window(self, key: str, window: int) -> int:
        try:
            count = int(self.client.incr(key))
            # Only the first increment of a window sets the expiry.
            if count == 1:
                self.client.expire(key, window)
        except (RedisError, OSError) as exc:
            logger.error("Rate limit counter increment failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("rate limiter unavailable") from exc
        return count

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except (RedisError, OSError) as exc:
            logger.error("Rate limit counter reset failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("rate limiter unavailable") from exc


@dataclass
class _Window:
    count: int
    expires_at: float


class InMemoryCounterBackend:
    """Process-local counters; expired windows are swept every ``sweep_every`` increments."""

    def __init__(self, *, sweep_every: int = 256, clock: Callable[[], float] = time.monotonic) -> None:
        if sweep_every < 1:
            raise ValueError("sweep_every must be >= 1")
        self._data: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._sweep_every = sweep_every
        self._increments = 0
        self._clock = clock

    def _sweep(self, now: float) -> int:
        expired = [key for key, entry in self._data.items() if now >= entry.expires_at]
        for key in expired:
            del self._data[key]
        return len(expired)

    def incr_with_window(self, key: str, window: int) -> int:
        now = self._clock()
        with self._lock:
            self._increments += 1
            if self._increments % self._sweep_every == 0:
                self._sweep(now)
            entry = self._data.get(key)
            if entry is None or now >= entry.expires_at:
                entry = _Window(count=0, expires_at=now + window)
                self._data[key] = entry
            entry.count += 1
            return entry.count

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def purge_expired(self) -> int:
        with self._lock:
            return self._sweep(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int


class RateLimiter:
    """
    Fixed-window limiter keyed by phone number.

    The window is anchored at the first request after the previous window expired,
    so a burst straddling the boundary can see up to twice the limit. ``remaining``
    goes negative once the limit is exceeded.
    """

    def __init__(
        self,
        counters: CounterBackend,
        *,
        max_attempts: int,
        window_seconds: int,
        prefix: str = "rl:",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self.counters = counters
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, phone: str) -> str:
        return f"{self.prefix}{phone}"

    def allow(self, phone: str) -> RateLimitDecision:
        count = self.counters.incr_with_window(self._key(phone), self.window_seconds)
        return RateLimitDecision(allowed=count <= self.max_attempts, remaining=self.max_attempts - count)

    def reset(self, phone: str) -> None:
        self.counters.delete(self._key(phone))
