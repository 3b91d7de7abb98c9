import hmac
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from redis import Redis
from redis.exceptions import RedisError

from . import exceptions

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class OTPStore(Protocol):
    def set(self, phone: str, code: str, ttl: float) -> None:
        ...

    def get(self, phone: str) -> str:
        ...

    def consume(self, phone: str, code: str) -> bool:
        """Remove the live record for ``phone`` only if it holds ``code``; True when removed."""
        ...

    def delete(self, phone: str) -> None:
        ...


@dataclass
class _OTPEntry:
    code: str
    expires_at: float


class _Shard:
    __slots__ = ("lock", "entries", "writes")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.entries: dict[str, _OTPEntry] = {}
        self.writes = 0


class InMemoryOTPStore:
    """
    Process-local OTP store.

    Expiry is checked on every read and expired entries are dropped lazily. Entries
    are spread over independently locked shards keyed by phone; every
    ``sweep_every`` writes a shard also drops its own expired entries so codes that
    are never verified do not pile up. Not suitable for deployments with more than
    one process.
    """

    def __init__(self, *, shards: int = 16, sweep_every: int = 128, clock: Clock = time.monotonic) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        if sweep_every < 1:
            raise ValueError("sweep_every must be >= 1")
        self._shards = [_Shard() for _ in range(shards)]
        self._sweep_every = sweep_every
        self._clock = clock

    def _shard_for(self, phone: str) -> _Shard:
        return self._shards[hash(phone) % len(self._shards)]

    @staticmethod
    def _sweep(shard: _Shard, now: float) -> int:
        expired = [phone for phone, entry in shard.entries.items() if now >= entry.expires_at]
        for phone in expired:
            del shard.entries[phone]
        return len(expired)

    def set(self, phone: str, code: str, ttl: float) -> None:
        shard = self._shard_for(phone)
        with shard.lock:
            now = self._clock()
            shard.writes += 1
            if shard.writes % self._sweep_every == 0:
                self._sweep(shard, now)
            shard.entries[phone] = _OTPEntry(code=code, expires_at=now + ttl)

    def get(self, phone: str) -> str:
        shard = self._shard_for(phone)
        with shard.lock:
            entry = shard.entries.get(phone)
            if entry is None:
                raise exceptions.NotFoundOrExpired("not found or expired")
            if self._clock() >= entry.expires_at:
                shard.entries.pop(phone, None)
                raise exceptions.NotFoundOrExpired("not found or expired")
            return entry.code

    def consume(self, phone: str, code: str) -> bool:
        shard = self._shard_for(phone)
        with shard.lock:
            entry = shard.entries.get(phone)
            if entry is None:
                return False
            if self._clock() >= entry.expires_at:
                shard.entries.pop(phone, None)
                return False
            if not hmac.compare_digest(entry.code, code):
                return False
            del shard.entries[phone]
            return True

    def delete(self, phone: str) -> None:
        shard = self._shard_for(phone)
        with shard.lock:
            shard.entries.pop(phone, None)

    def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        for shard in self._shards:
            with shard.lock:
                removed += self._sweep(shard, now)
        return removed

    def __len__(self) -> int:
        return sum(len(shard.entries) for shard in self._shards)


# Compare-and-delete in one server-side step, so two verifiers cannot both win.
CONSUME_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisOTPStore:
    """OTP store backed by Redis; expiry is left to Redis key TTLs."""

    def __init__(self, client: Redis, prefix: str = "otp:"):
        self.client = client
        self.prefix = prefix

    def _key(self, phone: str) -> str:
        return f"{self.prefix}{phone}"

    def set(self, phone: str, code: str, ttl: float) -> None:
        key = self._key(phone)
        try:
            if ttl <= 0:
                # Redis rejects non-positive expiry; an already-expired record is no record.
                self.client.delete(key)
                return
            self.client.set(key, code, px=max(1, int(ttl * 1000)))
        except (RedisError, OSError) as exc:
            logger.error("OTP store write failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("otp store unavailable") from exc

    def get(self, phone: str) -> str:
        try:
            value = self.client.get(self._key(phone))
        except (RedisError, OSError) as exc:
            logger.error("OTP store read failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("otp store unavailable") from exc
        if value is None:
            raise exceptions.NotFoundOrExpired("not found or expired")
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def consume(self, phone: str, code: str) -> bool:
        try:
            removed = self.client.eval(CONSUME_SCRIPT, 1, self._key(phone), code)
        except (RedisError, OSError) as exc:
            logger.error("OTP store consume failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("otp store unavailable") from exc
        return bool(removed)

    def delete(self, phone: str) -> None:
        try:
            self.client.delete(self._key(phone))
        except (RedisError, OSError) as exc:
            logger.error("OTP store delete failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("otp store unavailable") from exc
