import logging
import threading

from redis import Redis

from app.services.otp_store import InMemoryOTPStore, OTPStore, RedisOTPStore
from app.services.rate_limiter import (
    CounterBackend,
    InMemoryCounterBackend,
    RateLimiter,
    RedisCounterBackend,
)

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class BackendManager:
    """
    Process-wide holder for the OTP store and rate-limit counters.

    With ``REDIS_URL`` set both live in Redis and are shared across instances;
    otherwise they are in-process and only valid for a single worker process.
    The Redis client is not pinged here: an unreachable server surfaces per call
    as ``BackendUnavailable``.
    """

    def __init__(self) -> None:
        self.redis_client: Redis | None = None
        self.otp_store: OTPStore | None = None
        self.counters: CounterBackend | None = None
        self._lock = threading.Lock()

    def init_backends(self, settings: Settings | None = None) -> None:
        with self._lock:
            if self.otp_store is not None:
                return

            settings = settings or get_settings()
            if settings.REDIS_URL:
                client = Redis.from_url(
                    settings.REDIS_URL,
                    socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                    socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                    decode_responses=True,
                )
                self.redis_client = client
                self.otp_store = RedisOTPStore(client)
                self.counters = RedisCounterBackend(client)
                logger.info("Using Redis OTP store and rate-limit counters.")
                return

            self.otp_store = InMemoryOTPStore()
            self.counters = InMemoryCounterBackend()
            logger.info("Using in-memory OTP store and rate-limit counters.")

    def get_otp_store(self) -> OTPStore:
        if self.otp_store is None:
            self.init_backends()
        assert self.otp_store is not None
        return self.otp_store

    def get_rate_limiter(self, settings: Settings | None = None) -> RateLimiter:
        if self.counters is None:
            self.init_backends()
        assert self.counters is not None
        settings = settings or get_settings()
        return RateLimiter(
            self.counters,
            max_attempts=settings.OTP_RATE_LIMIT_MAX,
            window_seconds=settings.OTP_RATE_LIMIT_WINDOW_SECONDS,
        )

    def reset(self) -> None:
        with self._lock:
            if self.redis_client is not None:
                self.redis_client.close()
            self.redis_client = None
            self.otp_store = None
            self.counters = None


backend_manager = BackendManager()
