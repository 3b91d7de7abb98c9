from .auth_service import AuthService, OTPIssued, VerifiedSession
from .delivery import BaseDeliveryChannel, LoggingDeliveryChannel
from .otp_generator import generate_code
from .otp_store import InMemoryOTPStore, OTPStore, RedisOTPStore
from .rate_limiter import (
    InMemoryCounterBackend,
    RateLimitDecision,
    RateLimiter,
    RedisCounterBackend,
)
from .user_directory import UserDirectory

__all__ = [
    "AuthService",
    "OTPIssued",
    "VerifiedSession",
    "BaseDeliveryChannel",
    "LoggingDeliveryChannel",
    "generate_code",
    "InMemoryOTPStore",
    "OTPStore",
    "RedisOTPStore",
    "InMemoryCounterBackend",
    "RateLimitDecision",
    "RateLimiter",
    "RedisCounterBackend",
    "UserDirectory",
]
