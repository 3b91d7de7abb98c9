from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.core.config import Settings, get_settings
from app.core.phone import mask_phone, normalize_e164_phone
from app.models import User

from . import exceptions
from .delivery import BaseDeliveryChannel
from .otp_generator import generate_code
from .otp_store import OTPStore
from .rate_limiter import RateLimiter
from .user_directory import UserDirectory

if TYPE_CHECKING:  # pragma: no cover
    from app.core.security import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OTPIssued:
    phone: str
    expires_in: int
    remaining: int


@dataclass(frozen=True)
class VerifiedSession:
    user: User
    token: str
    expires_in: int


class AuthService:
    """
    Composes the OTP store, rate limiter, user directory and token issuer into the
    request-OTP and verify-OTP flows.

    Per phone the flow is NoPendingCode -> CodeIssued -> Verified | Expired, with
    RateLimited as a per-attempt rejection. State lives only in the OTP store and
    the rate-limit counters.
    """

    def __init__(
        self,
        *,
        otp_store: OTPStore,
        rate_limiter: RateLimiter,
        directory: UserDirectory,
        token_issuer: TokenIssuer,
        delivery: BaseDeliveryChannel,
        settings: Settings | None = None,
    ):
        self.otp_store = otp_store
        self.rate_limiter = rate_limiter
        self.directory = directory
        self.token_issuer = token_issuer
        self.delivery = delivery
        self.settings = settings or get_settings()

    def request_otp(self, *, phone: str) -> OTPIssued:
        normalized_phone = self._validate_phone(phone)

        decision = self.rate_limiter.allow(normalized_phone)
        if not decision.allowed:
            logger.info("OTP request rate limited | phone=%s", mask_phone(normalized_phone))
            raise exceptions.RateLimited(remaining=decision.remaining)

        code = generate_code(self.settings.OTP_LENGTH)
        ttl = self.settings.OTP_TTL_SECONDS
        self.otp_store.set(normalized_phone, code, ttl)
        self.delivery.deliver(phone=normalized_phone, code=code)
        logger.info(
            "OTP issued | phone=%s | ttl=%ss | remaining=%s",
            mask_phone(normalized_phone),
            ttl,
            decision.remaining,
        )
        return OTPIssued(phone=normalized_phone, expires_in=ttl, remaining=decision.remaining)

    def verify_otp(self, *, phone: str, code: str) -> VerifiedSession:
        normalized_phone = self._validate_phone(phone)
        submitted = (code or "").strip()
        if not submitted.isdigit() or len(submitted) != self.settings.OTP_LENGTH:
            raise exceptions.ValidationError(f"otp must be {self.settings.OTP_LENGTH} digits")

        # Match and removal happen in one store step; a failure further down requires a fresh code.
        if not self.otp_store.consume(normalized_phone, submitted):
            logger.info("OTP rejected | phone=%s", mask_phone(normalized_phone))
            raise exceptions.NotFoundOrExpired("invalid or expired otp")

        user = self.directory.get_or_create(normalized_phone)
        ttl = self.settings.access_token_ttl_seconds
        token = self.token_issuer.issue_token(user_id=user.id, phone=user.phone, ttl_seconds=ttl)
        logger.info("OTP verified | phone=%s | user_id=%s", mask_phone(normalized_phone), user.id)
        return VerifiedSession(user=user, token=token, expires_in=ttl)

    @staticmethod
    def _validate_phone(phone: str) -> str:
        try:
            return normalize_e164_phone(phone)
        except ValueError as exc:
            raise exceptions.ValidationError(str(exc)) from exc
