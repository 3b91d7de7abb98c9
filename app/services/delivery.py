from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from app.core.phone import mask_phone


class BaseDeliveryChannel(ABC):
    """Out-of-band channel that hands an OTP to the phone's owner."""

    name: str

    @abstractmethod
    def deliver(self, *, phone: str, code: str) -> None:
        raise NotImplementedError


class LoggingDeliveryChannel(BaseDeliveryChannel):
    """Stand-in for an SMS gateway: writes the code to the ``app.sms`` logger."""

    name = "log"

    def __init__(self, logger: logging.Logger | None = None):
        self.sms_logger = logger or logging.getLogger("app.sms")

    def deliver(self, *, phone: str, code: str) -> None:
        self.sms_logger.info("DRY-RUN OTP SMS | phone=%s | code=%s", mask_phone(phone), code)
