class ServiceError(Exception):
    """Base exception for service-level errors."""


class ValidationError(ServiceError):
    """Malformed phone number or code, rejected before touching any store."""


class RateLimited(ServiceError):
    def __init__(self, message: str = "rate limit exceeded", *, remaining: int = 0):
        super().__init__(message)
        self.remaining = remaining


class NotFoundOrExpired(ServiceError):
    """Wrong, missing or expired code. The cause is deliberately not exposed."""


class BackendUnavailable(ServiceError):
    pass


class SigningError(ServiceError):
    pass


class NotFoundError(ServiceError):
    pass
