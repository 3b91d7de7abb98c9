from .auth import OTPRequest, OTPRequestAccepted, OTPVerify, TokenResponse
from .common import ErrorResponse, Pagination, RateLimitedResponse
from .user import UserListResponse, UserRead

__all__ = [
    "OTPRequest",
    "OTPRequestAccepted",
    "OTPVerify",
    "TokenResponse",
    "ErrorResponse",
    "Pagination",
    "RateLimitedResponse",
    "UserListResponse",
    "UserRead",
]
