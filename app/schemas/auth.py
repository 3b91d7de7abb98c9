from pydantic import BaseModel, Field, field_validator

from app.core.phone import normalize_e164_phone

from .user import UserRead


class OTPRequest(BaseModel):
    phone: str = Field(..., examples=["+14165551234"])

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return normalize_e164_phone(value)


class OTPVerify(BaseModel):
    phone: str = Field(..., examples=["+14165551234"])
    otp: str = Field(..., min_length=4, max_length=10, pattern=r"^\d+$", examples=["123456"])

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return normalize_e164_phone(value)


class OTPRequestAccepted(BaseModel):
    message: str = "OTP generated. Check console logs."
    expires_in: int


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
