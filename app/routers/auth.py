from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_auth_service
from app.schemas import (
    ErrorResponse,
    OTPRequest,
    OTPRequestAccepted,
    OTPVerify,
    RateLimitedResponse,
    TokenResponse,
    UserRead,
)
from app.services import AuthService
from app.services import exceptions as service_exceptions

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_OTP_DETAIL = "invalid or expired otp"


@router.post(
    "/request-otp",
    response_model=OTPRequestAccepted,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": RateLimitedResponse},
    },
)
def request_otp(payload: OTPRequest, service: AuthService = Depends(get_auth_service)):
    try:
        issued = service.request_otp(phone=payload.phone)
    except service_exceptions.ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except service_exceptions.RateLimited as exc:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": "rate limit exceeded", "remaining": exc.remaining},
        )
    return OTPRequestAccepted(expires_in=issued.expires_in)


@router.post(
    "/verify-otp",
    response_model=TokenResponse,
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
)
def verify_otp(payload: OTPVerify, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    try:
        session = service.verify_otp(phone=payload.phone, code=payload.otp)
    except (service_exceptions.ValidationError, service_exceptions.NotFoundOrExpired) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_OTP_DETAIL) from exc

    return TokenResponse(
        access_token=session.token,
        expires_in=session.expires_in,
        user=UserRead.model_validate(session.user),
    )
