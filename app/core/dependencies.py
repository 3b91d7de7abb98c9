from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError
from sqlalchemy.orm import Session

from app.core.backends import backend_manager
from app.core.config import get_settings
from app.core.db import get_db_session
from app.core.security import TokenIssuer
from app.services import AuthService, LoggingDeliveryChannel, UserDirectory


bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Session:
    yield from get_db_session()


def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


def get_auth_service(
    directory: UserDirectory = Depends(get_user_directory),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    settings = get_settings()
    return AuthService(
        otp_store=backend_manager.get_otp_store(),
        rate_limiter=backend_manager.get_rate_limiter(settings),
        directory=directory,
        token_issuer=token_issuer,
        delivery=LoggingDeliveryChannel(),
        settings=settings,
    )


def _get_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication scheme")
    return credentials.credentials


def get_token_payload(
    token: str = Depends(_get_token),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> dict:
    try:
        payload = token_issuer.decode_token(token)
    except InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    return payload
