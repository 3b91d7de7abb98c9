from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from app.services.exceptions import SigningError


class TokenIssuer:
    """Mints and checks stateless HS256 session tokens."""

    def __init__(self, secret: str, *, algorithm: str = "HS256"):
        self._secret = secret
        self.algorithm = algorithm

    def issue_token(self, *, user_id: int, phone: str, ttl_seconds: int) -> str:
        if not self._secret:
            raise SigningError("token signing secret is not configured")
        issued_at = datetime.now(tz=timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "phone": phone,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=ttl_seconds),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise SigningError("unable to sign token") from exc

    def decode_token(self, token: str) -> Dict[str, Any]:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self.algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
