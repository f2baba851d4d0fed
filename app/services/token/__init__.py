from datetime import datetime, timedelta, timezone

from jose import jwt, JWTError
from pydantic import BaseModel

from app.utils.base.errors import InvalidToken
from app.utils.config import Settings


class SessionClaims(BaseModel):
    """Identity asserted by a verified session token."""
    subject_id: str
    issued_at: datetime


class TokenService:
    """Issues and verifies signed, time-limited session tokens (JWT)."""

    def __init__(self, secret_key: str, algorithm: str, expires_in: timedelta):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expires_in = expires_in

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires_in=timedelta(days=settings.jwt_expires_in_days),
        )

    def issue(self, subject_id: str, issued_at: datetime | None = None) -> str:
        """Create a signed JWT with subject, issue time and expiration."""
        now = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires_in).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        """Decode a token, rejecting bad signatures, malformed payloads and expired tokens."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as exc:
            raise InvalidToken() from exc

        subject_id = payload.get("sub")
        issued_at = payload.get("iat")
        if not subject_id or not isinstance(issued_at, (int, float)):
            raise InvalidToken()
        return SessionClaims(
            subject_id=subject_id,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
        )
