"""Signed session tokens."""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Callable, Optional
from pydantic import BaseModel

from app.core.config import Settings
from app.core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)

SESSION_DURATION_MS = 7 * 24 * 60 * 60 * 1000
DEV_SESSION_SECRET = "dev-only-secret-change-me"
TOKEN_DELIMITER = "."


class SessionPayload(BaseModel):
    """Identity carried inside a session token."""

    user_id: str
    email: str
    expires_at: int  # epoch milliseconds


def resolve_session_secret(settings: Settings) -> str:
    """Pick the signing secret, falling back to a dev secret outside production."""
    secret = settings.session_secret or settings.nextauth_secret
    if secret:
        return secret
    if not settings.is_production:
        logger.warning("[AUTH] SESSION_SECRET not set, using development-only secret")
        return DEV_SESSION_SECRET
    raise AppError(ErrorKind.CONFIG_MISSING, "Missing SESSION_SECRET in environment")


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


class SessionTokenAuthority:
    """Issues and verifies self-contained, expiring session tokens."""

    def __init__(
        self,
        secret: str,
        duration_ms: int = SESSION_DURATION_MS,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise AppError(ErrorKind.CONFIG_MISSING, "Session secret must not be empty")
        self._secret = secret.encode("utf-8")
        self.duration_ms = duration_ms
        self._clock = clock

    @property
    def max_age_seconds(self) -> int:
        """Cookie max-age matching the token validity window."""
        return self.duration_ms // 1000

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(
            self._secret, encoded_payload.encode("ascii"), hashlib.sha256
        ).digest()
        return _b64encode(digest)

    def issue(self, user_id: str, email: str) -> str:
        """Create a token for the given identity."""
        payload = {
            "userId": user_id,
            "email": email,
            "exp": self._now_ms() + self.duration_ms,
        }
        encoded_payload = _b64encode(
            json.dumps(payload, separators=(",", ":")).encode("utf-8")
        )
        return f"{encoded_payload}{TOKEN_DELIMITER}{self._sign(encoded_payload)}"

    def verify(self, token: Optional[str]) -> Optional[SessionPayload]:
        """
        Verify a token.

        Returns:
            The payload, or None if the token is malformed, tampered with
            or expired. The reason is deliberately not reported.
        """
        if not token:
            return None

        encoded_payload, _, signature = token.partition(TOKEN_DELIMITER)
        if not encoded_payload or not signature:
            return None

        try:
            expected = self._sign(encoded_payload).encode("ascii")
            actual = signature.encode("ascii")
        except UnicodeEncodeError:
            return None
        if len(actual) != len(expected) or not hmac.compare_digest(actual, expected):
            return None

        try:
            data = json.loads(_b64decode(encoded_payload).decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(data, dict):
            return None

        user_id = data.get("userId")
        email = data.get("email")
        expires_at = data.get("exp")
        if not user_id or not email or not expires_at:
            return None
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            return None

        if self._now_ms() > expires_at:
            return None

        return SessionPayload(user_id=str(user_id), email=str(email), expires_at=int(expires_at))
