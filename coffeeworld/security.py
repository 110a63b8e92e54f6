"""
Session tokens for Coffee World.

Sessions are signed JWTs carrying the subject id, display name and the
World ID verified flag. Signing out adds the token id to an in-process
denylist until the token would have expired anyway.
"""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from loguru import logger

from coffeeworld.crowd.service import Subject

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30 * 24 * 60  # 30 days


class SessionManager:
    """
    Issues, decodes and revokes session tokens.

    Usage:
        sessions = SessionManager(secret_key="change-me")
        token = sessions.issue("wid_abc", name="World ID User", verified=True)
        subject = sessions.decode(token)
    """

    def __init__(
        self,
        secret_key: str,
        expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
        algorithm: str = ALGORITHM,
    ):
        if not secret_key:
            raise ValueError("SessionManager requires a secret key")
        self.secret_key = secret_key
        self.expire_delta = timedelta(minutes=expire_minutes)
        self.algorithm = algorithm
        self._revoked: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def issue(
        self,
        subject_id: str,
        name: Optional[str] = None,
        verified: bool = False,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a signed session token."""
        now = datetime.now(timezone.utc)
        claims = {
            "sub": subject_id,
            "name": name,
            "verified": bool(verified),
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + (expires_delta or self.expire_delta),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def _claims(self, token: str) -> Optional[dict]:
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug(f"Rejected session token: {e}")
            return None

        if not claims.get("sub"):
            return None

        with self._lock:
            if claims.get("jti") in self._revoked:
                return None
        return claims

    def decode(self, token: Optional[str]) -> Optional[Subject]:
        """Subject for a valid, unrevoked token, else None."""
        if not token:
            return None

        claims = self._claims(token)
        if claims is None:
            return None

        return Subject(
            subject_id=claims["sub"],
            verified=bool(claims.get("verified", False)),
            name=claims.get("name"),
        )

    def revoke(self, token: str) -> bool:
        """Sign out. Returns False if the token was not a live session."""
        claims = self._claims(token)
        if claims is None:
            return False

        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        now = datetime.now(timezone.utc)
        with self._lock:
            self._revoked[claims["jti"]] = expires_at
            self._revoked = {
                jti: exp for jti, exp in self._revoked.items() if exp > now
            }
        return True
