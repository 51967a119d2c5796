"""Signed session tokens.

Access and refresh tokens are HS256 JWTs signed with independent secrets,
so a leaked access secret cannot mint refresh tokens and vice versa.
Neither class is tracked here; refresh revocation is done by the session
service comparing against the copy stored on the user record.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from domain.model.errors import MalformedTokenError, TokenExpiredError
from domain.model.token import TokenType
from utils.settings import AuthSettings

logger = logging.getLogger(__name__)


class TokenService:
    def __init__(self, settings: AuthSettings):
        self.settings = settings
        self._secrets = {
            TokenType.ACCESS: settings.access_token_secret,
            TokenType.REFRESH: settings.refresh_token_secret,
        }
        self._ttls = {
            TokenType.ACCESS: timedelta(minutes=settings.access_token_expire_minutes),
            TokenType.REFRESH: timedelta(days=settings.refresh_token_expire_days),
        }

    def ttl(self, token_type: TokenType) -> timedelta:
        return self._ttls[token_type]

    def issue_access(self, user_id: str) -> str:
        return self._issue(user_id, TokenType.ACCESS)

    def issue_refresh(self, user_id: str) -> str:
        return self._issue(user_id, TokenType.REFRESH)

    def _issue(self, user_id: str, token_type: TokenType) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "type": token_type.value,
            "iat": now,
            "exp": now + self._ttls[token_type],
        }
        if token_type is TokenType.REFRESH:
            # Two refresh tokens issued within the same second must still differ
            payload["jti"] = uuid.uuid4().hex
        return jwt.encode(payload, self._secrets[token_type], algorithm=self.settings.algorithm)

    def verify(self, token: str, expected: TokenType) -> str:
        """Verify signature and expiry, and return the embedded user id.

        Raises:
            TokenExpiredError: signature is valid but the token is past its TTL
            MalformedTokenError: unparseable, bad signature (including a token
                of the other class), or missing claims
        """
        if not token:
            raise MalformedTokenError("Token is missing")

        try:
            payload = jwt.decode(
                token,
                self._secrets[expected],
                algorithms=[self.settings.algorithm],
            )
        except ExpiredSignatureError as e:
            logger.debug(f"{expected.value} token expired: {e}")
            raise TokenExpiredError(f"{expected.value.capitalize()} token expired") from e
        except JWTError as e:
            logger.debug(f"JWT verification failed: {e}")
            raise MalformedTokenError(f"Invalid {expected.value} token") from e

        if payload.get("type") != expected.value:
            raise MalformedTokenError(f"Invalid {expected.value} token")

        user_id = payload.get("sub")
        if not user_id:
            raise MalformedTokenError(f"Invalid {expected.value} token")
        return user_id
