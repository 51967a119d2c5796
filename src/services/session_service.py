"""Session store — the single refresh token slot on the user record.

Each user holds at most one valid refresh token. Rotation overwrites it,
revocation clears it, and a presented refresh token is only honoured while
it equals the stored copy. Concurrent rotations for the same user are
last-writer-wins: the older token simply stops matching.
"""

import hmac
import logging

from domain.model.errors import AuthenticationError, DomainError, TokenRevokedError
from domain.model.token import TokenPair, TokenType
from port.user_repository import UserRepository
from services.token_service import TokenService

logger = logging.getLogger(__name__)


def rotate(repo: UserRepository, tokens: TokenService, user_id: str) -> TokenPair:
    """Issue a fresh access/refresh pair and persist the refresh token.

    Raises:
        AuthenticationError: user does not exist
        DomainError: refresh token could not be persisted
    """
    user = repo.get_by_id(user_id)
    if not user:
        raise AuthenticationError("User not found")

    pair = TokenPair(
        access_token=tokens.issue_access(user.id),
        refresh_token=tokens.issue_refresh(user.id),
    )

    if repo.update(user.id, refresh_token=pair.refresh_token) is None:
        logger.error("Failed to persist refresh token", extra={"userId": user.id})
        raise DomainError("Something went wrong while generating tokens")

    logger.debug("Session rotated", extra={"userId": user.id})
    return pair


def revoke(repo: UserRepository, user_id: str) -> None:
    """Clear the stored refresh token so every issued refresh token stops working."""
    if repo.update(user_id, refresh_token=None) is None:
        logger.warning("Session revoke found no user", extra={"userId": user_id})
        return
    logger.info("Session revoked", extra={"userId": user_id})


def refresh(repo: UserRepository, tokens: TokenService, presented: str | None) -> TokenPair:
    """Exchange a refresh token for a new pair.

    Raises:
        AuthenticationError: token missing or user gone
        TokenExpiredError / MalformedTokenError: token fails verification
        TokenRevokedError: token verifies but is no longer the stored one
    """
    if not presented or not presented.strip():
        raise AuthenticationError("Unauthorized request")

    user_id = tokens.verify(presented, TokenType.REFRESH)

    user = repo.get_by_id(user_id)
    if not user:
        raise AuthenticationError("Invalid refresh token")

    stored = user.refresh_token
    if not stored or not hmac.compare_digest(stored.encode('utf-8'), presented.encode('utf-8')):
        logger.info("Rejected stale refresh token", extra={"userId": user.id})
        raise TokenRevokedError("Refresh token is expired or used")

    return rotate(repo, tokens, user.id)
