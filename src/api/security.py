"""Access-token authentication dependencies."""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api.cookies import ACCESS_COOKIE
from api.dependencies import get_token_service, get_user_repo
from api.models import UserResponse
from domain.model.errors import AuthenticationError
from domain.model.token import TokenType
from port.user_repository import UserRepository
from services.token_service import TokenService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _presented_tokens(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> list[str]:
    """Access tokens to try, cookie first and then the Authorization header."""
    tokens = []
    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token:
        tokens.append(cookie_token)
    if credentials and credentials.credentials and credentials.credentials not in tokens:
        tokens.append(credentials.credentials)
    return tokens


def get_current_user_required(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
    token_service: TokenService = Depends(get_token_service),
) -> UserResponse:
    """Get current authenticated user (required). Raises 401 if not authenticated.

    A stale cookie does not shadow a valid Bearer header.
    """
    tokens = _presented_tokens(request, credentials)
    if not tokens:
        raise _unauthorized("Unauthorized request")

    error: AuthenticationError | None = None
    for token in tokens:
        try:
            user_id = token_service.verify(token, TokenType.ACCESS)
        except AuthenticationError as e:
            error = e
            continue

        user = user_repo.get_by_id(user_id)
        if user:
            return UserResponse.from_profile(user.to_profile())
        error = AuthenticationError("Invalid access token")

    raise _unauthorized(str(error)) from error


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
    token_service: TokenService = Depends(get_token_service),
) -> Optional[UserResponse]:
    """Get current authenticated user (optional). Returns None if no valid token."""
    try:
        return get_current_user_required(request, credentials, user_repo, token_service)
    except HTTPException:
        return None
