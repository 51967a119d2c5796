"""HTTP cookie helpers for session token transport."""

from typing import Literal

from fastapi import Response

from domain.model.token import TokenPair, TokenType
from services.token_service import TokenService

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"


def set_token_cookies(response: Response, tokens: TokenPair, token_service: TokenService) -> None:
    secure = token_service.settings.secure_cookies
    for key, value, token_type in (
        (ACCESS_COOKIE, tokens.access_token, TokenType.ACCESS),
        (REFRESH_COOKIE, tokens.refresh_token, TokenType.REFRESH),
    ):
        response.set_cookie(
            key=key,
            value=value,
            httponly=True,
            secure=secure,
            samesite=COOKIE_SAMESITE,
            max_age=int(token_service.ttl(token_type).total_seconds()),
            path=COOKIE_PATH,
        )


def clear_token_cookies(response: Response, token_service: TokenService) -> None:
    secure = token_service.settings.secure_cookies
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            secure=secure,
            httponly=True,
            samesite=COOKIE_SAMESITE,
        )
