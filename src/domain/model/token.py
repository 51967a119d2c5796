"""Session token domain models."""

from dataclasses import dataclass
from enum import Enum

from domain.model.user import UserProfile


class TokenType(str, Enum):
    ACCESS = 'access'
    REFRESH = 'refresh'


@dataclass(frozen=True)
class TokenPair:
    """Access + refresh tokens issued together by a rotation."""
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    user: UserProfile
    tokens: TokenPair
