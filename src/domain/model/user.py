from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserProfile:
    """Sanitized projection of a user. Carries no credentials or session secrets."""
    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    created_at: datetime
    updated_at: datetime
    cover_image: str = ''


@dataclass
class User:
    """Domain model representing a user."""
    id: str
    username: str
    email: str
    full_name: str
    avatar: str
    created_at: datetime
    updated_at: datetime
    cover_image: str = ''
    password_hash: str | None = None
    refresh_token: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            avatar=self.avatar,
            cover_image=self.cover_image,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def normalize_username(username: str) -> str:
    return username.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()
