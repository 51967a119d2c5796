"""Pydantic models for API request/response."""

from dataclasses import asdict
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from domain.model.channel import ChannelProfile
from domain.model.token import TokenPair
from domain.model.user import UserProfile


class CamelModel(BaseModel):
    """Accepts and emits the camelCase field names the web client uses."""
    model_config = ConfigDict(populate_by_name=True)


class UserResponse(CamelModel):
    """Public user info. Never carries password hash or refresh token."""
    id: str
    username: str = Field(..., alias="userName")
    email: str
    full_name: str = Field(..., alias="fullName")
    avatar: str
    cover_image: str = Field("", alias="coverImage")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_profile(cls, profile: UserProfile) -> 'UserResponse':
        return cls.model_validate(asdict(profile))


class LoginRequest(CamelModel):
    """Login by username or email."""
    username: Optional[str] = Field(None, alias="userName")
    email: Optional[str] = None
    password: str


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., alias="oldPassword")
    new_password: str = Field(..., alias="newPassword")


class UpdateAccountRequest(CamelModel):
    full_name: str = Field(..., alias="fullName")
    email: EmailStr


class TokensResponse(CamelModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> 'TokensResponse':
        return cls(access_token=pair.access_token, refresh_token=pair.refresh_token)


class LoginResponse(TokensResponse):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class ChannelResponse(CamelModel):
    id: str
    username: str = Field(..., alias="userName")
    full_name: str = Field(..., alias="fullName")
    avatar: str
    cover_image: str = Field("", alias="coverImage")
    subscribers_count: int = Field(..., alias="subscribersCount")
    channels_subscribed_to_count: int = Field(..., alias="channelsSubscribedToCount")
    is_subscribed: bool = Field(..., alias="isSubscribed")

    @classmethod
    def from_profile(cls, profile: ChannelProfile) -> 'ChannelResponse':
        return cls.model_validate(asdict(profile))
