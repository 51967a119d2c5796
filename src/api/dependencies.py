from functools import lru_cache

from fastapi import Depends, HTTPException

from adapter.cloudflare.media_storage import R2MediaStorage
from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.subscription_repository import MongoSubscriptionRepository
from adapter.mongodb.user_repository import MongoUserRepository
from port.media_storage import MediaStorage
from port.subscription_repository import SubscriptionRepository
from port.user_repository import UserRepository
from services.token_service import TokenService
from utils.settings import AuthSettings, MediaSettings


def _get_db():
    """Get MongoDB database, raising 503 if unavailable."""
    client = get_mongodb_client()
    if client is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return client[DATABASE_NAME]


def get_user_repo() -> UserRepository:
    return MongoUserRepository(_get_db())


def get_subscription_repo() -> SubscriptionRepository:
    return MongoSubscriptionRepository(_get_db())


@lru_cache
def get_auth_settings() -> AuthSettings:
    return AuthSettings.from_env()


@lru_cache
def get_media_settings() -> MediaSettings:
    return MediaSettings.from_env()


def get_token_service(settings: AuthSettings = Depends(get_auth_settings)) -> TokenService:
    return TokenService(settings)


@lru_cache
def _r2_storage(settings: MediaSettings) -> R2MediaStorage:
    return R2MediaStorage(settings)


def get_media_storage(settings: MediaSettings = Depends(get_media_settings)) -> MediaStorage:
    return _r2_storage(settings)
