"""Account service — registration, login and profile business logic.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.
Every operation returns a UserProfile, never the raw User record.
"""

import logging
from pathlib import Path

from domain.model.asset import AssetReference
from domain.model.errors import (
    AuthenticationError,
    DomainError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from domain.model.token import LoginResult, TokenPair
from domain.model.user import User, UserProfile, normalize_email, normalize_username
from port.media_storage import MediaStorage
from port.user_repository import UserRepository
from services import session_service
from services.media_service import replace_asset, upload_with_retry
from services.passwords import hash_password, verify_password
from services.token_service import TokenService
from utils.settings import BCRYPT_ROUNDS, DEFAULT_MAX_UPLOAD_ATTEMPTS

logger = logging.getLogger(__name__)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _require_user(repo: UserRepository, user_id: str) -> User:
    user = repo.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def register(
    repo: UserRepository,
    storage: MediaStorage,
    full_name: str,
    email: str,
    username: str,
    password: str,
    avatar_path: Path | str | None,
    cover_image_path: Path | str | None = None,
    bcrypt_rounds: int = BCRYPT_ROUNDS,
    max_upload_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS,
) -> UserProfile:
    """Register a new user.

    Media is uploaded before the record is written. If the write fails
    afterwards the uploaded assets are left behind.

    Raises:
        ValidationError: a required field is blank or the avatar is missing
        DuplicateError: username or email already registered
        UploadFailedError: avatar or cover image upload failed
        DomainError: user record could not be created
    """
    if any(_is_blank(field) for field in (full_name, email, username, password)):
        raise ValidationError("All fields are required")

    username = normalize_username(username)
    email = normalize_email(email)

    if repo.find_by_username_or_email(username, email):
        raise DuplicateError("User with email or username already exists")

    if not avatar_path:
        raise ValidationError("Avatar file is required")

    avatar = upload_with_retry(storage, avatar_path, max_attempts=max_upload_attempts)
    cover_image = None
    if cover_image_path:
        cover_image = upload_with_retry(storage, cover_image_path, max_attempts=max_upload_attempts)

    user = repo.create(
        username=username,
        email=email,
        full_name=full_name.strip(),
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        avatar=avatar.url,
        cover_image=cover_image.url if cover_image else '',
    )
    if not user:
        raise DomainError("Something went wrong while registering the user")

    logger.info("User registered", extra={"userId": user.id, "username": username})
    return user.to_profile()


def login(
    repo: UserRepository,
    tokens: TokenService,
    password: str,
    username: str | None = None,
    email: str | None = None,
) -> LoginResult:
    """Authenticate by username or email and open a new session.

    The same error is raised for an unknown user and a wrong password.

    Raises:
        ValidationError: neither username nor email given, or password is blank
        AuthenticationError: invalid credentials
    """
    if _is_blank(username) and _is_blank(email):
        raise ValidationError("Username or email is required")
    if _is_blank(password):
        raise ValidationError("Password is required")

    user = repo.find_by_username_or_email(
        normalize_username(username) if not _is_blank(username) else None,
        normalize_email(email) if not _is_blank(email) else None,
    )
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid user credentials")

    pair = session_service.rotate(repo, tokens, user.id)

    logger.info("User logged in", extra={"userId": user.id})
    return LoginResult(user=user.to_profile(), tokens=pair)


def refresh_session(repo: UserRepository, tokens: TokenService, refresh_token: str | None) -> TokenPair:
    """Exchange a refresh token for a rotated pair."""
    return session_service.refresh(repo, tokens, refresh_token)


def logout(repo: UserRepository, user_id: str) -> None:
    session_service.revoke(repo, user_id)
    logger.info("User logged out", extra={"userId": user_id})


def change_password(
    repo: UserRepository,
    user_id: str,
    old_password: str,
    new_password: str,
    bcrypt_rounds: int = BCRYPT_ROUNDS,
) -> None:
    """Replace the password hash after checking the current password.

    Raises:
        ValidationError: either password is blank
        NotFoundError: user does not exist
        AuthenticationError: old password does not match
    """
    if _is_blank(old_password) or _is_blank(new_password):
        raise ValidationError("Old and new password are required")

    user = _require_user(repo, user_id)
    if not verify_password(old_password, user.password_hash):
        raise AuthenticationError("Invalid old password")

    if repo.update(user.id, password_hash=hash_password(new_password, rounds=bcrypt_rounds)) is None:
        raise DomainError("Failed to update password")

    logger.info("Password changed", extra={"userId": user.id})


def get_current_user(repo: UserRepository, user_id: str) -> UserProfile:
    return _require_user(repo, user_id).to_profile()


def update_profile(repo: UserRepository, user_id: str, full_name: str, email: str) -> UserProfile:
    """Update display name and contact email.

    Raises:
        ValidationError: name or email is blank
        DuplicateError: email belongs to another account
        NotFoundError: user does not exist
    """
    if _is_blank(full_name) or _is_blank(email):
        raise ValidationError("All fields are required")

    email = normalize_email(email)
    owner = repo.get_by_email(email)
    if owner and owner.id != user_id:
        raise DuplicateError("Email already registered")

    user = repo.update(user_id, full_name=full_name.strip(), email=email)
    if not user:
        raise NotFoundError("User not found")

    logger.info("Account details updated", extra={"userId": user_id})
    return user.to_profile()


def _replace_media(
    repo: UserRepository,
    storage: MediaStorage,
    user_id: str,
    field: str,
    local_path: Path | str | None,
    max_upload_attempts: int,
) -> UserProfile:
    if not local_path:
        raise ValidationError(f"{'Avatar' if field == 'avatar' else 'Cover image'} file is missing")

    user = _require_user(repo, user_id)
    updated: list[User] = []

    def attach(reference: AssetReference) -> None:
        result = repo.update(user.id, **{field: reference.url})
        if not result:
            raise DomainError(f"Failed to update {field}")
        updated.append(result)

    reference = replace_asset(
        storage,
        getattr(user, field),
        local_path,
        max_attempts=max_upload_attempts,
        attach=attach,
    )

    logger.info("User media replaced", extra={"userId": user.id, "field": field, "assetId": reference.asset_id})
    return updated[0].to_profile()


def replace_avatar(
    repo: UserRepository,
    storage: MediaStorage,
    user_id: str,
    avatar_path: Path | str | None,
    max_upload_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS,
) -> UserProfile:
    """Upload a new avatar, point the user at it, and drop the old one."""
    return _replace_media(repo, storage, user_id, 'avatar', avatar_path, max_upload_attempts)


def replace_cover_image(
    repo: UserRepository,
    storage: MediaStorage,
    user_id: str,
    cover_image_path: Path | str | None,
    max_upload_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS,
) -> UserProfile:
    return _replace_media(repo, storage, user_id, 'cover_image', cover_image_path, max_upload_attempts)
