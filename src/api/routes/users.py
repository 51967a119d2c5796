"""User account routes (register, login, session, profile, media, channels)."""

import asyncio
import logging
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)

from api.cookies import REFRESH_COOKIE, clear_token_cookies, set_token_cookies
from api.dependencies import (
    get_auth_settings,
    get_media_settings,
    get_media_storage,
    get_subscription_repo,
    get_token_service,
    get_user_repo,
)
from api.models import (
    ChangePasswordRequest,
    ChannelResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    TokensResponse,
    UpdateAccountRequest,
    UserResponse,
)
from api.security import get_current_user, get_current_user_required
from domain.model.errors import (
    AuthenticationError,
    DomainError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from port.media_storage import MediaStorage
from port.subscription_repository import SubscriptionRepository
from port.user_repository import UserRepository
from services import account_service, channel_service
from services.token_service import TokenService
from utils.settings import AuthSettings, MediaSettings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

_ERROR_STATUS = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateError, status.HTTP_409_CONFLICT),
)


def to_http_exception(error: DomainError) -> HTTPException:
    """Map a domain error to its HTTP status. Anything unmapped is a 500."""
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    logger.error("Unhandled domain error", extra={"error": str(error), "type": type(error).__name__})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@contextmanager
def spooled_uploads(upload_dir: Path, *uploads: Optional[UploadFile]) -> Iterator[list[Path | None]]:
    """Write request files to local temp files and remove any leftovers afterwards.

    The media pipeline deletes files it consumes; this catches the ones it
    never got to (e.g. a validation error before upload).
    """
    upload_dir.mkdir(parents=True, exist_ok=True)
    paths: list[Path | None] = []
    try:
        for upload in uploads:
            if upload is None or not upload.filename:
                paths.append(None)
                continue
            path = upload_dir / f"{uuid.uuid4().hex}{Path(upload.filename).suffix.lower()}"
            with path.open('wb') as out:
                shutil.copyfileobj(upload.file, out)
            paths.append(path)
        yield paths
    finally:
        for path in paths:
            if path is not None:
                path.unlink(missing_ok=True)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form("", alias="userName"),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    repo: UserRepository = Depends(get_user_repo),
    storage: MediaStorage = Depends(get_media_storage),
    auth_settings: AuthSettings = Depends(get_auth_settings),
    media_settings: MediaSettings = Depends(get_media_settings),
):
    """Register a new user with an avatar and optional cover image (multipart form)."""
    with spooled_uploads(media_settings.upload_dir, avatar, cover_image) as (avatar_path, cover_path):
        try:
            profile = await asyncio.to_thread(
                account_service.register,
                repo,
                storage,
                full_name=full_name,
                email=email,
                username=username,
                password=password,
                avatar_path=avatar_path,
                cover_image_path=cover_path,
                bcrypt_rounds=auth_settings.bcrypt_rounds,
                max_upload_attempts=media_settings.max_upload_attempts,
            )
        except DomainError as e:
            raise to_http_exception(e) from e

    return UserResponse.from_profile(profile)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    repo: UserRepository = Depends(get_user_repo),
    token_service: TokenService = Depends(get_token_service),
):
    """Login by username or email. Tokens are set as cookies and returned in the body."""
    try:
        result = await asyncio.to_thread(
            account_service.login,
            repo,
            token_service,
            password=request.password,
            username=request.username,
            email=request.email,
        )
    except DomainError as e:
        raise to_http_exception(e) from e

    set_token_cookies(response, result.tokens, token_service)
    return LoginResponse(
        user=UserResponse.from_profile(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_user: UserResponse = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    token_service: TokenService = Depends(get_token_service),
):
    await asyncio.to_thread(account_service.logout, repo, current_user.id)
    clear_token_cookies(response, token_service)
    return MessageResponse(message="User logged out")


@router.post("/refresh-token", response_model=TokensResponse)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    repo: UserRepository = Depends(get_user_repo),
    token_service: TokenService = Depends(get_token_service),
):
    """Rotate the session. The refresh token comes from the cookie or the JSON body."""
    presented = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    try:
        pair = await asyncio.to_thread(account_service.refresh_session, repo, token_service, presented)
    except DomainError as e:
        raise to_http_exception(e) from e

    set_token_cookies(response, pair, token_service)
    return TokensResponse.from_pair(pair)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: UserResponse = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    auth_settings: AuthSettings = Depends(get_auth_settings),
):
    try:
        await asyncio.to_thread(
            account_service.change_password,
            repo,
            current_user.id,
            old_password=request.old_password,
            new_password=request.new_password,
            bcrypt_rounds=auth_settings.bcrypt_rounds,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return MessageResponse(message="Password changed successfully")


@router.get("/current-user", response_model=UserResponse)
async def current_user(current_user: UserResponse = Depends(get_current_user_required)):
    return current_user


@router.patch("/update-account", response_model=UserResponse)
async def update_account(
    request: UpdateAccountRequest,
    current_user: UserResponse = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    try:
        profile = await asyncio.to_thread(
            account_service.update_profile, repo, current_user.id, request.full_name, request.email,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return UserResponse.from_profile(profile)


@router.patch("/avatar", response_model=UserResponse)
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: UserResponse = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    storage: MediaStorage = Depends(get_media_storage),
    media_settings: MediaSettings = Depends(get_media_settings),
):
    """Replace the avatar. The old asset is deleted only after the new one is stored."""
    with spooled_uploads(media_settings.upload_dir, avatar) as (avatar_path,):
        try:
            profile = await asyncio.to_thread(
                account_service.replace_avatar,
                repo, storage, current_user.id, avatar_path,
                max_upload_attempts=media_settings.max_upload_attempts,
            )
        except DomainError as e:
            raise to_http_exception(e) from e
    return UserResponse.from_profile(profile)


@router.patch("/cover-image", response_model=UserResponse)
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: UserResponse = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
    storage: MediaStorage = Depends(get_media_storage),
    media_settings: MediaSettings = Depends(get_media_settings),
):
    with spooled_uploads(media_settings.upload_dir, cover_image) as (cover_path,):
        try:
            profile = await asyncio.to_thread(
                account_service.replace_cover_image,
                repo, storage, current_user.id, cover_path,
                max_upload_attempts=media_settings.max_upload_attempts,
            )
        except DomainError as e:
            raise to_http_exception(e) from e
    return UserResponse.from_profile(profile)


@router.get("/c/{username}", response_model=ChannelResponse)
async def get_channel(
    username: str,
    viewer: Optional[UserResponse] = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repo),
    subscriptions: SubscriptionRepository = Depends(get_subscription_repo),
):
    try:
        profile = await asyncio.to_thread(
            channel_service.get_channel_profile,
            users, subscriptions, username, viewer_id=viewer.id if viewer else None,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return ChannelResponse.from_profile(profile)


@router.post("/c/{username}/subscription", response_model=ChannelResponse)
async def subscribe(
    username: str,
    current_user: UserResponse = Depends(get_current_user_required),
    users: UserRepository = Depends(get_user_repo),
    subscriptions: SubscriptionRepository = Depends(get_subscription_repo),
):
    try:
        profile = await asyncio.to_thread(
            channel_service.subscribe, users, subscriptions, current_user.id, username,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return ChannelResponse.from_profile(profile)


@router.delete("/c/{username}/subscription", response_model=ChannelResponse)
async def unsubscribe(
    username: str,
    current_user: UserResponse = Depends(get_current_user_required),
    users: UserRepository = Depends(get_user_repo),
    subscriptions: SubscriptionRepository = Depends(get_subscription_repo),
):
    try:
        profile = await asyncio.to_thread(
            channel_service.unsubscribe, users, subscriptions, current_user.id, username,
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    return ChannelResponse.from_profile(profile)
