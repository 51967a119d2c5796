"""Application settings loaded from the environment.

Settings objects are built once at the edge (api.dependencies) and passed
into services. Services never read os.environ themselves.
"""

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BCRYPT_ROUNDS = 12
DEFAULT_MAX_UPLOAD_ATTEMPTS = 3


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {'1', 'true', 'yes', 'on'}


@dataclass(frozen=True)
class AuthSettings:
    """Token signing and password hashing configuration."""
    access_token_secret: str
    refresh_token_secret: str
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 10
    algorithm: str = 'HS256'
    bcrypt_rounds: int = BCRYPT_ROUNDS
    secure_cookies: bool = True

    def __post_init__(self):
        if not self.access_token_secret or not self.refresh_token_secret:
            raise ValueError(
                "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET are required. "
                "Generate secure keys with: openssl rand -hex 32"
            )
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("Access and refresh tokens must use different secrets")

    @classmethod
    def from_env(cls) -> 'AuthSettings':
        return cls(
            access_token_secret=os.getenv('ACCESS_TOKEN_SECRET', ''),
            refresh_token_secret=os.getenv('REFRESH_TOKEN_SECRET', ''),
            access_token_expire_minutes=_get_int('ACCESS_TOKEN_EXPIRE_MINUTES', 15),
            refresh_token_expire_days=_get_int('REFRESH_TOKEN_EXPIRE_DAYS', 10),
            bcrypt_rounds=_get_int('BCRYPT_ROUNDS', BCRYPT_ROUNDS),
            secure_cookies=_get_bool('SECURE_COOKIES', True),
        )


@dataclass(frozen=True)
class MediaSettings:
    """Cloudflare R2 media storage configuration."""
    bucket_name: str = ''
    account_id: str = ''
    access_key_id: str = ''
    secret_access_key: str = ''
    public_url: str = ''
    key_prefix: str = 'media'
    max_upload_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS
    upload_dir: Path = Path(tempfile.gettempdir()) / 'channel-accounts-uploads'

    @property
    def endpoint_url(self) -> str:
        return f'https://{self.account_id}.r2.cloudflarestorage.com'

    @classmethod
    def from_env(cls) -> 'MediaSettings':
        upload_dir = os.getenv('UPLOAD_TMP_DIR')
        return cls(
            bucket_name=os.getenv('R2_BUCKET_NAME', ''),
            account_id=os.getenv('R2_ACCOUNT_ID', ''),
            access_key_id=os.getenv('R2_ACCESS_KEY_ID', ''),
            secret_access_key=os.getenv('R2_SECRET_ACCESS_KEY', ''),
            public_url=os.getenv('R2_PUBLIC_URL', ''),
            key_prefix=os.getenv('R2_MEDIA_PREFIX', 'media'),
            max_upload_attempts=_get_int('MEDIA_MAX_UPLOAD_ATTEMPTS', DEFAULT_MAX_UPLOAD_ATTEMPTS),
            upload_dir=Path(upload_dir) if upload_dir else cls.upload_dir,
        )
