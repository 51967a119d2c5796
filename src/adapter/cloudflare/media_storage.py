"""Cloudflare R2 implementation of MediaStorage.

Objects are stored under `<prefix>/<asset_id><suffix>` and served from the
bucket's public URL. Deleting by id lists the `<prefix>/<asset_id>` key prefix
to recover the suffix, and removes only the key that belongs to that id.
"""

import logging
import uuid
from pathlib import Path

import boto3  # type: ignore[import-untyped]
from boto3.exceptions import S3UploadFailedError  # type: ignore[import-untyped]
from botocore.config import Config  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore[import-untyped]

from domain.model.asset import AssetReference
from domain.model.errors import MediaStorageError
from utils.settings import MediaSettings

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.avif': 'image/avif',
}


def guess_content_type(path: Path) -> str:
    return CONTENT_TYPES.get(path.suffix.lower(), 'application/octet-stream')


class R2MediaStorage:
    def __init__(self, settings: MediaSettings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                's3',
                endpoint_url=self.settings.endpoint_url,
                aws_access_key_id=self.settings.access_key_id,
                aws_secret_access_key=self.settings.secret_access_key,
                config=Config(signature_version='s3v4', retries={'max_attempts': 1}),
            )
        return self._client

    def _key_prefix(self, asset_id: str) -> str:
        prefix = self.settings.key_prefix.strip('/')
        return f'{prefix}/{asset_id}' if prefix else asset_id

    def public_url(self, key: str) -> str:
        return f"{self.settings.public_url.rstrip('/')}/{key}"

    def upload(self, local_path: Path) -> AssetReference:
        """Upload a local file as a new asset.

        Raises:
            MediaStorageError: the upload call failed
        """
        asset_id = uuid.uuid4().hex
        key = f'{self._key_prefix(asset_id)}{local_path.suffix.lower()}'

        try:
            self.client.upload_file(
                str(local_path),
                self.settings.bucket_name,
                key,
                ExtraArgs={'ContentType': guess_content_type(local_path)},
            )
        except (S3UploadFailedError, BotoCoreError, ClientError, OSError) as e:
            logger.debug(f"R2 upload failed (bucket={self.settings.bucket_name}, key={key}): {e}")
            raise MediaStorageError(f"Upload to R2 failed: {e}") from e

        return AssetReference(url=self.public_url(key), asset_id=asset_id)

    def _is_asset_key(self, key: str, asset_id: str) -> bool:
        """True only for `<prefix>/<asset_id>` or `<prefix>/<asset_id>.<ext>`.

        The listing prefix also matches longer ids that start with `asset_id`.
        """
        rest = key[len(self._key_prefix(asset_id)):]
        return rest == '' or (rest.startswith('.') and rest.count('.') == 1 and '/' not in rest)

    def delete(self, asset_id: str) -> None:
        """Delete the object stored for an asset id. Missing objects are not an error.

        Raises:
            MediaStorageError: listing or deletion failed
        """
        prefix = self._key_prefix(asset_id)
        try:
            paginator = self.client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self.settings.bucket_name, Prefix=prefix):
                for obj in page.get('Contents', []):
                    if not self._is_asset_key(obj['Key'], asset_id):
                        continue
                    self.client.delete_object(Bucket=self.settings.bucket_name, Key=obj['Key'])
        except (BotoCoreError, ClientError) as e:
            raise MediaStorageError(f"Delete from R2 failed: {e}") from e
