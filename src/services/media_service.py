"""Media pipeline — moves local temporary uploads to durable remote storage.

Uploads are retried immediately up to a fixed number of attempts. There is
no idempotency key: a retried upload that partially landed remotely may
leave an orphaned object. That is acceptable only because every upload
creates a brand new asset; do not reuse this helper for other remote calls.

The local file is always removed once the pipeline is done with it.
"""

import logging
from pathlib import Path
from typing import Callable

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from domain.model.asset import AssetReference, extract_asset_id
from domain.model.errors import (
    MalformedReferenceError,
    MediaStorageError,
    UploadFailedError,
)
from port.media_storage import MediaStorage
from utils.settings import DEFAULT_MAX_UPLOAD_ATTEMPTS

logger = logging.getLogger(__name__)


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Upload attempt failed, retrying", extra={
        "attempt": retry_state.attempt_number,
        "error": str(error),
    })


def _remove_local(local_path: Path) -> None:
    try:
        local_path.unlink(missing_ok=True)
    except OSError as e:
        logger.error("Failed to remove temporary upload", extra={"path": str(local_path), "error": str(e)})


def upload_with_retry(
    storage: MediaStorage,
    local_path: Path | str,
    max_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS,
) -> AssetReference:
    """Upload a local file, retrying failed attempts immediately.

    The local file is removed whether the upload succeeds or not.

    Raises:
        UploadFailedError: the file is missing or every attempt failed
        ValueError: max_attempts is less than 1
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    local_path = Path(local_path)
    try:
        if not local_path.is_file():
            raise UploadFailedError(f"Upload source does not exist: {local_path.name}")

        retrying = Retrying(
            retry=retry_if_exception_type(MediaStorageError),
            stop=stop_after_attempt(max_attempts),
            before_sleep=_log_failed_attempt,
            reraise=True,
        )
        try:
            reference = retrying(storage.upload, local_path)
        except (MediaStorageError, RetryError) as e:
            logger.error("Upload failed after all attempts", extra={
                "file": local_path.name,
                "attempts": max_attempts,
                "error": str(e),
            })
            raise UploadFailedError("Error while uploading file") from e

        logger.info("File uploaded", extra={"file": local_path.name, "assetId": reference.asset_id})
        return reference
    finally:
        _remove_local(local_path)


def discard_asset(storage: MediaStorage, url: str) -> bool:
    """Delete a remote asset by URL, best effort. Return True if deleted.

    Failures are logged and swallowed.
    """
    if not url:
        return False
    try:
        asset_id = extract_asset_id(url)
        storage.delete(asset_id)
    except (MalformedReferenceError, MediaStorageError) as e:
        logger.warning("Failed to delete superseded asset", extra={"url": url, "error": str(e)})
        return False

    logger.info("Superseded asset deleted", extra={"assetId": asset_id})
    return True


def replace_asset(
    storage: MediaStorage,
    existing_url: str | None,
    new_local_path: Path | str,
    max_attempts: int = DEFAULT_MAX_UPLOAD_ATTEMPTS,
    attach: Callable[[AssetReference], object] | None = None,
) -> AssetReference:
    """Upload a replacement, then delete the asset it supersedes.

    The old asset is only touched after the new upload succeeded and
    `attach` (which records the new reference on its owner) returned, so
    there is never a moment without a valid asset. Deletion failure does
    not fail the replace.

    Raises:
        UploadFailedError: the new file could not be uploaded (old asset kept)
        Any error raised by `attach` (old asset kept)
    """
    reference = upload_with_retry(storage, new_local_path, max_attempts=max_attempts)
    if attach is not None:
        attach(reference)
    if existing_url and existing_url != reference.url:
        discard_asset(storage, existing_url)
    return reference
