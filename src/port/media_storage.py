"""Port definition for the remote asset store."""

from pathlib import Path
from typing import Protocol

from domain.model.asset import AssetReference


class MediaStorage(Protocol):
    """Durable remote storage for user media.

    Both calls may be slow and raise MediaStorageError on failure.
    """

    def upload(self, local_path: Path) -> AssetReference: ...
    def delete(self, asset_id: str) -> None: ...
