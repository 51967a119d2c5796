"""In-memory implementation of MediaStorage for testing.

`upload_failures` / `delete_failures` make the next N calls raise
MediaStorageError, to exercise retry and swallow paths.
"""

import uuid
from pathlib import Path

from domain.model.asset import AssetReference
from domain.model.errors import MediaStorageError

FAKE_MEDIA_URL = 'https://media.example.test/media'


class FakeMediaStorage:
    def __init__(self, upload_failures: int = 0, delete_failures: int = 0):
        self.objects: dict[str, bytes] = {}
        self.upload_failures = upload_failures
        self.delete_failures = delete_failures
        self.upload_calls = 0
        self.deleted: list[str] = []
        self.calls: list[str] = []

    def upload(self, local_path: Path) -> AssetReference:
        self.upload_calls += 1
        self.calls.append('upload')
        if self.upload_failures > 0:
            self.upload_failures -= 1
            raise MediaStorageError("Simulated upload failure")

        asset_id = uuid.uuid4().hex
        self.objects[asset_id] = Path(local_path).read_bytes()
        return AssetReference(url=f'{FAKE_MEDIA_URL}/{asset_id}{Path(local_path).suffix}', asset_id=asset_id)

    def delete(self, asset_id: str) -> None:
        self.calls.append('delete')
        if self.delete_failures > 0:
            self.delete_failures -= 1
            raise MediaStorageError("Simulated delete failure")
        self.objects.pop(asset_id, None)
        self.deleted.append(asset_id)
