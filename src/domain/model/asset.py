"""Remote asset reference."""

from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlparse

from domain.model.errors import MalformedReferenceError


@dataclass(frozen=True)
class AssetReference:
    """Durable locator for a file held by the remote asset store."""
    url: str
    asset_id: str

    @classmethod
    def from_url(cls, url: str) -> 'AssetReference':
        return cls(url=url, asset_id=extract_asset_id(url))


def extract_asset_id(url: str) -> str:
    """Derive the remote deletion id from an asset URL.

    The id is the last path segment with its extension stripped:
        https://cdn.example.com/avatars/3f2a9c.png → 3f2a9c

    Raises:
        MalformedReferenceError: URL has no path segments
    """
    if not url or not url.strip():
        raise MalformedReferenceError("Asset reference is empty")

    segments = [segment for segment in urlparse(url.strip()).path.split('/') if segment]
    if not segments:
        raise MalformedReferenceError(f"Asset reference has no path: {url}")

    asset_id = PurePosixPath(segments[-1]).stem
    if not asset_id:
        raise MalformedReferenceError(f"Asset reference has no identifier: {url}")
    return asset_id
