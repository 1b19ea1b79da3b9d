import asyncio
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from urllib.parse import quote, unquote, urlparse

from services.exceptions import BlobNotFoundError, StoreUnavailableError


class BlobStore(ABC):
    """File storage for criteria sheet PDFs."""

    @abstractmethod
    async def upload(self, name: str, content: bytes, content_type: str) -> str:
        """Store content under name and return the name."""

    @abstractmethod
    def public_url(self, name: str) -> str:
        pass

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Raises BlobNotFoundError if nothing is stored under name."""

    @staticmethod
    def name_from_url(url: str) -> str:
        """Blob name is the last path segment of its public URL."""
        path = urlparse(url).path or url
        return unquote(path.rstrip("/").rsplit("/", 1)[-1])


class LocalBlobStore(BlobStore):
    def __init__(self, base_path: str, base_url: str):
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve_safe_path(self, name: str) -> Path:
        if not name or "\\" in name:
            raise ValueError("Invalid blob name")
        key_path = PurePosixPath(name)
        if key_path.is_absolute() or ".." in key_path.parts or len(key_path.parts) != 1:
            raise ValueError("Invalid blob name")
        return self.base_path.resolve() / name

    def resolve_path(self, name: str) -> Path:
        return self._resolve_safe_path(name)

    async def upload(self, name, content, content_type):
        path = self._resolve_safe_path(name)
        try:
            await asyncio.to_thread(path.write_bytes, content)
        except OSError as e:
            raise StoreUnavailableError(f"Could not write blob {name!r}: {e}") from e
        return name

    def public_url(self, name):
        return f"{self.base_url}/{quote(name)}"

    async def delete(self, name):
        path = self._resolve_safe_path(name)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            raise BlobNotFoundError(name) from None
        except OSError as e:
            raise StoreUnavailableError(f"Could not delete blob {name!r}: {e}") from e

    def exists(self, name: str) -> bool:
        try:
            return self._resolve_safe_path(name).exists()
        except ValueError:
            return False
