"""Cleanup of transient image uploads used for reverse-image search."""

from abc import ABC, abstractmethod
from urllib.parse import urlparse

import httpx

from models.errors import UploadCleanupError

PUBLIC_OBJECT_PREFIX = "/storage/v1/object/public/"


class UploadStore(ABC):
    """Object storage holding images uploaded for a single search."""

    @abstractmethod
    async def delete(self, image_ref: str) -> None:
        """Delete one uploaded image. Raises UploadCleanupError on any failure."""


class SupabaseUploadStore(UploadStore):
    """Deletes objects from Supabase Storage given their public URL."""

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.supabase_url = supabase_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._transport = transport

    @staticmethod
    def object_path(image_ref: str) -> str:
        """'https://x.supabase.co/storage/v1/object/public/uploads/a.jpg' -> 'uploads/a.jpg'"""
        path = urlparse(image_ref).path
        if not path.startswith(PUBLIC_OBJECT_PREFIX):
            raise UploadCleanupError(f"Not a public storage URL: {image_ref}")
        return path[len(PUBLIC_OBJECT_PREFIX):]

    async def delete(self, image_ref: str) -> None:
        object_path = self.object_path(image_ref)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                response = await client.delete(
                    f"{self.supabase_url}/storage/v1/object/{object_path}",
                    headers={"Authorization": f"Bearer {self.api_key}", "apikey": self.api_key},
                )
                response.raise_for_status()
        except Exception as e:
            raise UploadCleanupError(f"Failed to delete {object_path}: {e}") from e
