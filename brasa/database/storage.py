"""
Storage Service

Uploads generated images to the Supabase storage bucket and returns their
public URL.
"""

from typing import Optional

from supabase import Client

from brasa.config import config

from .client import get_supabase_admin_client


class StorageService:
    def __init__(self, client: Optional[Client] = None, bucket: Optional[str] = None):
        self._client = client
        self.bucket = bucket or config.SITE_ASSETS_BUCKET

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def upload(self, path: str, data: bytes, content_type: str = "image/png") -> str:
        """Upload (overwriting) and return the public URL."""
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path,
            data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(path)
