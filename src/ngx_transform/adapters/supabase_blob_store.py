"""Supabase Storage implementation of the blob store."""

from dataclasses import dataclass

from supabase import Client

from ngx_transform.services.storage import BlobStore, UploadSlot


@dataclass
class SupabaseBlobStore(BlobStore):
    """Objects kept in a single private Supabase Storage bucket."""

    client: Client
    bucket: str

    def signed_url(self, path: str, expires_in: int) -> str:
        """Create a signed read URL."""
        response = self._bucket().create_signed_url(path, expires_in)
        url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            raise RuntimeError(f"Failed to sign {path}")
        return url

    def create_upload_slot(self, path: str) -> UploadSlot:
        """Create a signed upload URL for a client-side upload."""
        response = self._bucket().create_signed_upload_url(path)
        url = response.get("signed_url") or response.get("signedUrl")
        if not url:
            raise RuntimeError(f"Failed to create upload URL for {path}")
        return UploadSlot(path=path, url=url, token=str(response.get("token", "")))

    def download(self, path: str) -> bytes:
        """Download object bytes."""
        return self._bucket().download(path)

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Upload bytes, overwriting any existing object."""
        self._bucket().upload(
            path,
            data,
            {
                "content-type": content_type,
                "cache-control": "no-cache",
                "upsert": "true",
            },
        )

    def delete(self, paths: list[str]) -> None:
        """Remove objects; Storage ignores paths that do not exist."""
        if paths:
            self._bucket().remove(list(paths))

    def _bucket(self):  # type: ignore[no-untyped-def]
        return self.client.storage.from_(self.bucket)
