import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable

from supabase import Client, create_client

from app.core.config import Settings

logger = logging.getLogger(__name__)

# Upper bound on parallel delete requests issued by delete_many()
MAX_PARALLEL_DELETES = 8


@dataclass(frozen=True)
class StoredAsset:
    """Result of an upload: public URL + the reference needed to delete it."""

    url: str
    asset_id: str


class AssetStore:
    """
    Thin capability wrapper around a Supabase Storage bucket.

    - upload(...)      -> StoredAsset(url, asset_id)
    - delete(id)       -> True if the object existed and was removed
    - delete_many(ids) -> issues all deletes concurrently, waits for all

    The asset_id is the object path relative to the bucket, e.g.
    'dresses/<uuid4>.webp'.

    The Supabase client is created lazily on first use so that constructing
    the store (at app startup) never performs network I/O.
    """

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str | None,
        bucket: str,
        client: Client | None = None,
    ):
        self.supabase_url = supabase_url
        self.service_role_key = service_role_key
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AssetStore":
        return cls(
            supabase_url=settings.SUPABASE_URL,
            service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
            bucket=settings.STORAGE_BUCKET,
        )

    @property
    def client(self) -> Client:
        """
        Supabase client with the service role key.

        WARNING:
          - Never expose service role key to frontend.

        Raises:
            RuntimeError: if SUPABASE_SERVICE_ROLE_KEY is not set.
        """
        if self._client is None:
            if not self.service_role_key:
                raise RuntimeError("Missing SUPABASE_SERVICE_ROLE_KEY in .env")
            self._client = create_client(self.supabase_url, self.service_role_key)
        return self._client

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    # ----- Upload -----

    def upload(
        self,
        folder: str,
        file_bytes: bytes,
        content_type: str,
        ext: str,
    ) -> StoredAsset:
        """
        Upload raw bytes under '<folder>/<uuid4>.<ext>'.

        Raises:
            Any exception raised by the Supabase client if upload fails.
        """
        path = f"{folder}/{uuid.uuid4()}.{ext}"
        self._bucket().upload(path, file_bytes, {"content-type": content_type})
        url = self._bucket().get_public_url(path)
        return StoredAsset(url=url, asset_id=path)

    # ----- Delete -----

    def delete(self, asset_id: str) -> bool:
        """
        Delete one object by its asset id (bucket-relative path).

        Supabase returns the list of removed objects; an empty list means
        nothing matched the path.
        """
        removed = self._bucket().remove([asset_id])
        if not removed:
            logger.warning("Asset %s was not found in bucket %s", asset_id, self.bucket)
            return False
        return True

    def delete_many(self, asset_ids: Iterable[str]) -> list[bool]:
        """
        Delete several assets concurrently.

        All deletes run to completion before this returns. If any of them
        failed, the first failure is re-raised afterwards.
        """
        ids = [asset_id for asset_id in asset_ids if asset_id]
        if not ids:
            return []

        workers = min(MAX_PARALLEL_DELETES, len(ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.delete, asset_id) for asset_id in ids]

        results: list[bool] = []
        for future in futures:
            # Every future is done once the executor has shut down
            results.append(future.result())
        return results
