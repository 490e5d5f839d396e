import logging
from typing import Iterable

from app.core.asset_store import AssetStore, StoredAsset
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

# --- Image config ---

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

CATEGORY_FOLDER = "categories"
DRESS_FOLDER = "dresses"


class UploadService:
    """
    Validates image files and stores them in the asset store.

    The returned references ({url, asset_id}) are what the category and
    dress write endpoints expect. A batch is validated as a whole before
    the first upload, so a bad file never leaves partial uploads behind.
    """

    def __init__(
        self,
        assets: AssetStore,
        max_image_bytes: int = 5 * 1024 * 1024,
        max_files: int = 10,
    ):
        self.assets = assets
        self.max_image_bytes = max_image_bytes
        self.max_files = max_files

    def _validate_and_get_ext(self, content_type: str | None, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise ValidationError("Only image files are allowed! (JPEG, PNG, WEBP)")

        if not file_bytes:
            raise ValidationError("Uploaded file is empty")

        if len(file_bytes) > self.max_image_bytes:
            limit_mb = self.max_image_bytes // (1024 * 1024)
            raise ValidationError(f"File size too large. Maximum {limit_mb}MB allowed.")

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    def _upload_all(
        self,
        folder: str,
        files: list[tuple[str | None, bytes]],
    ) -> list[StoredAsset]:
        exts = [self._validate_and_get_ext(ct, data) for ct, data in files]

        stored: list[StoredAsset] = []
        try:
            for (content_type, data), ext in zip(files, exts):
                stored.append(self.assets.upload(folder, data, content_type, ext))
        except Exception:
            # Do not leave the first half of a failed batch in Storage
            if stored:
                try:
                    self.assets.delete_many([s.asset_id for s in stored])
                except Exception:
                    logger.exception("Failed to roll back partial upload batch")
            raise
        return stored

    def upload_category_image(self, content_type: str | None, file_bytes: bytes) -> StoredAsset:
        return self._upload_all(CATEGORY_FOLDER, [(content_type, file_bytes)])[0]

    def upload_dress_images(
        self,
        files: Iterable[tuple[str | None, bytes]],
    ) -> list[StoredAsset]:
        """
        Args:
            files: iterable of (content_type, file_bytes)
        """
        files = list(files)
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > self.max_files:
            raise ValidationError(f"Too many files. Maximum {self.max_files} files allowed.")
        return self._upload_all(DRESS_FOLDER, files)
