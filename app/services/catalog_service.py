import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session, SQLModel

from app.core.asset_store import AssetStore
from app.models.category import Category
from app.schemas.category import CategoryCreate, CategoryUpdate
from app.schemas.dress import DressCreate, DressRead, DressUpdate, decode_json_field
from app.services.category_service import CategoryService
from app.services.dress_service import DressService

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=SQLModel)


def submitted_asset_ids(data: Any, *keys: str) -> list[str]:
    """
    Collect `asset_id`s from the image references under `keys` of a raw
    request body, before it is validated.

    Each key may hold one reference, a list of them, or either as JSON
    text. Anything malformed is skipped.
    """
    if not isinstance(data, dict):
        return []

    ids: list[str] = []
    for key in keys:
        value = data.get(key)
        try:
            value = decode_json_field(value)
        except ValueError:
            continue
        refs = value if isinstance(value, list) else [value]
        for ref in refs:
            if not isinstance(ref, dict):
                continue
            asset_id = ref.get("asset_id")
            if isinstance(asset_id, str) and asset_id.strip() and asset_id.strip() not in ids:
                ids.append(asset_id.strip())
    return ids


def parse_payload(model: type[PayloadT], data: Any) -> PayloadT:
    """
    Validate a raw body; errors are reported like FastAPI's own request
    validation so clients see the same envelope.
    """
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))


class CatalogService:
    """
    Composition root for the catalog.

    Images are uploaded by the client before create/update calls and
    arrive here as asset references inside the raw request body. The
    references are noted before the body is validated: if validation or
    the create/update itself fails, those fresh assets would be orphaned
    in Storage, so they are deleted before the original error is
    re-raised.

    Reads and deletes are delegated directly:
      - catalog.categories (CategoryService)
      - catalog.dresses (DressService)
    """

    def __init__(
        self,
        categories: CategoryService,
        dresses: DressService,
        assets: AssetStore,
    ):
        self.categories = categories
        self.dresses = dresses
        self.assets = assets

    # ----- Compensation -----

    def _discard_uploaded(self, session: Session, asset_ids: list[str]) -> None:
        """
        Best-effort removal of assets uploaded for a failed request.

        Assets that are still referenced by a saved category or dress
        (e.g. a client re-sending the current image) are kept.
        Failures are logged only; the caller re-raises the original error.
        """
        try:
            session.rollback()
            referenced = self.categories.repo.referenced_asset_ids(session, asset_ids)
            referenced |= self.dresses.repo.referenced_asset_ids(session, asset_ids)
            orphans = [asset_id for asset_id in asset_ids if asset_id not in referenced]
            if orphans:
                self.assets.delete_many(orphans)
                logger.info("Removed %d orphaned uploads after failed request", len(orphans))
        except Exception:
            logger.exception("Failed to clean up uploaded assets %s", asset_ids)

    @contextmanager
    def _compensating(self, session: Session, asset_ids: list[str]) -> Iterator[None]:
        try:
            yield
        except Exception:
            if asset_ids:
                self._discard_uploaded(session, asset_ids)
            raise

    # ----- Categories -----

    def create_category(self, session: Session, data: dict[str, Any]) -> Category:
        with self._compensating(session, submitted_asset_ids(data, "image")):
            payload = parse_payload(CategoryCreate, data)
            return self.categories.create_category(session, payload)

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        data: dict[str, Any],
    ) -> Category:
        with self._compensating(session, submitted_asset_ids(data, "image")):
            payload = parse_payload(CategoryUpdate, data)
            return self.categories.update_category(session, category_id, payload)

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        self.categories.delete_category(session, category_id)

    # ----- Dresses -----

    def create_dress(self, session: Session, data: dict[str, Any]) -> DressRead:
        with self._compensating(session, submitted_asset_ids(data, "images")):
            payload = parse_payload(DressCreate, data)
            return self.dresses.create_dress(session, payload)

    def update_dress(
        self,
        session: Session,
        dress_id: uuid.UUID,
        data: dict[str, Any],
    ) -> DressRead:
        # remove_asset_ids name images the dress already owns; never compensated
        with self._compensating(session, submitted_asset_ids(data, "new_images")):
            payload = parse_payload(DressUpdate, data)
            return self.dresses.update_dress(session, dress_id, payload)

    def delete_dress(self, session: Session, dress_id: uuid.UUID) -> None:
        self.dresses.delete_dress(session, dress_id)
