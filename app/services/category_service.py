import logging
import re
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.asset_store import AssetStore
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.category import Category
from app.repositories.category_repo import CategoryRepository
from app.repositories.dress_repo import DressRepository
from app.schemas.category import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


def slugify(raw: str) -> str:
    """
    Basic slugification:
      - lowercase
      - runs of non-alphanumeric characters -> single '-'
      - strip leading/trailing '-'

    May return an empty string (e.g. for "!!!"); callers decide
    whether that is acceptable.
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def parse_uuid(identifier: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(identifier)
    except ValueError:
        return None


class CategoryService:
    """
    Business logic for Category.

    Responsibilities:
      - slug derivation & uniqueness (name and slug are both unique)
      - id-or-slug resolution for public lookups
      - image replacement/removal in Storage
      - refusing to delete categories that still have dresses
    """

    def __init__(
        self,
        repo: CategoryRepository,
        dress_repo: DressRepository,
        assets: AssetStore,
    ):
        self.repo = repo
        self.dress_repo = dress_repo
        self.assets = assets

    # ----- Helpers -----

    @staticmethod
    def _slug_for(name: str) -> str:
        slug = slugify(name)
        if not slug:
            raise ValidationError("Category name must contain at least one letter or digit")
        return slug

    def _ensure_available(
        self,
        session: Session,
        name: str,
        slug: str,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        """
        Raise Conflict if another category already uses this name or slug
        (active or inactive).
        """
        for existing in (
            self.repo.get_by_name(session, name),
            self.repo.get_by_slug(session, slug),
        ):
            if existing is not None and existing.id != exclude_id:
                raise ConflictError("Category name already exists")

    def _save(self, session: Session, category: Category, create: bool) -> Category:
        try:
            if create:
                return self.repo.create(session, category)
            return self.repo.update(session, category)
        except IntegrityError:
            # Lost a race against a concurrent insert with the same name/slug
            session.rollback()
            raise ConflictError("Category name already exists")

    # ----- Reads -----

    def list_categories(self, session: Session, active_only: bool = True) -> list[Category]:
        return self.repo.list_all(session, only_active=active_only)

    def get_category(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if not category:
            raise NotFoundError("Category not found")
        return category

    def get_by_identifier(self, session: Session, identifier: str) -> Category:
        """
        Resolve a public identifier:
          - UUID-shaped => id lookup
          - anything else => slug lookup
        Inactive categories are reported as not found.
        """
        category_id = parse_uuid(identifier)
        if category_id is not None:
            category = self.repo.get_by_id(session, category_id)
        else:
            category = self.repo.get_by_slug(session, identifier)

        if not category or not category.is_active:
            raise NotFoundError("Category not found")
        return category

    # ----- Writes -----

    def create_category(self, session: Session, payload: CategoryCreate) -> Category:
        slug = self._slug_for(payload.name)
        self._ensure_available(session, payload.name, slug)

        category = Category(
            name=payload.name,
            description=payload.description,
            image_url=payload.image.url,
            image_asset_id=payload.image.asset_id,
            slug=slug,
            sort_order=payload.sort_order,
        )
        return self._save(session, category, create=True)

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        payload: CategoryUpdate,
    ) -> Category:
        """
        Partial update of a category.

        - Renaming re-derives the slug.
        - A new image replaces the old one; the old asset is deleted after
          the commit. A failed delete is logged and leaves an orphan.
        """
        category = self.get_category(session, category_id)

        if payload.name is not None and payload.name != category.name:
            slug = self._slug_for(payload.name)
            self._ensure_available(session, payload.name, slug, exclude_id=category.id)
            category.name = payload.name
            category.slug = slug

        if payload.description is not None:
            category.description = payload.description

        if payload.sort_order is not None:
            category.sort_order = payload.sort_order

        if payload.is_active is not None:
            category.is_active = payload.is_active

        replaced_asset_id = None
        if payload.image is not None and payload.image.asset_id != category.image_asset_id:
            replaced_asset_id = category.image_asset_id
            category.image_url = payload.image.url
            category.image_asset_id = payload.image.asset_id

        category.updated_at = datetime.now(timezone.utc)
        category = self._save(session, category, create=False)

        # The old image goes only once the new reference is committed
        if replaced_asset_id:
            try:
                self.assets.delete(replaced_asset_id)
            except Exception:
                logger.exception(
                    "Failed to delete replaced image %s of category %s",
                    replaced_asset_id,
                    category.id,
                )
        return category

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        """
        Delete a category and its image.

        Refused while any dress references the category. The check is
        best-effort: a dress created concurrently may still slip in.
        """
        category = self.get_category(session, category_id)

        dress_count = self.dress_repo.count_for_category(session, category.id)
        if dress_count > 0:
            raise ConflictError(
                f"Cannot delete category. {dress_count} dresses belong to this category."
            )

        slug = category.slug
        self.assets.delete(category.image_asset_id)
        self.repo.delete(session, category)
        logger.info("Deleted category %s (%s)", category_id, slug)
