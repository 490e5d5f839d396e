import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from urllib.parse import quote

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.asset_store import AssetStore
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.category import Category
from app.models.dress import (
    DEFAULT_CONTACT_MESSAGE,
    Dress,
    DressColor,
    DressImage,
    DressSize,
    DressTag,
)
from app.repositories.dress_repo import DressRepository
from app.schemas.category import CategorySummary
from app.schemas.dress import (
    ColorIn,
    ColorRead,
    DressCreate,
    DressFilters,
    DressRead,
    DressSort,
    DressUpdate,
    ImageRef,
    PriceRead,
    RatingRead,
    SizeIn,
    SizeRead,
    normalize_size_name,
)
from app.services.category_service import CategoryService

logger = logging.getLogger(__name__)

# --- Paging config ---

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50
DEFAULT_FEATURED_LIMIT = 8

SKU_PREFIX = "DRESS"

WHATSAPP_BASE_URL = "https://wa.me"


# ----- Derived values -----


def discount_percentage(original: float, discounted: float | None) -> int:
    """
    Percentage saved, rounded half-up. 0 when there is no discount
    (or the original price is 0).
    """
    if discounted is None or original <= 0:
        return 0
    return math.floor((original - discounted) / original * 100 + 0.5)


def effective_price(original: float, discounted: float | None) -> float:
    return discounted if discounted is not None else original


def format_amount(amount: float) -> str:
    """1999.0 -> '1999', 1999.5 -> '1999.50'"""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def build_contact_link(
    contact_number: str,
    template: str,
    *,
    dress_name: str,
    price: float,
    sku: str,
    category_name: str,
    currency_symbol: str,
) -> str:
    """
    Build a WhatsApp deep link with a pre-filled message.

    Placeholders: {dressName}, {dressPrice}, {dressSKU}, {dressCategory}.
    The message is percent-encoded like JavaScript's encodeURIComponent.
    """
    number = "".join(ch for ch in contact_number if ch.isdigit())
    message = (
        template.replace("{dressName}", dress_name)
        .replace("{dressPrice}", f"{currency_symbol}{format_amount(price)}")
        .replace("{dressSKU}", sku or "")
        .replace("{dressCategory}", category_name or "")
    )
    encoded = quote(message, safe="!~*'()")
    return f"{WHATSAPP_BASE_URL}/{number}?text={encoded}"


def clamp_paging(page: int, limit: int) -> tuple[int, int]:
    """page >= 1, limit within [1, MAX_PAGE_SIZE]."""
    return max(1, page), max(1, min(MAX_PAGE_SIZE, limit))


@dataclass
class DressPage:
    items: list[DressRead]
    total: int
    page: int
    pages: int


class DressService:
    """
    Business logic for dresses.

    Responsibilities:
      - filtered / sorted / paginated listing and free-text search
      - SKU assignment (once, at creation)
      - image-set lifecycle (at least one image, add/remove by asset id,
        Storage cleanup on removal and deletion)
      - derived pricing and the WhatsApp contact link
      - view counting (runs after the response, own session)
    """

    def __init__(
        self,
        repo: DressRepository,
        categories: CategoryService,
        assets: AssetStore,
        session_factory: Callable[[], Session],
        currency_symbol: str = "₹",
    ):
        self.repo = repo
        self.categories = categories
        self.assets = assets
        self.session_factory = session_factory
        self.currency_symbol = currency_symbol

    # ----- Read-model assembly -----

    def _to_read(self, session: Session, dresses: list[Dress]) -> list[DressRead]:
        """
        Assemble DressRead objects, loading child rows and categories
        for the whole batch at once.
        """
        if not dresses:
            return []

        ids = [d.id for d in dresses]
        images = self.repo.images_for(session, ids)
        sizes = self.repo.sizes_for(session, ids)
        colors = self.repo.colors_for(session, ids)
        tags = self.repo.tags_for(session, ids)
        categories = self.categories.repo.get_many(
            session, list({d.category_id for d in dresses})
        )

        result: list[DressRead] = []
        for dress in dresses:
            category = categories.get(dress.category_id)
            result.append(
                self._read_one(
                    dress,
                    category,
                    images.get(dress.id, []),
                    sizes.get(dress.id, []),
                    colors.get(dress.id, []),
                    tags.get(dress.id, []),
                )
            )
        return result

    def _read_one(
        self,
        dress: Dress,
        category: Category | None,
        images: list[DressImage],
        sizes: list[DressSize],
        colors: list[DressColor],
        tags: list[DressTag],
    ) -> DressRead:
        price = effective_price(dress.price_original, dress.price_discounted)
        return DressRead(
            id=dress.id,
            name=dress.name,
            description=dress.description,
            category_id=dress.category_id,
            category=(
                CategorySummary(id=category.id, name=category.name, slug=category.slug)
                if category
                else None
            ),
            images=[ImageRef(url=i.url, asset_id=i.asset_id, alt=i.alt) for i in images],
            price=PriceRead(original=dress.price_original, discounted=dress.price_discounted),
            sizes=[SizeRead(size=s.size, available=s.available, stock=s.stock) for s in sizes],
            colors=[ColorRead(name=c.name, code=c.code, available=c.available) for c in colors],
            material=dress.material,
            care_instructions=dress.care_instructions,
            tags=[t.tag for t in tags],
            sku=dress.sku,
            is_active=dress.is_active,
            is_featured=dress.is_featured,
            sort_order=dress.sort_order,
            contact_number=dress.contact_number,
            contact_message_template=dress.contact_message_template,
            views=dress.views,
            rating=RatingRead(average=dress.rating_average, count=dress.rating_count),
            created_at=dress.created_at,
            updated_at=dress.updated_at,
            discount_percentage=discount_percentage(
                dress.price_original, dress.price_discounted
            ),
            effective_price=price,
            contact_link=build_contact_link(
                dress.contact_number,
                dress.contact_message_template,
                dress_name=dress.name,
                price=price,
                sku=dress.sku,
                category_name=category.name if category else "",
                currency_symbol=self.currency_symbol,
            ),
        )

    def _page(
        self,
        session: Session,
        filters: DressFilters,
        sort: DressSort,
        page: int,
        limit: int,
    ) -> DressPage:
        page, limit = clamp_paging(page, limit)
        dresses, total = self.repo.list_page(
            session, filters, sort, skip=(page - 1) * limit, limit=limit
        )
        return DressPage(
            items=self._to_read(session, dresses),
            total=total,
            page=page,
            pages=math.ceil(total / limit),
        )

    # ----- Public reads -----

    def list_dresses(
        self,
        session: Session,
        filters: DressFilters,
        sort: DressSort = DressSort.NEWEST,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> DressPage:
        if filters.size:
            filters.size = normalize_size_name(filters.size)
        return self._page(session, filters, sort, page, limit)

    def get_featured(self, session: Session, limit: int = DEFAULT_FEATURED_LIMIT) -> list[DressRead]:
        limit = max(1, min(MAX_PAGE_SIZE, limit))
        return self._to_read(session, self.repo.list_featured(session, limit=limit))

    def list_by_category(
        self,
        session: Session,
        identifier: str,
        sort: DressSort = DressSort.NEWEST,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[Category, DressPage]:
        """
        Resolve the category by id or slug (active only), then list its
        active dresses.
        """
        category = self.categories.get_by_identifier(session, identifier)
        filters = DressFilters(category_id=category.id)
        return category, self._page(session, filters, sort, page, limit)

    def search(
        self,
        session: Session,
        query: str | None,
        filters: DressFilters,
        sort: DressSort = DressSort.NEWEST,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> DressPage:
        """
        Case-insensitive substring search over name, description,
        material and tags.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query (q) is required")
        filters.query = query
        return self._page(session, filters, sort, page, limit)

    def get_dress(self, session: Session, dress_id: uuid.UUID) -> DressRead:
        """
        Fetch one active dress. View counting is done separately by
        record_view(), scheduled by the router after the response.
        """
        dress = self.repo.get_active_by_id(session, dress_id)
        if not dress:
            raise NotFoundError("Dress not found")
        return self._to_read(session, [dress])[0]

    def record_view(self, dress_id: uuid.UUID) -> None:
        """
        Increment the view counter in its own session.

        Runs as a background task, so a failure here is logged and never
        reaches the client.
        """
        try:
            with self.session_factory() as session:
                self.repo.increment_views(session, dress_id)
        except Exception:
            logger.exception("Failed to increment views for dress %s", dress_id)

    # ----- Admin writes -----

    def _require_category(self, session: Session, category_id: uuid.UUID) -> None:
        if self.categories.repo.get_by_id(session, category_id) is None:
            raise ValidationError("Category not found for category_id")

    def _next_sku(self, session: Session) -> str:
        """
        DRESS + zero-padded (count + 1), bumped until unused so that
        deletions never cause a collision.
        """
        n = self.repo.count_all(session) + 1
        while True:
            sku = f"{SKU_PREFIX}{n:04d}"
            if self.repo.get_by_sku(session, sku) is None:
                return sku
            n += 1

    @staticmethod
    def _size_rows(dress_id: uuid.UUID, sizes: list[SizeIn]) -> list[DressSize]:
        return [
            DressSize(
                dress_id=dress_id,
                size=s.size,
                available=s.available,
                stock=s.stock,
                position=i,
            )
            for i, s in enumerate(sizes)
        ]

    @staticmethod
    def _color_rows(dress_id: uuid.UUID, colors: list[ColorIn]) -> list[DressColor]:
        return [
            DressColor(
                dress_id=dress_id,
                name=c.name,
                code=c.code,
                available=c.available,
                position=i,
            )
            for i, c in enumerate(colors)
        ]

    @staticmethod
    def _tag_rows(dress_id: uuid.UUID, tags: list[str]) -> list[DressTag]:
        return [DressTag(dress_id=dress_id, tag=t, position=i) for i, t in enumerate(tags)]

    @staticmethod
    def _image_rows(
        dress_id: uuid.UUID,
        images: list[ImageRef],
        start: int = 0,
    ) -> list[DressImage]:
        return [
            DressImage(
                dress_id=dress_id,
                url=img.url,
                asset_id=img.asset_id,
                alt=img.alt,
                sort_order=start + i,
            )
            for i, img in enumerate(images)
        ]

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise ConflictError("A dress with this SKU already exists")

    def create_dress(self, session: Session, payload: DressCreate) -> DressRead:
        """
        Create a dress with its gallery, sizes, colors and tags.

        Fails before any write if no image is given, the category does not
        exist or the requested SKU is taken.
        """
        if not payload.images:
            raise ValidationError("At least one dress image is required in images array")

        self._require_category(session, payload.category_id)

        if payload.sku is not None:
            if self.repo.get_by_sku(session, payload.sku) is not None:
                raise ConflictError("A dress with this SKU already exists")
            sku = payload.sku
        else:
            sku = self._next_sku(session)

        dress = Dress(
            name=payload.name,
            description=payload.description,
            category_id=payload.category_id,
            price_original=payload.price.original,
            price_discounted=payload.price.discounted,
            material=payload.material,
            care_instructions=payload.care_instructions,
            sku=sku,
            is_active=payload.is_active,
            is_featured=payload.is_featured,
            sort_order=payload.sort_order,
            contact_number=payload.contact_number,
            contact_message_template=payload.contact_message_template or DEFAULT_CONTACT_MESSAGE,
        )
        self.repo.add(session, dress)
        self.repo.add_images(session, self._image_rows(dress.id, payload.images))
        self.repo.replace_sizes(session, dress.id, self._size_rows(dress.id, payload.sizes))
        self.repo.replace_colors(session, dress.id, self._color_rows(dress.id, payload.colors))
        self.repo.replace_tags(session, dress.id, self._tag_rows(dress.id, payload.tags))
        self._commit(session)

        logger.info("Created dress %s (%s)", dress.id, sku)
        return self._to_read(session, [dress])[0]

    def update_dress(
        self,
        session: Session,
        dress_id: uuid.UUID,
        payload: DressUpdate,
    ) -> DressRead:
        """
        Partial update of a dress.

        Order of operations:
          1. field updates
          2. drop images listed in remove_asset_ids (Storage delete first)
          3. append new_images

        If the resulting gallery would be empty the request is rejected
        before anything is written or deleted.
        """
        dress = self.repo.get_by_id(session, dress_id)
        if not dress:
            raise NotFoundError("Dress not found")

        if payload.category_id is not None and payload.category_id != dress.category_id:
            self._require_category(session, payload.category_id)

        current_images = self.repo.images_for(session, [dress.id]).get(dress.id, [])
        remove_ids = set(payload.remove_asset_ids)
        to_remove = [img for img in current_images if img.asset_id in remove_ids]
        remaining = len(current_images) - len(to_remove) + len(payload.new_images)
        if remaining == 0:
            raise ValidationError("Dress must have at least one image")

        # 1) Field updates
        if payload.name is not None:
            dress.name = payload.name
        if payload.description is not None:
            dress.description = payload.description
        if payload.category_id is not None:
            dress.category_id = payload.category_id
        if payload.price is not None:
            dress.price_original = payload.price.original
            dress.price_discounted = payload.price.discounted
        if payload.material is not None:
            dress.material = payload.material
        if payload.care_instructions is not None:
            dress.care_instructions = payload.care_instructions
        if payload.contact_number is not None:
            dress.contact_number = payload.contact_number
        if payload.contact_message_template is not None:
            dress.contact_message_template = payload.contact_message_template
        if payload.is_featured is not None:
            dress.is_featured = payload.is_featured
        if payload.is_active is not None:
            dress.is_active = payload.is_active
        if payload.sort_order is not None:
            dress.sort_order = payload.sort_order
        dress.updated_at = datetime.now(timezone.utc)
        session.add(dress)

        if payload.sizes is not None:
            self.repo.replace_sizes(session, dress.id, self._size_rows(dress.id, payload.sizes))
        if payload.colors is not None:
            self.repo.replace_colors(session, dress.id, self._color_rows(dress.id, payload.colors))
        if payload.tags is not None:
            self.repo.replace_tags(session, dress.id, self._tag_rows(dress.id, payload.tags))

        # 2) Remove images (only assets this dress actually owns)
        if to_remove:
            self.assets.delete_many([img.asset_id for img in to_remove])
            self.repo.delete_images(session, to_remove)

        # 3) Append new images after the current last one
        if payload.new_images:
            start = max((img.sort_order for img in current_images), default=-1) + 1
            self.repo.add_images(session, self._image_rows(dress.id, payload.new_images, start))

        self._commit(session)
        return self._to_read(session, [dress])[0]

    def delete_dress(self, session: Session, dress_id: uuid.UUID) -> None:
        """
        Delete a dress, all of its child rows, and its images in Storage.
        """
        dress = self.repo.get_by_id(session, dress_id)
        if not dress:
            raise NotFoundError("Dress not found")

        images = self.repo.images_for(session, [dress.id]).get(dress.id, [])
        if images:
            self.assets.delete_many([img.asset_id for img in images])

        self.repo.delete(session, dress)
        session.commit()
        logger.info("Deleted dress %s with %d images", dress_id, len(images))
