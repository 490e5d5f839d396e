import uuid
from collections import defaultdict
from typing import Any

from sqlalchemy import delete, exists, func, or_, update
from sqlmodel import Session, select

from app.models.dress import Dress, DressColor, DressImage, DressSize, DressTag
from app.schemas.dress import DressFilters, DressSort

SORT_COLUMNS: dict[DressSort, tuple[Any, ...]] = {
    DressSort.NEWEST: (Dress.created_at.desc(),),
    DressSort.OLDEST: (Dress.created_at.asc(),),
    DressSort.PRICE_ASC: (Dress.price_original.asc(),),
    DressSort.PRICE_DESC: (Dress.price_original.desc(),),
    DressSort.NAME_ASC: (Dress.name.asc(),),
    DressSort.NAME_DESC: (Dress.name.desc(),),
    DressSort.FEATURED: (Dress.is_featured.desc(), Dress.created_at.desc()),
}


class DressRepository:
    """
    Data access layer for Dress and its child rows
    (images, sizes, colors, tags).

    NOTE:
      - Write helpers only flush; dress create/update/delete touch several
        tables, so the service is responsible for session.commit().
      - increment_views() is the exception: it is a standalone atomic UPDATE.
    """

    # ----- Lookups -----

    def get_by_id(self, session: Session, dress_id: uuid.UUID) -> Dress | None:
        return session.get(Dress, dress_id)

    def get_active_by_id(self, session: Session, dress_id: uuid.UUID) -> Dress | None:
        stmt = select(Dress).where(Dress.id == dress_id, Dress.is_active == True)  # noqa: E712
        return session.exec(stmt).first()

    def get_by_sku(self, session: Session, sku: str) -> Dress | None:
        stmt = select(Dress).where(Dress.sku == sku)
        return session.exec(stmt).first()

    def count_all(self, session: Session) -> int:
        return session.exec(select(func.count(Dress.id))).one()

    def count_for_category(self, session: Session, category_id: uuid.UUID) -> int:
        stmt = select(func.count(Dress.id)).where(Dress.category_id == category_id)
        return session.exec(stmt).one()

    # ----- Listing -----

    @staticmethod
    def _conditions(filters: DressFilters) -> list[Any]:
        conds: list[Any] = []

        if filters.active_only:
            conds.append(Dress.is_active == True)  # noqa: E712
        if filters.category_id is not None:
            conds.append(Dress.category_id == filters.category_id)
        if filters.featured:
            conds.append(Dress.is_featured == True)  # noqa: E712
        if filters.size:
            conds.append(
                exists().where(
                    DressSize.dress_id == Dress.id,
                    DressSize.size == filters.size,
                )
            )
        if filters.color:
            conds.append(
                exists().where(
                    DressColor.dress_id == Dress.id,
                    DressColor.name.icontains(filters.color, autoescape=True),
                )
            )
        if filters.material:
            conds.append(Dress.material.icontains(filters.material, autoescape=True))
        if filters.min_price is not None:
            conds.append(Dress.price_original >= filters.min_price)
        if filters.max_price is not None:
            conds.append(Dress.price_original <= filters.max_price)
        if filters.query:
            q = filters.query
            conds.append(
                or_(
                    Dress.name.icontains(q, autoescape=True),
                    Dress.description.icontains(q, autoescape=True),
                    Dress.material.icontains(q, autoescape=True),
                    exists().where(
                        DressTag.dress_id == Dress.id,
                        DressTag.tag.icontains(q, autoescape=True),
                    ),
                )
            )
        return conds

    def list_page(
        self,
        session: Session,
        filters: DressFilters,
        sort: DressSort,
        skip: int = 0,
        limit: int = 12,
    ) -> tuple[list[Dress], int]:
        """Return one page of matching dresses plus the total match count."""
        conds = self._conditions(filters)

        stmt = (
            select(Dress)
            .where(*conds)
            .order_by(*SORT_COLUMNS[sort])
            .offset(skip)
            .limit(limit)
        )
        items = session.exec(stmt).all()

        total = session.exec(select(func.count(Dress.id)).where(*conds)).one()
        return list(items), total

    def list_featured(self, session: Session, limit: int = 8) -> list[Dress]:
        stmt = (
            select(Dress)
            .where(Dress.is_active == True, Dress.is_featured == True)  # noqa: E712
            .order_by(Dress.sort_order.asc(), Dress.created_at.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def referenced_asset_ids(self, session: Session, asset_ids: list[str]) -> set[str]:
        """Subset of asset_ids currently used by some dress image."""
        if not asset_ids:
            return set()
        stmt = select(DressImage.asset_id).where(DressImage.asset_id.in_(asset_ids))
        return set(session.exec(stmt).all())

    # ----- Child rows -----

    def images_for(
        self,
        session: Session,
        dress_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[DressImage]]:
        stmt = (
            select(DressImage)
            .where(DressImage.dress_id.in_(dress_ids))
            .order_by(DressImage.sort_order)
        )
        return _group(session.exec(stmt).all())

    def sizes_for(
        self,
        session: Session,
        dress_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[DressSize]]:
        stmt = (
            select(DressSize)
            .where(DressSize.dress_id.in_(dress_ids))
            .order_by(DressSize.position)
        )
        return _group(session.exec(stmt).all())

    def colors_for(
        self,
        session: Session,
        dress_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[DressColor]]:
        stmt = (
            select(DressColor)
            .where(DressColor.dress_id.in_(dress_ids))
            .order_by(DressColor.position)
        )
        return _group(session.exec(stmt).all())

    def tags_for(
        self,
        session: Session,
        dress_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, list[DressTag]]:
        stmt = (
            select(DressTag)
            .where(DressTag.dress_id.in_(dress_ids))
            .order_by(DressTag.position)
        )
        return _group(session.exec(stmt).all())

    # ----- Writes (no commit) -----

    def add(self, session: Session, dress: Dress) -> Dress:
        session.add(dress)
        session.flush()  # Assign PK
        return dress

    def add_images(self, session: Session, images: list[DressImage]) -> None:
        session.add_all(images)
        session.flush()

    def delete_images(self, session: Session, images: list[DressImage]) -> None:
        for image in images:
            session.delete(image)
        session.flush()

    def replace_sizes(
        self,
        session: Session,
        dress_id: uuid.UUID,
        sizes: list[DressSize],
    ) -> None:
        session.exec(delete(DressSize).where(DressSize.dress_id == dress_id))
        session.add_all(sizes)
        session.flush()

    def replace_colors(
        self,
        session: Session,
        dress_id: uuid.UUID,
        colors: list[DressColor],
    ) -> None:
        session.exec(delete(DressColor).where(DressColor.dress_id == dress_id))
        session.add_all(colors)
        session.flush()

    def replace_tags(
        self,
        session: Session,
        dress_id: uuid.UUID,
        tags: list[DressTag],
    ) -> None:
        session.exec(delete(DressTag).where(DressTag.dress_id == dress_id))
        session.add_all(tags)
        session.flush()

    def delete(self, session: Session, dress: Dress) -> None:
        """Delete a dress together with all of its child rows."""
        for model in (DressImage, DressSize, DressColor, DressTag):
            session.exec(delete(model).where(model.dress_id == dress.id))
        session.delete(dress)
        session.flush()

    # ----- Counters -----

    def increment_views(self, session: Session, dress_id: uuid.UUID) -> None:
        stmt = (
            update(Dress)
            .where(Dress.id == dress_id)
            .values(views=Dress.views + 1)
        )
        session.exec(stmt)
        session.commit()


def _group(rows) -> dict[uuid.UUID, list]:
    grouped: dict[uuid.UUID, list] = defaultdict(list)
    for row in rows:
        grouped[row.dress_id].append(row)
    return grouped
