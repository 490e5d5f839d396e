import uuid

from sqlmodel import Session, select

from app.models.category import Category


class CategoryRepository:
    """
    Data access layer for Category.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, category_id: uuid.UUID) -> Category | None:
        return session.get(Category, category_id)

    def get_by_slug(self, session: Session, slug: str) -> Category | None:
        stmt = select(Category).where(Category.slug == slug)
        return session.exec(stmt).first()

    def get_by_name(self, session: Session, name: str) -> Category | None:
        stmt = select(Category).where(Category.name == name)
        return session.exec(stmt).first()

    def get_many(
        self,
        session: Session,
        category_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Category]:
        if not category_ids:
            return {}
        stmt = select(Category).where(Category.id.in_(category_ids))
        return {c.id: c for c in session.exec(stmt).all()}

    def list_all(self, session: Session, only_active: bool = True) -> list[Category]:
        stmt = select(Category)
        if only_active:
            stmt = stmt.where(Category.is_active == True)  # noqa: E712
        stmt = stmt.order_by(Category.sort_order.asc(), Category.created_at.desc())
        return session.exec(stmt).all()

    def create(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def update(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    def delete(self, session: Session, category: Category) -> None:
        session.delete(category)
        session.commit()

    def referenced_asset_ids(self, session: Session, asset_ids: list[str]) -> set[str]:
        """Subset of asset_ids currently used as a category image."""
        if not asset_ids:
            return set()
        stmt = select(Category.image_asset_id).where(Category.image_asset_id.in_(asset_ids))
        return set(session.exec(stmt).all())
