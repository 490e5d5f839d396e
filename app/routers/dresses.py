import uuid
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.dependencies import get_catalog_service
from app.schemas.category import CategorySummary, MessageResponse
from app.schemas.dress import (
    DressCategoryPageResponse,
    DressCollectionResponse,
    DressFilters,
    DressPageResponse,
    DressResponse,
    DressSearchResponse,
    DressSort,
)
from app.services.catalog_service import CatalogService
from app.services.dress_service import DEFAULT_FEATURED_LIMIT, DEFAULT_PAGE_SIZE

router = APIRouter(tags=["Dresses"])


# -------- Public endpoints --------


@router.get("/dresses", response_model=DressPageResponse)
def list_dresses(
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
    category: uuid.UUID | None = None,
    featured: bool | None = None,
    size: str | None = None,
    color: str | None = None,
    material: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    """
    List active dresses with optional filters, sorting and pagination.

    - sort: -created_at (default), created_at, price, -price, name, -name, featured
    - limit is clamped to 1..50
    """
    filters = DressFilters(
        category_id=category,
        featured=featured,
        size=size,
        color=color,
        material=material,
        min_price=min_price,
        max_price=max_price,
    )
    result = catalog.dresses.list_dresses(
        session, filters, DressSort.parse(sort), page=page, limit=limit
    )
    return DressPageResponse(
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=result.items,
    )


@router.get("/dresses/featured", response_model=DressCollectionResponse)
def list_featured(
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
    limit: int = DEFAULT_FEATURED_LIMIT,
):
    """
    Featured dresses ordered by sort_order.
    """
    items = catalog.dresses.get_featured(session, limit=limit)
    return DressCollectionResponse(count=len(items), data=items)


@router.get("/dresses/search", response_model=DressSearchResponse)
def search_dresses(
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
    q: str | None = None,
    category: uuid.UUID | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    """
    Search active dresses by name, description, material or tags.
    """
    filters = DressFilters(
        category_id=category,
        min_price=min_price,
        max_price=max_price,
    )
    result = catalog.dresses.search(
        session, q, filters, DressSort.parse(sort), page=page, limit=limit
    )
    return DressSearchResponse(
        query=filters.query,
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=result.items,
    )


@router.get("/dresses/category/{identifier}", response_model=DressCategoryPageResponse)
def list_by_category(
    identifier: str,
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
    sort: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    """
    Dresses of one category, addressed by category id or slug.
    """
    category, result = catalog.dresses.list_by_category(
        session, identifier, DressSort.parse(sort), page=page, limit=limit
    )
    return DressCategoryPageResponse(
        category=CategorySummary(id=category.id, name=category.name, slug=category.slug),
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        data=result.items,
    )


@router.get("/dress/{dress_id}", response_model=DressResponse)
def get_dress(
    dress_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Dress details. The view counter is incremented after the response
    is sent.
    """
    dress = catalog.dresses.get_dress(session, dress_id)
    background_tasks.add_task(catalog.dresses.record_view, dress.id)
    return DressResponse(data=dress)


# -------- Admin endpoints --------


@router.post(
    "/dress",
    response_model=DressResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_dress(
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Create a dress (admin only).

    `images` must reference already uploaded assets
    (POST /uploads/dress-images) and may not be empty.

    Body: DressCreate. It is validated by the catalog service so that
    referenced uploads are removed when the request fails.
    """
    dress = catalog.create_dress(session, payload)
    return DressResponse(message="Dress created successfully", data=dress)


@router.put(
    "/dress/{dress_id}",
    response_model=DressResponse,
    dependencies=[Depends(require_admin)],
)
def update_dress(
    dress_id: uuid.UUID,
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Update a dress (admin only), including image removal by asset id
    and appending new images. Body: DressUpdate.
    """
    dress = catalog.update_dress(session, dress_id, payload)
    return DressResponse(message="Dress updated successfully", data=dress)


@router.delete(
    "/dress/{dress_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_dress(
    dress_id: uuid.UUID,
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Delete a dress and all of its images (admin only).
    """
    catalog.delete_dress(session, dress_id)
    return MessageResponse(message="Dress deleted successfully")
