import uuid
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.dependencies import get_catalog_service
from app.schemas.category import (
    CategoryListResponse,
    CategoryRead,
    CategoryResponse,
    MessageResponse,
)
from app.services.catalog_service import CatalogService

router = APIRouter(tags=["Categories"])


# -------- Public endpoints --------


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    List active categories ordered by sort_order, newest first on ties.
    """
    categories = catalog.categories.list_categories(session, active_only=True)
    data = [CategoryRead.from_model(c) for c in categories]
    return CategoryListResponse(count=len(data), data=data)


@router.get("/category/{identifier}", response_model=CategoryResponse)
def get_category(
    identifier: str,
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Get a single active category by id or slug.
    """
    category = catalog.categories.get_by_identifier(session, identifier)
    return CategoryResponse(data=CategoryRead.from_model(category))


# -------- Admin endpoints --------


@router.post(
    "/category",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Create a category (admin only).

    `image` must reference an already uploaded asset
    (POST /uploads/category-image).

    Body: CategoryCreate. It is validated by the catalog service so that
    the referenced upload is removed when the request fails.
    """
    category = catalog.create_category(session, payload)
    return CategoryResponse(
        message="Category created successfully",
        data=CategoryRead.from_model(category),
    )


@router.put(
    "/category/{category_id}",
    response_model=CategoryResponse,
    dependencies=[Depends(require_admin)],
)
def update_category(
    category_id: uuid.UUID,
    payload: dict[str, Any] = Body(...),
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Update a category (admin only); a new `image` replaces the old one.
    Body: CategoryUpdate.
    """
    category = catalog.update_category(session, category_id, payload)
    return CategoryResponse(
        message="Category updated successfully",
        data=CategoryRead.from_model(category),
    )


@router.delete(
    "/category/{category_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: uuid.UUID,
    session: Session = Depends(get_session),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """
    Delete a category (admin only). Refused while dresses reference it.
    """
    catalog.delete_category(session, category_id)
    return MessageResponse(message="Category deleted successfully")
