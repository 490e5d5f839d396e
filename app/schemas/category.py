import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.category import Category


class AssetRef(SQLModel):
    """
    Reference to an image already uploaded to Storage
    (see POST /uploads/category-image).
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1)
    asset_id: str = Field(min_length=1, description="Storage object path")

    @field_validator("url", "asset_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CategoryCreate(SQLModel):
    """
    Payload for creating a category.

    - slug is always derived from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=50)
    description: str | None = Field(default=None, max_length=200)
    sort_order: int = 0
    image: AssetRef

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v


class CategoryUpdate(SQLModel):
    """
    Partial update payload for categories.
    Supplying `image` replaces the current image (old asset is deleted).
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    sort_order: int | None = None
    is_active: bool | None = None
    image: AssetRef | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryRead(SQLModel):
    """
    Category representation for clients.
    """

    id: uuid.UUID
    name: str
    description: str | None = None
    image: AssetRef
    slug: str
    is_active: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, category: Category) -> "CategoryRead":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            image=AssetRef(url=category.image_url, asset_id=category.image_asset_id),
            slug=category.slug,
            is_active=category.is_active,
            sort_order=category.sort_order,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )


class CategorySummary(SQLModel):
    """Short form embedded in dress responses."""

    id: uuid.UUID
    name: str
    slug: str


# ----- Response envelopes -----


class CategoryResponse(SQLModel):
    success: bool = True
    message: str | None = None
    data: CategoryRead


class CategoryListResponse(SQLModel):
    success: bool = True
    count: int
    data: list[CategoryRead]


class MessageResponse(SQLModel):
    success: bool = True
    message: str
