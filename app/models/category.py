import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Category(SQLModel, table=True):
    """
    Dress category shown on the storefront.

    - slug is derived from name and recomputed on every rename.
    - image_asset_id is the Storage reference needed to delete the image.
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=50,
        unique=True,
        index=True,
        description="Display name of the category (unique)",
    )

    description: str | None = Field(
        default=None,
        max_length=200,
    )

    image_url: str = Field(
        description="Public URL of the category image",
    )

    image_asset_id: str = Field(
        description="Storage object path of the category image",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier derived from name",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this category is visible on the storefront",
    )

    sort_order: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )
