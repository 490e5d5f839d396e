import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


DEFAULT_CONTACT_MESSAGE = (
    "Hi! I am interested in this dress: {dressName}. "
    "Please provide more details about pricing, availability, and delivery."
)


class Dress(SQLModel, table=True):
    """
    Dress listing.

    Set-valued fields (images, sizes, colors, tags) live in child tables
    keyed by dress_id; the service assembles them into DressRead.
    """

    __tablename__ = "dresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        index=True,
        description="Display name of the dress",
    )

    description: str = Field(max_length=1000)

    category_id: uuid.UUID = Field(
        foreign_key="categories.id",
        index=True,
        description="FK to categories.id",
    )

    price_original: float = Field(
        ge=0,
        index=True,
        description="List price",
    )

    price_discounted: float | None = Field(
        default=None,
        ge=0,
        description="Sale price; never above price_original",
    )

    material: str | None = Field(default=None, max_length=100)

    care_instructions: str | None = Field(default=None, max_length=500)

    sku: str = Field(
        max_length=50,
        unique=True,
        index=True,
        description="Stable product code, assigned once",
    )

    is_active: bool = Field(default=True, index=True)

    is_featured: bool = Field(default=False, index=True)

    sort_order: int = Field(default=0)

    # International format, e.g. +911234567890
    contact_number: str = Field(max_length=16)

    contact_message_template: str = Field(
        default=DEFAULT_CONTACT_MESSAGE,
        max_length=500,
        description="Message with {dressName}/{dressPrice}/{dressSKU}/{dressCategory}",
    )

    views: int = Field(default=0, ge=0)

    rating_average: float = Field(default=0, ge=0, le=5)

    rating_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp (UTC)",
    )


class DressImage(SQLModel, table=True):
    """
    Gallery image for a dress. A dress always keeps at least one.
    """

    __tablename__ = "dress_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    dress_id: uuid.UUID = Field(
        foreign_key="dresses.id",
        index=True,
        description="FK to dresses.id",
    )

    url: str = Field(description="Public URL stored in Supabase Storage")

    asset_id: str = Field(
        index=True,
        description="Storage object path, used for deletion",
    )

    alt: str = Field(default="", max_length=200)

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )


class DressSize(SQLModel, table=True):
    __tablename__ = "dress_sizes"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    dress_id: uuid.UUID = Field(foreign_key="dresses.id", index=True)

    # XS | S | M | L | XL | XXL | Free Size | Custom
    size: str = Field(max_length=20, index=True)
    available: bool = Field(default=True)
    stock: int = Field(default=0, ge=0)
    position: int = Field(default=0)


class DressColor(SQLModel, table=True):
    __tablename__ = "dress_colors"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    dress_id: uuid.UUID = Field(foreign_key="dresses.id", index=True)

    name: str = Field(max_length=50, index=True)
    # e.g. '#FF0000'
    code: str = Field(max_length=20)
    available: bool = Field(default=True)
    position: int = Field(default=0)


class DressTag(SQLModel, table=True):
    __tablename__ = "dress_tags"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    dress_id: uuid.UUID = Field(foreign_key="dresses.id", index=True)

    # Always stored lowercase
    tag: str = Field(max_length=50, index=True)
    position: int = Field(default=0)
