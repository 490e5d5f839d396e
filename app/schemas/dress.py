import json
import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from app.schemas.category import CategorySummary

SizeName = Literal["XS", "S", "M", "L", "XL", "XXL", "Free Size", "Custom"]

# E.164: optional '+', no leading zero, up to 15 digits
CONTACT_NUMBER_RE = re.compile(r"^\+?[1-9]\d{1,14}$")

# Matches dress_tags.tag
MAX_TAG_LENGTH = 50


def decode_json_field(value: Any) -> Any:
    """
    Multipart/form clients often send nested fields as JSON text,
    e.g. price='{"original": 1999}'. Decode those before validation.
    """
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("Invalid JSON format in request data")
    return value


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim, lowercase and de-duplicate tags, keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag may have at most {MAX_TAG_LENGTH} characters")
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def normalize_size_name(v: Any) -> Any:
    """Accept "FreeSize"/"free size" as spellings of "Free Size"."""
    if isinstance(v, str) and v.replace(" ", "").lower() == "freesize":
        return "Free Size"
    return v


def validate_contact_number(v: str) -> str:
    v = v.strip()
    if not CONTACT_NUMBER_RE.match(v):
        raise ValueError("Please enter a valid WhatsApp number (with country code)")
    return v


# ----- Nested value objects -----


class PriceIn(SQLModel):
    model_config = ConfigDict(extra="forbid")

    original: float = Field(ge=0)
    discounted: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def discount_not_above_original(self) -> "PriceIn":
        if self.discounted is not None and self.discounted > self.original:
            raise ValueError("Discounted price cannot exceed original price")
        return self


class SizeIn(SQLModel):
    model_config = ConfigDict(extra="forbid")

    size: SizeName
    available: bool = True
    stock: int = Field(default=0, ge=0)

    @field_validator("size", mode="before")
    @classmethod
    def accept_free_size_alias(cls, v: Any) -> Any:
        return normalize_size_name(v)


class ColorIn(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=50)
    code: str = Field(min_length=1, max_length=20)
    available: bool = True

    @field_validator("name", "code")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class ImageRef(SQLModel):
    """
    A gallery image already uploaded to Storage
    (see POST /uploads/dress-images).
    """

    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1)
    asset_id: str = Field(min_length=1)
    alt: str = Field(default="", max_length=200)


def _unique_sizes(sizes: list[SizeIn]) -> list[SizeIn]:
    names = [s.size for s in sizes]
    if len(names) != len(set(names)):
        raise ValueError("Each size may only be listed once")
    return sizes


def _unique_colors(colors: list[ColorIn]) -> list[ColorIn]:
    names = [c.name.lower() for c in colors]
    if len(names) != len(set(names)):
        raise ValueError("Each color may only be listed once")
    return colors


# ----- Write payloads -----


class DressCreate(SQLModel):
    """
    Payload for creating a dress.

    - images must contain at least one entry (checked by the service so the
      request fails with a clear message and no writes).
    - price/sizes/colors/tags/images may arrive as JSON text.
    - sku is optional: if omitted, DRESS0001-style codes are generated.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    category_id: uuid.UUID
    price: PriceIn
    images: list[ImageRef] = Field(default_factory=list)
    sizes: list[SizeIn] = Field(default_factory=list)
    colors: list[ColorIn] = Field(default_factory=list)
    material: str | None = Field(default=None, max_length=100)
    care_instructions: str | None = Field(default=None, max_length=500)
    tags: list[str] = Field(default_factory=list)
    sku: str | None = Field(default=None, max_length=50)
    contact_number: str
    contact_message_template: str | None = Field(default=None, max_length=500)
    is_featured: bool = False
    is_active: bool = True
    sort_order: int = 0

    @field_validator("price", "images", "sizes", "colors", "tags", mode="before")
    @classmethod
    def decode_json(cls, v: Any) -> Any:
        return decode_json_field(v)

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, v: list[SizeIn]) -> list[SizeIn]:
        return _unique_sizes(v)

    @field_validator("colors")
    @classmethod
    def unique_colors(cls, v: list[ColorIn]) -> list[ColorIn]:
        return _unique_colors(v)

    @field_validator("contact_number")
    @classmethod
    def check_contact_number(cls, v: str) -> str:
        return validate_contact_number(v)


class DressUpdate(SQLModel):
    """
    Partial update payload for dresses.

    Images are never replaced wholesale:
      - remove_asset_ids: asset ids of current images to drop
      - new_images: images to append at the end of the gallery
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    category_id: uuid.UUID | None = None
    price: PriceIn | None = None
    sizes: list[SizeIn] | None = None
    colors: list[ColorIn] | None = None
    material: str | None = Field(default=None, max_length=100)
    care_instructions: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    contact_number: str | None = None
    contact_message_template: str | None = Field(default=None, max_length=500)
    is_featured: bool | None = None
    is_active: bool | None = None
    sort_order: int | None = None
    remove_asset_ids: list[str] = Field(default_factory=list)
    new_images: list[ImageRef] = Field(default_factory=list)

    @field_validator(
        "price", "sizes", "colors", "tags", "remove_asset_ids", "new_images", mode="before"
    )
    @classmethod
    def decode_json(cls, v: Any) -> Any:
        return decode_json_field(v)

    @field_validator("name", "description")
    @classmethod
    def not_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return normalize_tags(v) if v is not None else v

    @field_validator("sizes")
    @classmethod
    def unique_sizes(cls, v: list[SizeIn] | None) -> list[SizeIn] | None:
        return _unique_sizes(v) if v is not None else v

    @field_validator("colors")
    @classmethod
    def unique_colors(cls, v: list[ColorIn] | None) -> list[ColorIn] | None:
        return _unique_colors(v) if v is not None else v

    @field_validator("contact_number")
    @classmethod
    def check_contact_number(cls, v: str | None) -> str | None:
        return validate_contact_number(v) if v is not None else v


# ----- Query options -----


class DressSort(str, Enum):
    NEWEST = "-created_at"
    OLDEST = "created_at"
    PRICE_ASC = "price"
    PRICE_DESC = "-price"
    NAME_ASC = "name"
    NAME_DESC = "-name"
    FEATURED = "featured"

    @classmethod
    def parse(cls, raw: str | None) -> "DressSort":
        """Unknown or missing sort keys fall back to newest-first."""
        try:
            return cls(raw)
        except ValueError:
            return cls.NEWEST


class DressFilters(SQLModel):
    """
    Listing/search filters. Prices filter on price_original.
    """

    active_only: bool = True
    category_id: uuid.UUID | None = None
    featured: bool | None = None
    size: str | None = None
    color: str | None = None
    material: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    query: str | None = None


# ----- Read models -----


class PriceRead(SQLModel):
    original: float
    discounted: float | None = None


class SizeRead(SQLModel):
    size: str
    available: bool
    stock: int


class ColorRead(SQLModel):
    name: str
    code: str
    available: bool


class RatingRead(SQLModel):
    average: float
    count: int


class DressRead(SQLModel):
    """
    Dress representation for clients, including derived
    pricing and the WhatsApp contact link.
    """

    id: uuid.UUID
    name: str
    description: str
    category_id: uuid.UUID
    category: CategorySummary | None = None
    images: list[ImageRef]
    price: PriceRead
    sizes: list[SizeRead]
    colors: list[ColorRead]
    material: str | None = None
    care_instructions: str | None = None
    tags: list[str]
    sku: str
    is_active: bool
    is_featured: bool
    sort_order: int
    contact_number: str
    contact_message_template: str
    views: int
    rating: RatingRead
    created_at: datetime
    updated_at: datetime

    discount_percentage: int
    effective_price: float
    contact_link: str


# ----- Response envelopes -----


class DressResponse(SQLModel):
    success: bool = True
    message: str | None = None
    data: DressRead


class DressCollectionResponse(SQLModel):
    success: bool = True
    count: int
    data: list[DressRead]


class DressPageResponse(SQLModel):
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    data: list[DressRead]


class DressCategoryPageResponse(DressPageResponse):
    category: CategorySummary


class DressSearchResponse(DressPageResponse):
    query: str
