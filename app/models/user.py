import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Account that can log in to the catalog backend.

    Role:
      - "user" | "admin"
      - "guest" is represented by a missing token.

    Only a bcrypt hash of the password is stored.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    username: str = Field(
        max_length=30,
        unique=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    password_hash: str = Field(description="bcrypt hash, never the raw password")

    # Application role
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
