import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]


class RegisterRequest(SQLModel):
    """
    Payload for POST /auth/register.

    role="admin" is only honoured together with the out-of-band
    `admin_key` configured on the server.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    role: Role = "user"
    admin_key: str | None = None

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("username must have at least 3 characters")
        return v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserRead(SQLModel):
    """Response schema returned to clients."""

    id: uuid.UUID
    username: str
    email: EmailStr
    role: Role
    created_at: datetime


class Identity(BaseModel):
    """Claims carried by a verified bearer token."""

    id: uuid.UUID
    role: Role


class RegisterResponse(SQLModel):
    success: bool = True
    message: str
    data: UserRead


class LoginResponse(SQLModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserRead
