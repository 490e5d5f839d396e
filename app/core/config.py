from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string)
      - JWT_SECRET (HS256 signing secret for access tokens)
      - SUPABASE_URL
      - SUPABASE_SERVICE_ROLE_KEY (Storage uploads/deletes bypass RLS)

    Optional:
      - FRONTEND_URL (allowed CORS origin)
      - ADMIN_REGISTRATION_KEY (enables admin self-registration)
    """

    PROJECT_NAME: str = "Dress Catalog API"
    API_V1_STR: str = "/api"

    # Database
    DATABASE_URL: str
    DATABASE_SSL_REQUIRED: bool = True

    # Access tokens (issued and verified by this backend)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # Supabase Storage (image host)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "dress-catalog"

    # Upload limits
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    MAX_IMAGES_PER_UPLOAD: int = 10

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Out-of-band secret required to self-register with role="admin".
    # When unset, admin accounts must be seeded directly in the database.
    ADMIN_REGISTRATION_KEY: str | None = None

    # Used when rendering {dressPrice} in the contact message
    CURRENCY_SYMBOL: str = "₹"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
