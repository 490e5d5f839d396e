# app/main.py
from contextlib import asynccontextmanager
from functools import partial
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.asset_store import AssetStore
from app.core.config import Settings, get_settings
from app.database import create_db_and_tables, create_db_engine

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import category as _category_models  # noqa: F401
from app.models import dress as _dress_models  # noqa: F401

from app.repositories.category_repo import CategoryRepository
from app.repositories.dress_repo import DressRepository
from app.repositories.user_repo import UserRepository
from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.category_service import CategoryService
from app.services.dress_service import DressService
from app.services.upload_service import UploadService

# Routers
from app.routers.auth import router as auth_router
from app.routers.categories import router as categories_router
from app.routers.dresses import router as dresses_router
from app.routers.uploads import router as uploads_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.

    Shutdown:
      - Dispose the engine's connection pool.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables(app.state.engine)
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield
    app.state.engine.dispose()


# --- Error envelopes ---


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # Drop the "body"/"query" prefix so the field path reads like the payload
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Internal server error"},
    )


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    asset_store: AssetStore | None = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass their own engine and asset store; in production both are
    built from settings.
    """
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings)
    assets = asset_store or AssetStore.from_settings(settings)

    category_repo = CategoryRepository()
    dress_repo = DressRepository()

    categories = CategoryService(category_repo, dress_repo, assets)
    dresses = DressService(
        dress_repo,
        categories,
        assets,
        session_factory=partial(Session, engine),
        currency_symbol=settings.CURRENCY_SYMBOL,
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.catalog_service = CatalogService(categories, dresses, assets)
    app.state.auth_service = AuthService(UserRepository(), settings)
    app.state.upload_service = UploadService(
        assets,
        max_image_bytes=settings.MAX_IMAGE_BYTES,
        max_files=settings.MAX_IMAGES_PER_UPLOAD,
    )

    # --- CORS configuration ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # API prefix, e.g. /api
    app.include_router(auth_router, prefix=settings.API_V1_STR)
    app.include_router(categories_router, prefix=settings.API_V1_STR)
    app.include_router(dresses_router, prefix=settings.API_V1_STR)
    app.include_router(uploads_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        api = settings.API_V1_STR
        return {
            "status": "ok",
            "service": "dress-catalog-backend",
            "endpoints": {
                "auth": f"{api}/auth",
                "categories": f"{api}/categories",
                "dresses": f"{api}/dresses",
                "uploads": f"{api}/uploads",
            },
        }

    return app


app = create_app()
