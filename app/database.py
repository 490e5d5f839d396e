from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import Settings

# ---------------------------------------------------------
# Postgres connection
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_pre_ping=True: validate connections before using them
#
# The engine is built once in create_app() and stored on app.state;
# request handlers reach it through get_session().
# ---------------------------------------------------------


def build_database_url(settings: Settings) -> str:
    """
    Return DATABASE_URL, appending sslmode=require for Postgres URLs
    when DATABASE_SSL_REQUIRED is set and no sslmode is present.
    """
    db_url = settings.DATABASE_URL

    if not db_url.startswith("postgres") or not settings.DATABASE_SSL_REQUIRED:
        return db_url

    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"
    return db_url


def create_db_engine(settings: Settings) -> Engine:
    return create_engine(
        build_database_url(settings),
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
    )


def create_db_and_tables(engine: Engine) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """
    FastAPI dependency that yields a SQLModel Session bound to the
    application's engine.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(request.app.state.engine) as session:
        yield session
