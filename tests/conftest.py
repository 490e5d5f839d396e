"""
Pytest configuration and fixtures for the dress catalog API tests.
"""

import os
import uuid
from typing import Iterable

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine

# Set up test environment variables before importing the app
os.environ.setdefault("DATABASE_URL", "sqlite:///./test-import.db")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")

from app.core.asset_store import StoredAsset
from app.core.config import Settings
from app.database import create_db_and_tables
from app.main import create_app
from app.models.user import User

ADMIN_KEY = "test-admin-registration-key"


class FakeAssetStore:
    """
    In-memory stand-in for AssetStore.

    Records uploads and deletes; `fail_uploads_after` / `fail_deletes`
    inject Storage errors.
    """

    def __init__(self):
        self.objects: dict[str, str] = {}
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_uploads_after: int | None = None
        self.fail_deletes = False

    def add(self, asset_id: str) -> dict:
        """Pretend an asset was uploaded earlier and return its reference."""
        url = f"https://cdn.test/{asset_id}"
        self.objects[asset_id] = url
        return {"url": url, "asset_id": asset_id}

    def upload(self, folder: str, file_bytes: bytes, content_type: str, ext: str) -> StoredAsset:
        if self.fail_uploads_after is not None and len(self.uploaded) >= self.fail_uploads_after:
            raise RuntimeError("storage unavailable")
        asset_id = f"{folder}/{uuid.uuid4()}.{ext}"
        ref = self.add(asset_id)
        self.uploaded.append(asset_id)
        return StoredAsset(url=ref["url"], asset_id=asset_id)

    def delete(self, asset_id: str) -> bool:
        if self.fail_deletes:
            raise RuntimeError("storage unavailable")
        self.deleted.append(asset_id)
        return self.objects.pop(asset_id, None) is not None

    def delete_many(self, asset_ids: Iterable[str]) -> list[bool]:
        return [self.delete(asset_id) for asset_id in asset_ids]


@pytest.fixture
def settings():
    """Settings for tests: small upload limits and an admin key."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        JWT_SECRET="test-secret-key-for-testing-only",
        ADMIN_REGISTRATION_KEY=ADMIN_KEY,
        MAX_IMAGE_BYTES=1024,
        MAX_IMAGES_PER_UPLOAD=3,
        FRONTEND_URL="http://localhost:3000",
    )


@pytest.fixture
def engine(tmp_path):
    """File-based SQLite so background tasks can use their own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def assets():
    return FakeAssetStore()


@pytest.fixture
def app(settings, engine, assets):
    return create_app(settings=settings, engine=engine, asset_store=assets)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


def _seed_user(app, engine, username: str, role: str) -> str:
    auth = app.state.auth_service
    with Session(engine) as s:
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=auth.hash_password("secret123"),
            role=role,
        )
        s.add(user)
        s.commit()
        s.refresh(user)
        return auth.create_access_token(user)


@pytest.fixture
def admin_headers(app, engine):
    return {"Authorization": f"Bearer {_seed_user(app, engine, 'admin', 'admin')}"}


@pytest.fixture
def user_headers(app, engine):
    return {"Authorization": f"Bearer {_seed_user(app, engine, 'shopper', 'user')}"}


# ----- Payload helpers -----


@pytest.fixture
def make_category(client, admin_headers, assets):
    """Create a category through the API and return its JSON."""
    counter = {"n": 0}

    def _make(name: str | None = None, **overrides) -> dict:
        counter["n"] += 1
        payload = {
            "name": name or f"Category {counter['n']}",
            "description": "Test category",
            "image": assets.add(f"categories/cat-{counter['n']}.jpg"),
        }
        payload.update(overrides)
        res = client.post("/api/category", json=payload, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _make


@pytest.fixture
def dress_payload(assets):
    """Build a valid dress create payload for a category."""
    counter = {"n": 0}

    def _payload(category_id: str, **overrides) -> dict:
        counter["n"] += 1
        payload = {
            "name": f"Dress {counter['n']}",
            "description": "Flowing evening gown",
            "category_id": category_id,
            "price": {"original": 2000, "discounted": 1500},
            "images": [assets.add(f"dresses/dress-{counter['n']}-a.jpg")],
            "sizes": [{"size": "M", "stock": 3}],
            "colors": [{"name": "Red", "code": "#ff0000"}],
            "material": "Cotton",
            "tags": ["party"],
            "contact_number": "+919876543210",
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def make_dress(client, admin_headers, dress_payload):
    """Create a dress through the API and return its JSON."""

    def _make(category_id: str, **overrides) -> dict:
        res = client.post(
            "/api/dress",
            json=dress_payload(category_id, **overrides),
            headers=admin_headers,
        )
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _make
