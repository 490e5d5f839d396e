import uuid
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import ConflictError
from app.models.category import Category
from app.repositories.category_repo import CategoryRepository
from app.schemas.category import AssetRef, CategoryUpdate
from app.services.category_service import CategoryService


class TestCategoryReads:
    def test_list_only_active_sorted(self, client, make_category, admin_headers):
        b = make_category("Bridal", sort_order=2)
        a = make_category("Anarkali", sort_order=1)
        hidden = make_category("Hidden", sort_order=0)
        client.put(
            f"/api/category/{hidden['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )

        res = client.get("/api/categories")
        assert res.status_code == 200
        body = res.json()
        assert body["count"] == 2
        assert [c["id"] for c in body["data"]] == [a["id"], b["id"]]

    def test_get_by_id_or_slug(self, client, make_category):
        created = make_category("Party Wear")
        assert created["slug"] == "party-wear"

        by_id = client.get(f"/api/category/{created['id']}")
        by_slug = client.get("/api/category/party-wear")
        assert by_id.status_code == by_slug.status_code == 200
        assert by_id.json()["data"] == by_slug.json()["data"]

    def test_inactive_category_is_not_found(self, client, make_category, admin_headers):
        created = make_category("Seasonal")
        client.put(
            f"/api/category/{created['id']}",
            json={"is_active": False},
            headers=admin_headers,
        )
        res = client.get("/api/category/seasonal")
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Category not found"}


class TestCategoryWrites:
    def test_duplicate_name_conflicts(self, client, make_category, admin_headers, assets):
        make_category("Sarees")
        res = client.post(
            "/api/category",
            json={"name": "Sarees", "image": assets.add("categories/dup.jpg")},
            headers=admin_headers,
        )
        assert res.status_code == 409
        assert res.json()["message"] == "Category name already exists"

    def test_name_colliding_on_slug_conflicts(self, client, make_category, admin_headers, assets):
        make_category("Party Wear")
        res = client.post(
            "/api/category",
            json={"name": "party   wear!", "image": assets.add("categories/p.jpg")},
            headers=admin_headers,
        )
        assert res.status_code == 409

    def test_name_without_letters_is_rejected(self, client, admin_headers, assets):
        res = client.post(
            "/api/category",
            json={"name": "!!!", "image": assets.add("categories/x.jpg")},
            headers=admin_headers,
        )
        assert res.status_code == 400

    def test_rename_rederives_slug(self, client, make_category, admin_headers):
        created = make_category("Gowns")
        res = client.put(
            f"/api/category/{created['id']}",
            json={"name": "Evening Gowns"},
            headers=admin_headers,
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["slug"] == "evening-gowns"
        assert client.get("/api/category/gowns").status_code == 404

    def test_new_image_replaces_and_deletes_old(self, client, make_category, admin_headers, assets):
        created = make_category("Kurtis")
        old_asset = created["image"]["asset_id"]
        new_image = assets.add("categories/new.jpg")

        res = client.put(
            f"/api/category/{created['id']}",
            json={"image": new_image},
            headers=admin_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["image"] == new_image
        assert assets.deleted == [old_asset]

    def test_delete_removes_image(self, client, make_category, admin_headers, assets):
        created = make_category("Temporary")
        res = client.delete(f"/api/category/{created['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert res.json() == {"success": True, "message": "Category deleted successfully"}
        assert assets.deleted == [created["image"]["asset_id"]]
        assert client.get(f"/api/category/{created['id']}").status_code == 404

    def test_delete_refused_while_dresses_exist(
        self, client, make_category, make_dress, admin_headers, assets
    ):
        category = make_category("Lehenga")
        make_dress(category["id"])
        make_dress(category["id"])

        res = client.delete(f"/api/category/{category['id']}", headers=admin_headers)
        assert res.status_code == 409
        assert res.json()["message"] == (
            "Cannot delete category. 2 dresses belong to this category."
        )
        assert assets.deleted == []
        assert client.get(f"/api/category/{category['id']}").status_code == 200

    def test_failed_image_delete_after_save_keeps_update(
        self, client, make_category, admin_headers, assets
    ):
        created = make_category("Ethnic")
        new_image = assets.add("categories/ethnic-new.jpg")
        assets.fail_deletes = True

        res = client.put(
            f"/api/category/{created['id']}",
            json={"image": new_image},
            headers=admin_headers,
        )
        assert res.status_code == 200
        assert res.json()["data"]["image"] == new_image


class TestCategoryRepository:
    def test_list_all_includes_inactive_on_request(self, session):
        repo = CategoryRepository()
        for name, active in (("Shown", True), ("Hidden", False)):
            repo.create(
                session,
                Category(
                    name=name,
                    slug=name.lower(),
                    image_url=f"https://cdn.test/{name}.jpg",
                    image_asset_id=f"categories/{name}.jpg",
                    is_active=active,
                ),
            )

        assert [c.name for c in repo.list_all(session)] == ["Shown"]
        assert sorted(c.name for c in repo.list_all(session, only_active=False)) == [
            "Hidden",
            "Shown",
        ]


class TestCategoryImageReplacement:
    """Unit tests for image replacement ordering in CategoryService."""

    @pytest.fixture
    def category(self):
        return Category(
            id=uuid.uuid4(),
            name="Bridal",
            slug="bridal",
            image_url="https://cdn.test/categories/old.jpg",
            image_asset_id="categories/old.jpg",
        )

    @pytest.fixture
    def repo(self, category):
        """Mock repository returning the category."""
        repo = Mock(spec=CategoryRepository)
        repo.get_by_id.return_value = category
        return repo

    @pytest.fixture
    def service(self, repo, assets):
        return CategoryService(repo, Mock(), assets)

    def test_old_image_deleted_after_commit(self, service, repo, assets, category):
        repo.update.side_effect = lambda session, c: c
        payload = CategoryUpdate(
            image=AssetRef(url="https://cdn.test/categories/new.jpg", asset_id="categories/new.jpg")
        )

        result = service.update_category(Mock(), category.id, payload)

        assert result.image_asset_id == "categories/new.jpg"
        assert assets.deleted == ["categories/old.jpg"]

    def test_old_image_kept_when_commit_fails(self, service, repo, assets, category):
        repo.update.side_effect = IntegrityError("UPDATE categories", {}, Exception("race"))
        payload = CategoryUpdate(
            image=AssetRef(url="https://cdn.test/categories/new.jpg", asset_id="categories/new.jpg")
        )

        with pytest.raises(ConflictError):
            service.update_category(Mock(), category.id, payload)

        assert assets.deleted == []
