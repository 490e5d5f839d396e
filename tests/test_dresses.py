import uuid

from sqlmodel import select

from app.models.dress import DressImage


class TestDressCreate:
    def test_create_returns_derived_fields(self, client, make_category, make_dress):
        category = make_category("Sarees")
        dress = make_dress(category["id"], name="Silk Saree")

        assert dress["sku"] == "DRESS0001"
        assert dress["discount_percentage"] == 25
        assert dress["effective_price"] == 1500
        assert dress["category"] == {
            "id": category["id"],
            "name": "Sarees",
            "slug": "sarees",
        }
        assert dress["views"] == 0
        assert dress["rating"] == {"average": 0, "count": 0}
        assert dress["contact_link"].startswith("https://wa.me/919876543210?text=")
        assert "Silk%20Saree" in dress["contact_link"]

    def test_sku_is_sequential_and_unique(self, client, make_category, make_dress, dress_payload, admin_headers):
        category = make_category()
        assert make_dress(category["id"])["sku"] == "DRESS0001"
        assert make_dress(category["id"])["sku"] == "DRESS0002"

        res = client.post(
            "/api/dress",
            json=dress_payload(category["id"], sku="DRESS0001"),
            headers=admin_headers,
        )
        assert res.status_code == 409

    def test_empty_images_rejected_without_writes(
        self, client, make_category, dress_payload, admin_headers, assets
    ):
        category = make_category()
        res = client.post(
            "/api/dress",
            json=dress_payload(category["id"], images=[]),
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert res.json()["message"] == "At least one dress image is required in images array"
        assert client.get("/api/dresses").json()["total"] == 0
        assert assets.deleted == []

    def test_unknown_category_rejected(self, client, dress_payload, admin_headers):
        res = client.post(
            "/api/dress",
            json=dress_payload(str(uuid.uuid4())),
            headers=admin_headers,
        )
        assert res.status_code == 400

    def test_discount_above_original_rejected(self, client, make_category, dress_payload, admin_headers):
        category = make_category()
        res = client.post(
            "/api/dress",
            json=dress_payload(category["id"], price={"original": 100, "discounted": 150}),
            headers=admin_headers,
        )
        assert res.status_code == 400

    def test_json_encoded_fields_are_accepted(self, client, make_category, dress_payload, admin_headers):
        category = make_category()
        payload = dress_payload(
            category["id"],
            price='{"original": 999}',
            sizes='[{"size": "FreeSize"}]',
            tags='[" Party ", "party", "Festive"]',
        )
        res = client.post("/api/dress", json=payload, headers=admin_headers)
        assert res.status_code == 201, res.text
        data = res.json()["data"]
        assert data["price"] == {"original": 999, "discounted": None}
        assert data["discount_percentage"] == 0
        assert data["sizes"][0]["size"] == "Free Size"
        assert data["tags"] == ["party", "festive"]

    def test_invalid_contact_number_rejected(self, client, make_category, dress_payload, admin_headers):
        category = make_category()
        res = client.post(
            "/api/dress",
            json=dress_payload(category["id"], contact_number="12-34"),
            headers=admin_headers,
        )
        assert res.status_code == 400

    def test_overlong_tag_rejected(self, client, make_category, make_dress, dress_payload, admin_headers):
        category = make_category()
        res = client.post(
            "/api/dress",
            json=dress_payload(category["id"], tags=["x" * 51]),
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert res.json()["errors"][0]["field"] == "tags"
        assert client.get("/api/dresses").json()["total"] == 0

        dress = make_dress(category["id"], tags=["  " + "y" * 50 + "  "])
        assert dress["tags"] == ["y" * 50]

        res = client.put(
            f"/api/dress/{dress['id']}",
            json={"tags": ["z" * 60]},
            headers=admin_headers,
        )
        assert res.status_code == 400


class TestDressReads:
    def test_pagination(self, client, make_category, make_dress):
        category = make_category()
        for _ in range(30):
            make_dress(category["id"])

        first = client.get("/api/dresses").json()
        assert (first["count"], first["total"], first["page"], first["pages"]) == (12, 30, 1, 3)

        last = client.get("/api/dresses", params={"page": 3}).json()
        assert last["count"] == 6

        capped = client.get("/api/dresses", params={"limit": 500}).json()
        assert capped["count"] == 30
        assert capped["pages"] == 1

    def test_view_count_increments_after_response(self, client, make_category, make_dress):
        dress = make_dress(make_category()["id"])

        first = client.get(f"/api/dress/{dress['id']}")
        assert first.status_code == 200
        assert first.json()["data"]["views"] == 0

        second = client.get(f"/api/dress/{dress['id']}")
        assert second.json()["data"]["views"] == 1

    def test_inactive_dress_hidden(self, client, make_category, make_dress):
        dress = make_dress(make_category()["id"], is_active=False)
        assert client.get(f"/api/dress/{dress['id']}").status_code == 404
        assert client.get("/api/dresses").json()["total"] == 0

    def test_missing_dress_is_not_found(self, client):
        res = client.get(f"/api/dress/{uuid.uuid4()}")
        assert res.status_code == 404
        assert res.json() == {"success": False, "message": "Dress not found"}

    def test_filters(self, client, make_category, make_dress):
        sarees = make_category("Sarees")
        gowns = make_category("Gowns")
        make_dress(
            sarees["id"],
            name="Cheap",
            price={"original": 500},
            sizes=[{"size": "S"}],
            colors=[{"name": "Navy Blue", "code": "#000080"}],
        )
        make_dress(
            sarees["id"],
            name="Mid",
            price={"original": 1500},
            sizes=[{"size": "M"}],
            material="Silk",
        )
        make_dress(
            gowns["id"],
            name="Pricey",
            price={"original": 5000},
            sizes=[{"size": "L"}],
            is_featured=True,
        )

        def names(**params):
            body = client.get("/api/dresses", params={"sort": "price", **params}).json()
            return [d["name"] for d in body["data"]]

        assert names() == ["Cheap", "Mid", "Pricey"]
        assert names(category=sarees["id"]) == ["Cheap", "Mid"]
        assert names(min_price=1000, max_price=6000) == ["Mid", "Pricey"]
        assert names(size="M") == ["Mid"]
        assert names(color="blue") == ["Cheap"]
        assert names(material="silk") == ["Mid"]
        assert names(featured=True) == ["Pricey"]
        assert names(sort="-price") == ["Pricey", "Mid", "Cheap"]
        # Unknown sort keys fall back to the default order
        assert client.get("/api/dresses", params={"sort": "bogus"}).status_code == 200

    def test_featured(self, client, make_category, make_dress):
        category = make_category()
        make_dress(category["id"], name="Second", is_featured=True, sort_order=2)
        make_dress(category["id"], name="First", is_featured=True, sort_order=1)
        make_dress(category["id"], name="Plain")

        body = client.get("/api/dresses/featured").json()
        assert body["count"] == 2
        assert [d["name"] for d in body["data"]] == ["First", "Second"]

    def test_by_category_slug(self, client, make_category, make_dress):
        category = make_category("Party Wear")
        make_dress(category["id"])
        make_dress(make_category("Other")["id"])

        res = client.get("/api/dresses/category/party-wear")
        assert res.status_code == 200
        body = res.json()
        assert body["category"]["slug"] == "party-wear"
        assert body["total"] == 1

        assert client.get("/api/dresses/category/nope").status_code == 404

    def test_search(self, client, make_category, make_dress):
        category = make_category()
        make_dress(category["id"], name="Ruby Gown", tags=["wedding"])
        make_dress(category["id"], name="Linen Kurta", material="Linen", tags=[])
        make_dress(category["id"], name="Plain", description="Simple 100% cotton", tags=[])

        def found(q):
            body = client.get("/api/dresses/search", params={"q": q}).json()
            return sorted(d["name"] for d in body["data"])

        assert found("ruby") == ["Ruby Gown"]
        assert found("WEDDING") == ["Ruby Gown"]
        assert found("linen") == ["Linen Kurta"]
        # LIKE wildcards are matched literally
        assert found("100%") == ["Plain"]

        body = client.get("/api/dresses/search", params={"q": "ruby"}).json()
        assert body["query"] == "ruby"

    def test_search_requires_query(self, client):
        res = client.get("/api/dresses/search", params={"q": "   "})
        assert res.status_code == 400
        assert res.json()["message"] == "Search query (q) is required"


class TestDressUpdate:
    def test_removing_every_image_is_rejected(
        self, client, make_category, make_dress, admin_headers, assets
    ):
        dress = make_dress(make_category()["id"])
        only = dress["images"][0]["asset_id"]

        res = client.put(
            f"/api/dress/{dress['id']}",
            json={"remove_asset_ids": [only], "name": "Renamed"},
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert res.json()["message"] == "Dress must have at least one image"
        assert assets.deleted == []

        current = client.get(f"/api/dress/{dress['id']}").json()["data"]
        assert current["images"] == dress["images"]
        assert current["name"] == dress["name"]

    def test_remove_and_append_images(
        self, client, make_category, make_dress, admin_headers, assets, session
    ):
        first = assets.add("dresses/one.jpg")
        second = assets.add("dresses/two.jpg")
        dress = make_dress(make_category()["id"], images=[first, second])
        third = assets.add("dresses/three.jpg")

        res = client.put(
            f"/api/dress/{dress['id']}",
            json={
                "remove_asset_ids": ["dresses/one.jpg", "dresses/not-mine.jpg"],
                "new_images": [third],
            },
            headers=admin_headers,
        )
        assert res.status_code == 200, res.text
        images = res.json()["data"]["images"]
        assert [img["asset_id"] for img in images] == ["dresses/two.jpg", "dresses/three.jpg"]
        # Only assets owned by this dress are deleted from Storage
        assert assets.deleted == ["dresses/one.jpg"]

        orders = session.exec(
            select(DressImage.sort_order).where(DressImage.dress_id == uuid.UUID(dress["id"]))
        ).all()
        assert sorted(orders) == [1, 2]

    def test_sku_is_never_changed(self, client, make_category, make_dress, admin_headers):
        dress = make_dress(make_category()["id"])
        res = client.put(
            f"/api/dress/{dress['id']}",
            json={"sku": "OTHER"},
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert client.get(f"/api/dress/{dress['id']}").json()["data"]["sku"] == dress["sku"]

    def test_field_updates_and_child_replacement(self, client, make_category, make_dress, admin_headers):
        dress = make_dress(make_category()["id"])
        res = client.put(
            f"/api/dress/{dress['id']}",
            json={
                "price": {"original": 1000, "discounted": 875},
                "sizes": [{"size": "L"}, {"size": "XL", "available": False}],
                "tags": ["Festive"],
            },
            headers=admin_headers,
        )
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["discount_percentage"] == 13
        assert [s["size"] for s in data["sizes"]] == ["L", "XL"]
        assert data["tags"] == ["festive"]
        assert data["colors"] == dress["colors"]

    def test_update_missing_dress(self, client, admin_headers):
        res = client.put(
            f"/api/dress/{uuid.uuid4()}",
            json={"name": "x"},
            headers=admin_headers,
        )
        assert res.status_code == 404


class TestDressDelete:
    def test_delete_removes_all_images(self, client, make_category, make_dress, admin_headers, assets):
        dress = make_dress(
            make_category()["id"],
            images=[assets.add("dresses/a.jpg"), assets.add("dresses/b.jpg")],
        )
        res = client.delete(f"/api/dress/{dress['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert sorted(assets.deleted) == ["dresses/a.jpg", "dresses/b.jpg"]
        assert client.get(f"/api/dress/{dress['id']}").status_code == 404

    def test_delete_missing(self, client, admin_headers):
        res = client.delete(f"/api/dress/{uuid.uuid4()}", headers=admin_headers)
        assert res.status_code == 404
