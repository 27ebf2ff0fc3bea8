"""Tests for the JSON-file store."""

import json
import math
import os
import threading

import pytest

from shopadmin.errors import NotFound, ValidationError
from shopadmin.file_store import JsonFileStore


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "data"), default_supplier="Test Supplier")


class TestProducts:
    def test_create_applies_defaults(self, store):
        product = store.create_product({"name": "Saree A", "price": 1200})

        assert product["images"] == []
        assert product["stock"] == 0
        assert product["isActive"] is True
        assert product["category"] == "Uncategorized"
        assert product["supplier"] == "Test Supplier"
        assert product["specifications"] == {}
        assert product["createdAt"] == product["updatedAt"]

    def test_ids_are_unique_and_stable(self, store):
        created = [store.create_product({"name": f"P{i}", "price": i}) for i in range(3)]
        ids = [p["id"] for p in created]

        assert len(set(ids)) == 3
        for product in created:
            assert store.get_product(product["id"])["id"] == product["id"]
        assert {p["id"] for p in store.list_products()} == set(ids)

    def test_negative_price_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create_product({"name": "Bad", "price": -1})

        product = store.create_product({"name": "Ok", "price": 1})
        with pytest.raises(ValidationError):
            store.update_product(product["id"], {"price": -5})

    def test_non_finite_price_rejected(self, store):
        for price in (math.nan, math.inf):
            with pytest.raises(ValidationError):
                store.create_product({"name": "Bad", "price": price})

        assert store.list_products() == []

    def test_concurrent_writers_keep_file_parseable(self, store):
        errors = []

        def writer():
            for i in range(20):
                try:
                    store.create_product({"name": f"Item {i}", "price": i})
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=writer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with open(os.path.join(store.data_dir, "products.json"), encoding="utf-8") as f:
            assert isinstance(json.load(f), list)
        assert store.list_products()
        assert not [n for n in os.listdir(store.data_dir) if n.endswith(".tmp")]

    def test_partial_update_leaves_other_fields(self, store):
        product = store.create_product({
            "name": "Kurta",
            "price": 800,
            "category": "Ethnic",
            "specifications": {"fabric": "cotton"},
            "images": ["http://localhost:3001/uploads/products/a.jpg"],
        })

        updated = store.update_product(product["id"], {"stock": 5})

        assert updated["stock"] == 5
        for key in product:
            if key not in ("stock", "updatedAt"):
                assert updated[key] == product[key], key

    def test_update_ignores_unknown_and_protected_keys(self, store):
        product = store.create_product({"name": "Kurta", "price": 800})

        updated = store.update_product(product["id"], {"id": "other", "createdAt": "x", "bogus": 1})

        assert updated["id"] == product["id"]
        assert updated["createdAt"] == product["createdAt"]
        assert "bogus" not in updated

    def test_update_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.update_product("does-not-exist", {"stock": 1})

    def test_delete_reports_existence(self, store):
        product = store.create_product({"name": "Gone", "price": 10, "images": ["u1", "u2"]})

        assert store.delete_product(product["id"]) is True
        assert store.delete_product(product["id"]) is False
        assert store.get_product(product["id"]) is None
        assert store.list_products() == []

    def test_image_dicts_are_stored_as_urls(self, store):
        product = store.create_product({
            "name": "Lehenga",
            "price": 5000,
            "images": [{"url": "http://x/uploads/products/1.jpg", "path": "/uploads/products/1.jpg"}, "http://x/2.jpg"],
        })

        assert product["images"] == ["http://x/uploads/products/1.jpg", "http://x/2.jpg"]

    def test_legacy_single_image_key(self, store, tmp_path):
        with open(tmp_path / "data" / "products.json", "w", encoding="utf-8") as f:
            json.dump([{"id": "old", "name": "Old", "price": 5, "image": "old.jpg"}], f)

        assert store.get_product("old")["images"] == ["old.jpg"]
        assert store.list_products()[0]["images"] == ["old.jpg"]

    def test_missing_files_read_as_empty(self, store):
        assert store.list_products() == []
        assert store.list_blogs() == []
        assert store.get_admin_user_by_email("nobody@example.com") is None


class TestBlogs:
    def test_create_then_fetch_round_trips(self, store):
        blog = store.create_blog({"title": "Summer Sale", "slug": "summer-sale", "content": "<p>Hi</p>"})
        fetched = store.get_blog(blog["id"])

        assert fetched["title"] == "Summer Sale"
        assert fetched["content"] == "<p>Hi</p>"
        assert fetched["slug"] == "summer-sale"
        assert fetched["status"] == "draft"
        assert fetched["publishedAt"] is None
        assert store.get_blog_by_slug("summer-sale")["id"] == blog["id"]

    def test_defaults_derive_from_title_and_content(self, store):
        blog = store.create_blog({"title": "New Arrivals!", "content": "x" * 300})

        assert blog["slug"] == "new-arrivals"
        assert blog["excerpt"] == "x" * 200
        assert blog["metaTitle"] == "New Arrivals!"
        assert blog["author"] == "Admin"

    def test_publish_sets_published_at_once(self, store):
        blog = store.create_blog({"title": "Summer Sale", "slug": "summer-sale"})

        first = store.update_blog(blog["id"], {"status": "published"})
        second = store.update_blog(blog["id"], {"status": "published"})

        assert first["publishedAt"] is not None
        assert second["publishedAt"] == first["publishedAt"]

    def test_republish_after_draft_keeps_original_timestamp(self, store):
        blog = store.create_blog({"title": "Post", "status": "published"})
        published_at = blog["publishedAt"]
        assert published_at is not None

        store.update_blog(blog["id"], {"status": "draft"})
        again = store.update_blog(blog["id"], {"status": "published"})

        assert again["publishedAt"] == published_at

    def test_edit_without_status_keeps_draft_unpublished(self, store):
        blog = store.create_blog({"title": "Draft"})

        updated = store.update_blog(blog["id"], {"content": "more"})

        assert updated["status"] == "draft"
        assert updated["publishedAt"] is None
        assert updated["title"] == "Draft"

    def test_invalid_status_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create_blog({"title": "Post", "status": "archived"})

    def test_duplicate_slugs_are_not_enforced(self, store):
        store.create_blog({"title": "One", "slug": "same"})
        store.create_blog({"title": "Two", "slug": "same"})

        assert [b["slug"] for b in store.list_blogs()] == ["same", "same"]

    def test_update_and_delete_missing(self, store):
        with pytest.raises(NotFound):
            store.update_blog("missing", {"title": "x"})
        assert store.delete_blog("missing") is False


class TestAdminUsersAndStats:
    def test_initialize_admin_only_once(self, store):
        assert store.initialize_admin("a@example.com", "hash", "A") is True
        assert store.initialize_admin("a@example.com", "other", "A") is False

        user = store.get_admin_user_by_email("a@example.com")
        assert user["password"] == "hash"
        assert user["role"] == "admin"
        assert store.get_admin_user_by_id(user["id"])["email"] == "a@example.com"

    def test_set_admin_password(self, store):
        store.initialize_admin("a@example.com", "hash", "A")

        assert store.set_admin_password("a@example.com", "new-hash") is True
        assert store.set_admin_password("b@example.com", "new-hash") is False
        assert store.get_admin_user_by_email("a@example.com")["password"] == "new-hash"

    def test_dashboard_stats_sum_list_prices(self, store):
        store.create_product({"name": "A", "price": 1200})
        store.create_product({"name": "B", "price": 300.5, "isActive": False})
        store.create_blog({"title": "Draft"})
        store.create_blog({"title": "Live", "status": "published"})

        assert store.get_dashboard_stats() == {
            "totalProducts": 2,
            "activeProducts": 1,
            "totalBlogs": 2,
            "publishedBlogs": 1,
            "revenue": 1500.5,
        }
