"""Persistent store interface shared by the postgres and JSON-file backends.

Records are plain dicts keyed the way the API serves them (camelCase).
Subclasses only deal with reading and writing rows; defaults, partial-update
filtering and the publish timestamp rule live here so both backends agree.
"""
import abc
import math
import uuid

from flask import current_app

from shopadmin.errors import ValidationError
from shopadmin.utils import now_iso, slugify

PRODUCT_FIELDS = (
    "name", "category", "description", "price", "originalPrice",
    "discountPrice", "stock", "isActive", "specifications", "supplier",
    "rating", "reviews", "onSale", "savings", "images",
)

BLOG_FIELDS = (
    "title", "slug", "content", "excerpt", "featuredImageUrl",
    "featuredImagePath", "metaTitle", "metaDescription", "status", "author",
)

BLOG_STATUSES = ("draft", "published")


def image_url(image):
    if isinstance(image, dict):
        return image.get("url") or image.get("path")
    return str(image)


def image_path(image):
    if isinstance(image, dict):
        return image.get("path") or image.get("url")
    return str(image)


def check_price(value):
    if value is not None and (not math.isfinite(value) or value < 0):
        raise ValidationError("price must be >= 0")


def check_status(value):
    if value is not None and value not in BLOG_STATUSES:
        raise ValidationError("status must be 'draft' or 'published'")


class Store(abc.ABC):
    name = "abstract"

    def __init__(self, default_supplier="BABISHA Collections"):
        self.default_supplier = default_supplier

    # -----------------------------
    # PRODUCTS
    # -----------------------------
    @abc.abstractmethod
    def list_products(self):
        ...

    @abc.abstractmethod
    def get_product(self, product_id):
        ...

    @abc.abstractmethod
    def create_product(self, data):
        ...

    @abc.abstractmethod
    def update_product(self, product_id, partial):
        """Merge ``partial`` into the product; raises NotFound if it is absent."""

    @abc.abstractmethod
    def delete_product(self, product_id):
        """Remove the product and its image references. Returns whether it existed."""

    # -----------------------------
    # BLOGS
    # -----------------------------
    @abc.abstractmethod
    def list_blogs(self):
        ...

    @abc.abstractmethod
    def get_blog(self, blog_id):
        ...

    @abc.abstractmethod
    def get_blog_by_slug(self, slug):
        ...

    @abc.abstractmethod
    def create_blog(self, data):
        ...

    @abc.abstractmethod
    def update_blog(self, blog_id, partial):
        ...

    @abc.abstractmethod
    def delete_blog(self, blog_id):
        ...

    # -----------------------------
    # ADMIN USERS
    # -----------------------------
    @abc.abstractmethod
    def get_admin_user_by_email(self, email):
        ...

    @abc.abstractmethod
    def get_admin_user_by_id(self, user_id):
        ...

    @abc.abstractmethod
    def initialize_admin(self, email, password_hash, name, role="admin"):
        """Create the bootstrap admin unless ``email`` already exists."""

    @abc.abstractmethod
    def set_admin_password(self, email, password_hash):
        ...

    @abc.abstractmethod
    def get_dashboard_stats(self):
        """Counts plus ``revenue``, which is the sum of all list prices."""

    # -----------------------------
    # SHARED RECORD SHAPING
    # -----------------------------
    def new_product(self, data):
        price = data.get("price") or 0
        check_price(price)
        now = now_iso()
        return {
            "id": str(uuid.uuid4()),
            "name": data.get("name") or "Untitled Product",
            "category": data.get("category") or "Uncategorized",
            "description": data.get("description") or "",
            "price": price,
            "originalPrice": data.get("originalPrice"),
            "discountPrice": data.get("discountPrice"),
            "stock": data.get("stock") or 0,
            "isActive": data.get("isActive") is not False,
            "specifications": data.get("specifications") or {},
            "supplier": data.get("supplier") or self.default_supplier,
            "rating": data.get("rating") or 0,
            "reviews": data.get("reviews") or 0,
            "onSale": bool(data.get("onSale")),
            "savings": data.get("savings"),
            "images": list(data.get("images") or []),
            "createdAt": now,
            "updatedAt": now,
        }

    def new_blog(self, data):
        status = data.get("status") or "draft"
        check_status(status)
        title = data.get("title") or "Untitled Blog"
        content = data.get("content") or ""
        excerpt = data.get("excerpt") or content[:200]
        now = now_iso()
        return {
            "id": str(uuid.uuid4()),
            "title": title,
            "slug": data.get("slug") or slugify(title),
            "content": content,
            "excerpt": excerpt,
            "featuredImage": data.get("featuredImageUrl"),
            "featuredImageUrl": data.get("featuredImageUrl"),
            "featuredImagePath": data.get("featuredImagePath"),
            "metaTitle": data.get("metaTitle") or title,
            "metaDescription": data.get("metaDescription") or excerpt or content[:160],
            "status": status,
            "author": data.get("author") or "Admin",
            "createdAt": now,
            "updatedAt": now,
            "publishedAt": now if status == "published" else None,
        }

    @staticmethod
    def product_changes(partial):
        changes = {k: v for k, v in partial.items() if k in PRODUCT_FIELDS}
        if "price" in changes:
            if changes["price"] is None:
                raise ValidationError("price must be a number")
            check_price(changes["price"])
        return changes

    @staticmethod
    def blog_changes(partial):
        changes = {k: v for k, v in partial.items() if k in BLOG_FIELDS}
        if "status" in changes:
            check_status(changes["status"])
        return changes

    @staticmethod
    def published_at(existing, changes, now):
        """publishedAt is stamped the first time a post becomes published, never again."""
        status = changes.get("status") or existing.get("status")
        if status == "published" and not existing.get("publishedAt"):
            return now
        return existing.get("publishedAt")

    @staticmethod
    def stats_from(products, blogs):
        return {
            "totalProducts": len(products),
            "activeProducts": sum(1 for p in products if p.get("isActive") is not False),
            "totalBlogs": len(blogs),
            "publishedBlogs": sum(1 for b in blogs if b.get("status") == "published"),
            "revenue": sum(float(p.get("price") or 0) for p in products),
        }


def get_store():
    return current_app.extensions["store"]
