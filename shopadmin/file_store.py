import json
import logging
import os
import tempfile
import uuid

from shopadmin.errors import NotFound
from shopadmin.store import Store, image_url
from shopadmin.utils import now_iso

logger = logging.getLogger(__name__)

PRODUCTS_FILE = "products.json"
BLOGS_FILE = "blogs.json"
ADMIN_FILE = "admin.json"


class JsonFileStore(Store):
    """Store backed by one JSON file per collection under ``data_dir``.

    Each write reads the whole collection, changes it and writes it back.
    There is no locking, so two concurrent writers to the same file can
    lose one update. Slug and email uniqueness are not enforced.
    """

    name = "json"

    def __init__(self, data_dir, **kwargs):
        super().__init__(**kwargs)
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)

    # -----------------------------
    # FILE HELPERS
    # -----------------------------
    def _path(self, filename):
        return os.path.join(self.data_dir, filename)

    def _load(self, filename):
        path = self._path(filename)
        if not os.path.exists(path):
            return {"users": []} if filename == ADMIN_FILE else []

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, filename, data):
        # a fresh temp file per write, swapped in whole by os.replace
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=filename + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(filename))
        except Exception:
            os.unlink(tmp_path)
            raise

    @staticmethod
    def _newest_first(records):
        return sorted(records, key=lambda r: r.get("createdAt") or "", reverse=True)

    @staticmethod
    def _with_images(product):
        images = product.get("images")
        if not isinstance(images, list):
            # older files kept a single "image" key
            images = [product["image"]] if product.get("image") else []
        return {**product, "images": images}

    # -----------------------------
    # PRODUCTS
    # -----------------------------
    def list_products(self):
        return [self._with_images(p) for p in self._newest_first(self._load(PRODUCTS_FILE))]

    def get_product(self, product_id):
        product = next((p for p in self._load(PRODUCTS_FILE) if p.get("id") == product_id), None)
        return self._with_images(product) if product else None

    def create_product(self, data):
        product = self.new_product(data)
        product["images"] = [image_url(img) for img in product["images"]]

        products = self._load(PRODUCTS_FILE)
        products.append(product)
        self._save(PRODUCTS_FILE, products)
        return product

    def update_product(self, product_id, partial):
        changes = self.product_changes(partial)
        if "images" in changes:
            changes["images"] = [image_url(img) for img in changes["images"] or []]

        products = self._load(PRODUCTS_FILE)
        index = next((i for i, p in enumerate(products) if p.get("id") == product_id), None)
        if index is None:
            raise NotFound("Product not found")

        products[index] = {**products[index], **changes, "updatedAt": now_iso()}
        self._save(PRODUCTS_FILE, products)
        return self._with_images(products[index])

    def delete_product(self, product_id):
        products = self._load(PRODUCTS_FILE)
        remaining = [p for p in products if p.get("id") != product_id]
        if len(remaining) == len(products):
            return False

        self._save(PRODUCTS_FILE, remaining)
        return True

    # -----------------------------
    # BLOGS
    # -----------------------------
    def list_blogs(self):
        return self._newest_first(self._load(BLOGS_FILE))

    def get_blog(self, blog_id):
        return next((b for b in self._load(BLOGS_FILE) if b.get("id") == blog_id), None)

    def get_blog_by_slug(self, slug):
        return next((b for b in self._load(BLOGS_FILE) if b.get("slug") == slug), None)

    def create_blog(self, data):
        blog = self.new_blog(data)

        blogs = self._load(BLOGS_FILE)
        blogs.append(blog)
        self._save(BLOGS_FILE, blogs)
        return blog

    def update_blog(self, blog_id, partial):
        changes = self.blog_changes(partial)

        blogs = self._load(BLOGS_FILE)
        index = next((i for i, b in enumerate(blogs) if b.get("id") == blog_id), None)
        if index is None:
            raise NotFound("Blog not found")

        existing = blogs[index]
        now = now_iso()
        updated = {**existing, **changes, "updatedAt": now}
        updated["featuredImage"] = updated.get("featuredImageUrl")
        updated["publishedAt"] = self.published_at(existing, changes, now)

        blogs[index] = updated
        self._save(BLOGS_FILE, blogs)
        return updated

    def delete_blog(self, blog_id):
        blogs = self._load(BLOGS_FILE)
        remaining = [b for b in blogs if b.get("id") != blog_id]
        if len(remaining) == len(blogs):
            return False

        self._save(BLOGS_FILE, remaining)
        return True

    # -----------------------------
    # ADMIN USERS
    # -----------------------------
    def get_admin_user_by_email(self, email):
        users = self._load(ADMIN_FILE).get("users", [])
        return next((u for u in users if u.get("email") == email), None)

    def get_admin_user_by_id(self, user_id):
        users = self._load(ADMIN_FILE).get("users", [])
        return next((u for u in users if u.get("id") == user_id), None)

    def initialize_admin(self, email, password_hash, name, role="admin"):
        admin_data = self._load(ADMIN_FILE)
        users = admin_data.setdefault("users", [])
        if any(u.get("email") == email for u in users):
            return False

        users.append({
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password_hash,
            "name": name,
            "role": role,
            "createdAt": now_iso(),
        })
        self._save(ADMIN_FILE, admin_data)
        logger.info("Default admin user created: %s", email)
        return True

    def set_admin_password(self, email, password_hash):
        admin_data = self._load(ADMIN_FILE)
        for user in admin_data.get("users", []):
            if user.get("email") == email:
                user["password"] = password_hash
                user["updatedAt"] = now_iso()
                self._save(ADMIN_FILE, admin_data)
                return True
        return False

    # -----------------------------
    # DASHBOARD
    # -----------------------------
    def get_dashboard_stats(self):
        return self.stats_from(self._load(PRODUCTS_FILE), self._load(BLOGS_FILE))
