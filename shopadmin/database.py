import logging
import uuid
from contextlib import contextmanager

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extras import Json, RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from shopadmin.errors import Conflict, NotFound
from shopadmin.store import Store, image_path, image_url
from shopadmin.utils import now_iso, to_iso

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = {
    "name": "name",
    "category": "category",
    "description": "description",
    "price": "price",
    "originalPrice": "original_price",
    "discountPrice": "discount_price",
    "stock": "stock",
    "isActive": "is_active",
    "specifications": "specifications",
    "supplier": "supplier",
    "rating": "rating",
    "reviews": "reviews",
    "onSale": "on_sale",
    "savings": "savings",
}

BLOG_COLUMNS = {
    "title": "title",
    "slug": "slug",
    "content": "content",
    "excerpt": "excerpt",
    "featuredImageUrl": "featured_image_url",
    "featuredImagePath": "featured_image_path",
    "metaTitle": "meta_title",
    "metaDescription": "meta_description",
    "status": "status",
    "author": "author",
}

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS admin_users (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        email VARCHAR(255) UNIQUE NOT NULL,
        password VARCHAR(255) NOT NULL,
        name VARCHAR(255) NOT NULL,
        role VARCHAR(50) DEFAULT 'admin',
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS products (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name VARCHAR(255) NOT NULL,
        category VARCHAR(100),
        description TEXT,
        price NUMERIC(10, 2) NOT NULL DEFAULT 0 CHECK (price >= 0),
        original_price NUMERIC(10, 2),
        discount_price NUMERIC(10, 2),
        stock INTEGER DEFAULT 0,
        is_active BOOLEAN DEFAULT true,
        specifications JSONB DEFAULT '{}',
        supplier VARCHAR(255),
        rating NUMERIC(3, 2) DEFAULT 0,
        reviews INTEGER DEFAULT 0,
        on_sale BOOLEAN DEFAULT false,
        savings NUMERIC(10, 2),
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS product_images (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        product_id UUID NOT NULL REFERENCES products(id) ON DELETE CASCADE,
        image_url TEXT NOT NULL,
        image_path TEXT NOT NULL,
        display_order INTEGER DEFAULT 0,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS blogs (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        title VARCHAR(255) NOT NULL,
        slug VARCHAR(255) UNIQUE NOT NULL,
        content TEXT NOT NULL,
        excerpt TEXT,
        featured_image_url TEXT,
        featured_image_path TEXT,
        meta_title VARCHAR(255),
        meta_description TEXT,
        status VARCHAR(20) DEFAULT 'draft',
        author VARCHAR(255) DEFAULT 'Admin',
        published_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_products_category ON products(category);",
    "CREATE INDEX IF NOT EXISTS idx_products_active ON products(is_active);",
    "CREATE INDEX IF NOT EXISTS idx_blogs_status ON blogs(status);",
    "CREATE INDEX IF NOT EXISTS idx_product_images_product ON product_images(product_id);",
]

DROP_TABLES = [
    "DROP TABLE IF EXISTS product_images CASCADE;",
    "DROP TABLE IF EXISTS products CASCADE;",
    "DROP TABLE IF EXISTS blogs CASCADE;",
    "DROP TABLE IF EXISTS admin_users CASCADE;",
]

PRODUCT_SELECT = """
    SELECT
        p.*,
        COALESCE(
            json_agg(
                json_build_object(
                    'image_url', pi.image_url,
                    'image_path', pi.image_path
                ) ORDER BY pi.display_order
            ) FILTER (WHERE pi.id IS NOT NULL),
            '[]'::json
        ) AS images
    FROM products p
    LEFT JOIN product_images pi ON p.id = pi.product_id
"""


def open_pool(database_url, maxconn=10, connect_timeout=5):
    """Open a connection pool and make sure the server answers."""
    pool = ThreadedConnectionPool(
        1,
        maxconn,
        database_url,
        cursor_factory=RealDictCursor,
        connect_timeout=connect_timeout,
    )
    try:
        conn = pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT NOW()")
            conn.commit()
        finally:
            pool.putconn(conn)
    except psycopg2.Error:
        pool.closeall()
        raise
    return pool


def _valid_id(value):
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def _number(value):
    # NUMERIC columns come back as Decimal
    return float(value) if value is not None else None


class PostgresStore(Store):
    name = "postgres"

    def __init__(self, pool, **kwargs):
        super().__init__(**kwargs)
        self.pool = pool

    @contextmanager
    def cursor(self):
        """One transaction per block; the connection always goes back to the pool."""
        conn = self.pool.getconn()
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except pg_errors.UniqueViolation as e:
            conn.rollback()
            raise Conflict("A record with this slug or email already exists") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    # -----------------------------
    # SCHEMA
    # -----------------------------
    def init_schema(self):
        with self.cursor() as cur:
            for statement in SCHEMA:
                cur.execute(statement)

    def reset_schema(self):
        with self.cursor() as cur:
            for statement in DROP_TABLES + SCHEMA:
                cur.execute(statement)

    # -----------------------------
    # ROW MAPPING
    # -----------------------------
    def _product_from_row(self, row):
        images = row.get("images") or []
        return {
            "id": str(row["id"]),
            "name": row["name"],
            "category": row["category"],
            "description": row["description"],
            "price": _number(row["price"]) or 0,
            "originalPrice": _number(row["original_price"]),
            "discountPrice": _number(row["discount_price"]),
            "stock": row["stock"] or 0,
            "isActive": row["is_active"] is not False,
            "specifications": row["specifications"] or {},
            "supplier": row["supplier"] or self.default_supplier,
            "rating": _number(row["rating"]) or 0,
            "reviews": row["reviews"] or 0,
            "onSale": bool(row["on_sale"]),
            "savings": _number(row["savings"]),
            "images": [img["image_url"] for img in images if img.get("image_url")],
            "createdAt": to_iso(row["created_at"]),
            "updatedAt": to_iso(row["updated_at"]),
        }

    @staticmethod
    def _blog_from_row(row):
        return {
            "id": str(row["id"]),
            "title": row["title"],
            "slug": row["slug"],
            "content": row["content"],
            "excerpt": row["excerpt"],
            "featuredImage": row["featured_image_url"],
            "featuredImageUrl": row["featured_image_url"],
            "featuredImagePath": row["featured_image_path"],
            "metaTitle": row["meta_title"],
            "metaDescription": row["meta_description"],
            "status": row["status"],
            "author": row["author"],
            "createdAt": to_iso(row["created_at"]),
            "updatedAt": to_iso(row["updated_at"]),
            "publishedAt": to_iso(row["published_at"]),
        }

    @staticmethod
    def _user_from_row(row):
        if not row:
            return None
        return {**dict(row), "id": str(row["id"])}

    @staticmethod
    def _adapt(key, value):
        return Json(value) if key == "specifications" and value is not None else value

    @staticmethod
    def _insert_images(cur, product_id, images):
        for order, image in enumerate(images):
            cur.execute(
                """
                INSERT INTO product_images (product_id, image_url, image_path, display_order)
                VALUES (%s, %s, %s, %s)
                """,
                (product_id, image_url(image), image_path(image), order)
            )

    # -----------------------------
    # PRODUCTS
    # -----------------------------
    def list_products(self):
        with self.cursor() as cur:
            cur.execute(PRODUCT_SELECT + " GROUP BY p.id ORDER BY p.created_at DESC")
            return [self._product_from_row(row) for row in cur.fetchall()]

    def get_product(self, product_id):
        if not _valid_id(product_id):
            return None

        with self.cursor() as cur:
            cur.execute(PRODUCT_SELECT + " WHERE p.id = %s GROUP BY p.id", (product_id,))
            row = cur.fetchone()
            return self._product_from_row(row) if row else None

    def create_product(self, data):
        product = self.new_product(data)
        columns = list(PRODUCT_COLUMNS)

        with self.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO products
                (id, {", ".join(PRODUCT_COLUMNS[k] for k in columns)}, created_at, updated_at)
                VALUES ({", ".join(["%s"] * (len(columns) + 3))})
                """,
                [product["id"]]
                + [self._adapt(k, product[k]) for k in columns]
                + [product["createdAt"], product["updatedAt"]]
            )
            self._insert_images(cur, product["id"], product["images"])

        return {**product, "images": [image_url(img) for img in product["images"]]}

    def update_product(self, product_id, partial):
        if not _valid_id(product_id):
            raise NotFound("Product not found")

        changes = self.product_changes(partial)
        replace_images = "images" in changes
        images = changes.pop("images", None) or []

        assignments = [f"{PRODUCT_COLUMNS[k]} = %s" for k in changes] + ["updated_at = %s"]
        values = [self._adapt(k, v) for k, v in changes.items()] + [now_iso(), product_id]

        with self.cursor() as cur:
            cur.execute(
                f"UPDATE products SET {', '.join(assignments)} WHERE id = %s RETURNING id",
                values
            )
            if cur.fetchone() is None:
                raise NotFound("Product not found")

            if replace_images:
                cur.execute("DELETE FROM product_images WHERE product_id = %s", (product_id,))
                self._insert_images(cur, product_id, images)

        return self.get_product(product_id)

    def delete_product(self, product_id):
        if not _valid_id(product_id):
            return False

        # product_images rows go with it (ON DELETE CASCADE)
        with self.cursor() as cur:
            cur.execute("DELETE FROM products WHERE id = %s RETURNING id", (product_id,))
            return cur.fetchone() is not None

    # -----------------------------
    # BLOGS
    # -----------------------------
    def list_blogs(self):
        with self.cursor() as cur:
            cur.execute("SELECT * FROM blogs ORDER BY created_at DESC")
            return [self._blog_from_row(row) for row in cur.fetchall()]

    def get_blog(self, blog_id):
        if not _valid_id(blog_id):
            return None

        with self.cursor() as cur:
            cur.execute("SELECT * FROM blogs WHERE id = %s", (blog_id,))
            row = cur.fetchone()
            return self._blog_from_row(row) if row else None

    def get_blog_by_slug(self, slug):
        with self.cursor() as cur:
            cur.execute("SELECT * FROM blogs WHERE slug = %s", (slug,))
            row = cur.fetchone()
            return self._blog_from_row(row) if row else None

    def create_blog(self, data):
        blog = self.new_blog(data)
        columns = list(BLOG_COLUMNS)

        with self.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO blogs
                (id, {", ".join(BLOG_COLUMNS[k] for k in columns)},
                 created_at, updated_at, published_at)
                VALUES ({", ".join(["%s"] * (len(columns) + 4))})
                """,
                [blog["id"]]
                + [blog[k] for k in columns]
                + [blog["createdAt"], blog["updatedAt"], blog["publishedAt"]]
            )

        return blog

    def update_blog(self, blog_id, partial):
        if not _valid_id(blog_id):
            raise NotFound("Blog not found")

        changes = self.blog_changes(partial)
        now = now_iso()

        with self.cursor() as cur:
            cur.execute("SELECT * FROM blogs WHERE id = %s FOR UPDATE", (blog_id,))
            row = cur.fetchone()
            if row is None:
                raise NotFound("Blog not found")

            existing = self._blog_from_row(row)
            assignments = [f"{BLOG_COLUMNS[k]} = %s" for k in changes]
            assignments += ["updated_at = %s", "published_at = %s"]
            values = list(changes.values())
            values += [now, self.published_at(existing, changes, now), blog_id]

            cur.execute(
                f"UPDATE blogs SET {', '.join(assignments)} WHERE id = %s RETURNING *",
                values
            )
            return self._blog_from_row(cur.fetchone())

    def delete_blog(self, blog_id):
        if not _valid_id(blog_id):
            return False

        with self.cursor() as cur:
            cur.execute("DELETE FROM blogs WHERE id = %s RETURNING id", (blog_id,))
            return cur.fetchone() is not None

    # -----------------------------
    # ADMIN USERS
    # -----------------------------
    def get_admin_user_by_email(self, email):
        with self.cursor() as cur:
            cur.execute("SELECT * FROM admin_users WHERE email = %s", (email,))
            return self._user_from_row(cur.fetchone())

    def get_admin_user_by_id(self, user_id):
        if not _valid_id(user_id):
            return None

        with self.cursor() as cur:
            cur.execute("SELECT * FROM admin_users WHERE id = %s", (user_id,))
            return self._user_from_row(cur.fetchone())

    def initialize_admin(self, email, password_hash, name, role="admin"):
        with self.cursor() as cur:
            cur.execute(
                """
                INSERT INTO admin_users (email, password, name, role)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (email) DO NOTHING
                RETURNING id
                """,
                (email, password_hash, name, role)
            )
            created = cur.fetchone() is not None

        if created:
            logger.info("Default admin user created: %s", email)
        return created

    def set_admin_password(self, email, password_hash):
        with self.cursor() as cur:
            cur.execute(
                """
                UPDATE admin_users SET password = %s, updated_at = CURRENT_TIMESTAMP
                WHERE email = %s RETURNING id
                """,
                (password_hash, email)
            )
            return cur.fetchone() is not None

    # -----------------------------
    # DASHBOARD
    # -----------------------------
    def get_dashboard_stats(self):
        with self.cursor() as cur:
            cur.execute("""
                SELECT
                    COUNT(*) AS total_products,
                    COUNT(*) FILTER (WHERE is_active = true) AS active_products,
                    COALESCE(SUM(price), 0) AS revenue
                FROM products
            """)
            products = cur.fetchone()

            cur.execute("""
                SELECT
                    COUNT(*) AS total_blogs,
                    COUNT(*) FILTER (WHERE status = 'published') AS published_blogs
                FROM blogs
            """)
            blogs = cur.fetchone()

        return {
            "totalProducts": int(products["total_products"]),
            "activeProducts": int(products["active_products"]),
            "totalBlogs": int(blogs["total_blogs"]),
            "publishedBlogs": int(blogs["published_blogs"]),
            "revenue": float(products["revenue"]),
        }


# -----------------------------
# STARTUP SELECTION
# -----------------------------
def select_store(config):
    """Use postgres when DATABASE_URL answers, otherwise the JSON files in DATA_DIR."""
    options = {"default_supplier": config["DEFAULT_SUPPLIER"]}

    if config.get("DATABASE_URL"):
        pool = None
        try:
            pool = open_pool(
                config["DATABASE_URL"],
                maxconn=config["DB_POOL_MAX"],
                connect_timeout=config["DB_CONNECT_TIMEOUT"],
            )
            store = PostgresStore(pool, **options)
            store.init_schema()
            logger.info("Using PostgreSQL database")
            return store
        except psycopg2.Error as e:
            if pool is not None:
                pool.closeall()
            logger.warning("Database connection failed, using JSON file fallback: %s", e)
    else:
        logger.warning("DATABASE_URL not set, using JSON file fallback")

    from shopadmin.file_store import JsonFileStore

    logger.info("Using JSON file storage in %s", config["DATA_DIR"])
    return JsonFileStore(config["DATA_DIR"], **options)
