from flask import Blueprint, current_app, g, jsonify, request

from shopadmin.auth import admin_required, issue_token, public_user, verify_password
from shopadmin.errors import NotFound, Unauthorized, ValidationError
from shopadmin.storage import get_uploader, validate_images
from shopadmin.store import get_store
from shopadmin.utils import (
    parse_bool,
    parse_float,
    parse_int,
    parse_json_object,
    slugify,
)

admin = Blueprint("admin", __name__, url_prefix="/api/admin")

TEXT_FIELDS = ("category", "description", "supplier")
PRICE_FIELDS = ("price", "originalPrice", "discountPrice", "rating", "savings")
COUNT_FIELDS = ("stock", "reviews")
FLAG_FIELDS = ("isActive", "onSale")
BLOG_TEXT_FIELDS = ("content", "excerpt", "metaTitle", "metaDescription")


# -----------------------------
# REQUEST HELPERS
# -----------------------------
def request_data():
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data
    return request.form.to_dict()


def parse_product(data, partial=False):
    """Pick product fields out of a JSON or form body.

    For updates (``partial``) only the keys actually sent come back, so the
    store leaves everything else alone.
    """
    fields = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        fields["name"] = name

    if not partial and data.get("price") in (None, ""):
        raise ValidationError("price is required")

    for key in TEXT_FIELDS:
        if data.get(key) is not None:
            fields[key] = str(data[key])

    for key in PRICE_FIELDS:
        value = parse_float(data.get(key), key, minimum=0 if key != "savings" else None)
        if value is not None:
            fields[key] = value

    for key in COUNT_FIELDS:
        value = parse_int(data.get(key), key, minimum=0)
        if value is not None:
            fields[key] = value

    for key in FLAG_FIELDS:
        value = parse_bool(data.get(key), key)
        if value is not None:
            fields[key] = value

    specifications = parse_json_object(data.get("specifications"), "specifications")
    if specifications is not None:
        fields["specifications"] = specifications

    if "images" in data:
        images = data["images"]
        if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
            raise ValidationError("images must be a list of URLs")
        fields["images"] = images

    return fields


def parse_blog(data, partial=False):
    fields = {}

    if "title" in data or not partial:
        title = str(data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required")
        fields["title"] = title

    if data.get("slug"):
        fields["slug"] = slugify(str(data["slug"]))

    for key in BLOG_TEXT_FIELDS:
        if data.get(key) is not None:
            fields[key] = str(data[key])

    if data.get("status"):
        fields["status"] = str(data["status"]).strip().lower()

    return fields


def uploaded_images(field):
    files = [f for f in request.files.getlist(field) if f and f.filename]
    if len(files) > current_app.config["MAX_IMAGES_PER_REQUEST"]:
        raise ValidationError(
            f"At most {current_app.config['MAX_IMAGES_PER_REQUEST']} images per request"
        )
    validate_images(files, current_app.config["ALLOWED_EXTENSIONS"])
    return files


def discard_images(urls):
    uploader = get_uploader()
    for url in urls:
        if not uploader.delete_url(url):
            current_app.logger.warning("Could not delete image %s", url)


# -----------------------------
# AUTH
# -----------------------------
@admin.route("/login", methods=["POST"])
def admin_login():
    data = request_data()
    email = str(data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        raise ValidationError("Email and password are required")
    if not isinstance(password, str):
        raise ValidationError("password must be a string")

    user = get_store().get_admin_user_by_email(email)
    if not verify_password(user, password):
        current_app.logger.info("Failed admin login for %s", email)
        raise Unauthorized("Invalid email or password")

    return jsonify(token=issue_token(user), user=public_user(user))


@admin.route("/verify")
@admin_required
def verify():
    user = get_store().get_admin_user_by_id(g.admin["id"])
    if not user:
        raise NotFound("User not found")

    return jsonify(user=public_user(user))


# -----------------------------
# DASHBOARD
# -----------------------------
@admin.route("/dashboard/stats")
@admin_required
def dashboard_stats():
    stats = get_store().get_dashboard_stats()
    return jsonify({**stats, "revenue": f"{stats['revenue']:.2f}"})


# -----------------------------
# PRODUCTS
# -----------------------------
@admin.route("/products")
@admin_required
def list_products():
    return jsonify(get_store().list_products())


@admin.route("/products/<product_id>")
@admin_required
def get_product(product_id):
    product = get_store().get_product(product_id)
    if not product:
        raise NotFound("Product not found")

    return jsonify(product)


@admin.route("/products", methods=["POST"])
@admin_required
def create_product():
    fields = parse_product(request_data())
    files = uploaded_images("images")

    uploaded = get_uploader().upload_many(files, "products")
    fields["images"] = fields.get("images", []) + uploaded

    try:
        product = get_store().create_product(fields)
    except Exception:
        discard_images(u["url"] for u in uploaded)
        raise

    current_app.logger.info("Product created: %s", product["id"])
    return jsonify(product), 201


@admin.route("/products/<product_id>", methods=["PUT", "PATCH"])
@admin_required
def update_product(product_id):
    store = get_store()
    existing = store.get_product(product_id)
    if not existing:
        raise NotFound("Product not found")

    fields = parse_product(request_data(), partial=True)
    files = uploaded_images("images")

    uploaded = get_uploader().upload_many(files, "products")
    if uploaded:
        # new uploads go after the current images
        fields["images"] = list(fields.get("images", existing["images"])) + uploaded

    try:
        product = store.update_product(product_id, fields)
    except Exception:
        discard_images(u["url"] for u in uploaded)
        raise

    current_app.logger.info("Product updated: %s", product_id)
    return jsonify(product)


@admin.route("/products/<product_id>", methods=["DELETE"])
@admin_required
def delete_product(product_id):
    store = get_store()
    product = store.get_product(product_id)
    if not product or not store.delete_product(product_id):
        raise NotFound("Product not found")

    discard_images(product.get("images") or [])

    current_app.logger.info("Product deleted: %s", product_id)
    return jsonify(message="Product deleted successfully")


@admin.route("/products/<product_id>/images/<int:image_index>", methods=["DELETE"])
@admin_required
def delete_product_image(product_id, image_index):
    store = get_store()
    product = store.get_product(product_id)
    if not product:
        raise NotFound("Product not found")

    images = list(product.get("images") or [])
    if image_index >= len(images):
        raise NotFound("Image not found")

    removed = images.pop(image_index)
    updated = store.update_product(product_id, {"images": images})
    discard_images([removed])

    return jsonify(message="Image deleted successfully", product=updated)


# -----------------------------
# BLOGS
# -----------------------------
@admin.route("/blogs")
@admin_required
def list_blogs():
    return jsonify(get_store().list_blogs())


@admin.route("/blogs/<blog_id>")
@admin_required
def get_blog(blog_id):
    blog = get_store().get_blog(blog_id)
    if not blog:
        raise NotFound("Blog not found")

    return jsonify(blog)


@admin.route("/blogs", methods=["POST"])
@admin_required
def create_blog():
    fields = parse_blog(request_data())
    fields["author"] = g.admin.get("name") or "Admin"

    files = uploaded_images("featuredImage")[:1]
    uploaded = get_uploader().upload_many(files, "blogs")
    if uploaded:
        fields["featuredImageUrl"] = uploaded[0]["url"]
        fields["featuredImagePath"] = uploaded[0]["path"]

    try:
        blog = get_store().create_blog(fields)
    except Exception:
        discard_images(u["url"] for u in uploaded)
        raise

    current_app.logger.info("Blog created: %s", blog["id"])
    return jsonify(blog), 201


@admin.route("/blogs/<blog_id>", methods=["PUT", "PATCH"])
@admin_required
def update_blog(blog_id):
    store = get_store()
    existing = store.get_blog(blog_id)
    if not existing:
        raise NotFound("Blog not found")

    fields = parse_blog(request_data(), partial=True)

    files = uploaded_images("featuredImage")[:1]
    uploaded = get_uploader().upload_many(files, "blogs")
    if uploaded:
        fields["featuredImageUrl"] = uploaded[0]["url"]
        fields["featuredImagePath"] = uploaded[0]["path"]

    try:
        blog = store.update_blog(blog_id, fields)
    except Exception:
        discard_images(u["url"] for u in uploaded)
        raise

    if uploaded and existing.get("featuredImageUrl"):
        discard_images([existing["featuredImageUrl"]])

    current_app.logger.info("Blog updated: %s", blog_id)
    return jsonify(blog)


@admin.route("/blogs/<blog_id>", methods=["DELETE"])
@admin_required
def delete_blog(blog_id):
    store = get_store()
    blog = store.get_blog(blog_id)
    if not blog or not store.delete_blog(blog_id):
        raise NotFound("Blog not found")

    if blog.get("featuredImageUrl"):
        discard_images([blog["featuredImageUrl"]])

    current_app.logger.info("Blog deleted: %s", blog_id)
    return jsonify(message="Blog deleted successfully")
