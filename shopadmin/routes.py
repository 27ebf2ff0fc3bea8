from flask import Blueprint, current_app, jsonify, send_from_directory

from shopadmin.errors import NotFound
from shopadmin.storage import get_uploader
from shopadmin.store import get_store

main = Blueprint("main", __name__)


# -----------------------
# PUBLIC CATALOG
# -----------------------
@main.route("/api/products")
def products():
    active = [p for p in get_store().list_products() if p.get("isActive") is not False]
    return jsonify(active)


@main.route("/api/products/<product_id>")
def product_detail(product_id):
    product = get_store().get_product(product_id)
    if not product or product.get("isActive") is False:
        raise NotFound("Product not found")
    return jsonify(product)


@main.route("/api/blogs")
def blogs():
    published = [b for b in get_store().list_blogs() if b.get("status") == "published"]
    return jsonify(published)


@main.route("/api/blogs/<slug>")
def blog_detail(slug):
    blog = get_store().get_blog_by_slug(slug)
    if not blog or blog.get("status") != "published":
        raise NotFound("Blog not found")
    return jsonify(blog)


@main.route("/api/health")
def health():
    return jsonify(
        status="ok",
        database=get_store().name,
        storage=get_uploader().name,
    )


# -----------------------
# LOCAL UPLOADS
# -----------------------
@main.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
