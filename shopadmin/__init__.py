import logging
import os

from flask import Flask
from flask_cors import CORS

from shopadmin.config import load_config
from shopadmin.errors import register_error_handlers


def create_app(test_config=None):
    app = Flask(__name__)

    # -----------------------------
    # APP CONFIG
    # -----------------------------
    app.config.update(load_config())
    if test_config:
        app.config.update(test_config)

    # -----------------------------
    # SECRET KEY (MANDATORY)
    # -----------------------------
    if not app.config.get("SECRET_KEY"):
        raise RuntimeError("SECRET_KEY not set")

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.config["UPLOAD_FOLDER"] = os.path.abspath(app.config["UPLOAD_FOLDER"])
    app.config["DATA_DIR"] = os.path.abspath(app.config["DATA_DIR"])
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    os.makedirs(app.config["DATA_DIR"], exist_ok=True)

    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    # -----------------------------
    # STORE + IMAGE STORAGE (picked once)
    # -----------------------------
    from shopadmin.cli import register_commands, seed_admin
    from shopadmin.database import select_store
    from shopadmin.storage import select_storage

    app.extensions["store"] = select_store(app.config)
    app.extensions["images"] = select_storage(app.config)

    with app.app_context():
        try:
            seed_admin(app.extensions["store"], app.config)
        except Exception:
            app.logger.warning("Admin initialization failed", exc_info=True)

    # -----------------------------
    # BLUEPRINTS
    # -----------------------------
    from shopadmin.routes import main
    app.register_blueprint(main)

    from shopadmin.admin_routes import admin
    app.register_blueprint(admin)

    register_error_handlers(app)
    register_commands(app)

    return app
