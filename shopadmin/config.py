import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
PROJECT_ROOT = os.path.dirname(BASE_DIR)

SECRET_KEY = os.environ.get("SECRET_KEY")

# -----------------------------
# PERSISTENT STORE
# -----------------------------
DATABASE_URL = os.getenv("DATABASE_URL")
DB_CONNECT_TIMEOUT = int(os.environ.get("DB_CONNECT_TIMEOUT", 5))
DB_POOL_MAX = int(os.environ.get("DB_POOL_MAX", 10))

# JSON fallback when postgres is unreachable
DATA_DIR = os.environ.get("DATA_DIR", os.path.join(PROJECT_ROOT, "data"))

# -----------------------------
# OBJECT STORAGE
# -----------------------------
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY")

UPLOAD_FOLDER = os.environ.get(
    "UPLOAD_FOLDER",
    os.path.join(PROJECT_ROOT, "uploads")
)

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
MAX_IMAGES_PER_REQUEST = 10
MAX_CONTENT_LENGTH = 100 * 1024 * 1024

# -----------------------------
# SERVER
# -----------------------------
PORT = int(os.environ.get("PORT", 3001))
PUBLIC_URL = os.environ.get("PUBLIC_URL", f"http://localhost:{PORT}")
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# -----------------------------
# ADMIN AUTH
# -----------------------------
TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 24 * 60 * 60))

ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@babisha.com")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD")
ADMIN_NAME = os.environ.get("ADMIN_NAME", "Admin User")

DEFAULT_SUPPLIER = os.environ.get("DEFAULT_SUPPLIER", "BABISHA Collections")


def load_config():
    """Collect the upper-case settings above into a plain dict for app.config."""
    return {
        key: value
        for key, value in globals().items()
        if key.isupper() and key not in ("BASE_DIR", "PROJECT_ROOT")
    }
