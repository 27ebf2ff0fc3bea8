"""Image storage: Supabase Storage buckets, with the local uploads folder as fallback."""
import logging
import os
import re
import time
import uuid
from urllib.parse import urlparse

from flask import current_app
from supabase import create_client
from werkzeug.utils import safe_join, secure_filename

from shopadmin.errors import StorageError, ValidationError
from shopadmin.utils import allowed_file

logger = logging.getLogger(__name__)

PUBLIC_OBJECT_RE = re.compile(r"/storage/v1/object/public/(products|blogs)/(.+)$")


def bucket_for(category):
    return "blogs" if category == "blogs" else "products"


def file_extension(filename):
    return os.path.splitext(secure_filename(filename or ""))[1].lower()


def validate_images(files, allowed_extensions):
    for file in files:
        if not file.filename or not allowed_file(file.filename, allowed_extensions):
            raise ValidationError("Only image files are allowed!")
        if not (file.mimetype or "").startswith("image/"):
            raise ValidationError("Only image files are allowed!")


def _rewind(file):
    # the fallback path re-reads a stream the managed upload already consumed
    if hasattr(file.stream, "seek"):
        file.stream.seek(0)


# -----------------------------
# LOCAL DISK
# -----------------------------
class LocalStorage:
    """Files under ``upload_folder``, served back through the /uploads route."""

    name = "local"

    def __init__(self, upload_folder, public_url):
        self.upload_folder = upload_folder
        self.public_url = public_url.rstrip("/")

    def upload(self, file, category):
        folder = os.path.join(self.upload_folder, category)
        os.makedirs(folder, exist_ok=True)

        filename = f"{uuid.uuid4()}-{int(time.time() * 1000)}{file_extension(file.filename)}"
        _rewind(file)
        file.save(os.path.join(folder, filename))

        path = f"/uploads/{category}/{filename}"
        return {"url": self.public_url + path, "path": path}

    def upload_many(self, files, category):
        return [self.upload(file, category) for file in files]

    def delete(self, path):
        relative = path.lstrip("/")
        if not relative.startswith("uploads/"):
            return False

        full_path = safe_join(self.upload_folder, relative[len("uploads/"):])
        if not full_path or not os.path.isfile(full_path):
            return False

        try:
            os.remove(full_path)
        except OSError as e:
            logger.warning("Error deleting local image file %s: %s", full_path, e)
            return False
        return True

    def resolve_path_from_url(self, url):
        if url.startswith(self.public_url + "/uploads/"):
            return url[len(self.public_url):]
        if url.startswith("/uploads/"):
            return url
        return None


# -----------------------------
# SUPABASE STORAGE
# -----------------------------
class SupabaseStorage:
    name = "supabase"

    def __init__(self, client, project_url):
        self.client = client
        self.project_url = project_url.rstrip("/")

    @classmethod
    def connect(cls, project_url, service_key):
        client = create_client(project_url, service_key)
        client.storage.list_buckets()
        return cls(client, project_url)

    def upload(self, file, category):
        bucket = bucket_for(category)
        path = f"{category}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{file_extension(file.filename)}"

        try:
            _rewind(file)
            self.client.storage.from_(bucket).upload(
                path,
                file.read(),
                {"content-type": file.mimetype or "application/octet-stream", "upsert": "false"},
            )
            url = self.client.storage.from_(bucket).get_public_url(path)
        except Exception as e:
            raise StorageError(f"Upload to bucket '{bucket}' failed: {e}") from e

        return {"url": url, "path": path}

    def upload_many(self, files, category):
        uploaded = []
        try:
            for file in files:
                uploaded.append(self.upload(file, category))
        except StorageError:
            for result in uploaded:
                self.delete(result["path"])
            raise
        return uploaded

    def delete(self, path):
        bucket = "blogs" if path.startswith("blogs/") else "products"
        try:
            self.client.storage.from_(bucket).remove([path])
        except Exception as e:
            logger.warning("Error deleting %s from bucket '%s': %s", path, bucket, e)
            return False
        return True

    def resolve_path_from_url(self, url):
        if not url.startswith(self.project_url):
            return None

        match = PUBLIC_OBJECT_RE.search(urlparse(url).path)
        return match.group(2) if match else None


# -----------------------------
# UPLOAD POLICY
# -----------------------------
class ImageUploader:
    """Tries the managed store first; any failure there lands the files on local disk."""

    def __init__(self, local, managed=None):
        self.local = local
        self.managed = managed

    @property
    def name(self):
        return self.managed.name if self.managed else self.local.name

    def upload_many(self, files, category):
        if not files:
            return []

        if self.managed is not None:
            try:
                return self.managed.upload_many(files, category)
            except StorageError as e:
                logger.warning("Managed storage upload failed, using local paths: %s", e)

        return self.local.upload_many(files, category)

    def upload(self, file, category):
        return self.upload_many([file], category)[0]

    def delete_url(self, url):
        """Delete whatever object ``url`` points at. Unknown URLs are left alone."""
        if not url:
            return False

        for backend in (self.managed, self.local):
            if backend is None:
                continue
            path = backend.resolve_path_from_url(url)
            if path:
                return backend.delete(path)
        return False


def select_storage(config):
    local = LocalStorage(config["UPLOAD_FOLDER"], config["PUBLIC_URL"])

    if not (config.get("SUPABASE_URL") and config.get("SUPABASE_SERVICE_KEY")):
        logger.info("Using local file storage in %s", config["UPLOAD_FOLDER"])
        return ImageUploader(local)

    try:
        managed = SupabaseStorage.connect(config["SUPABASE_URL"], config["SUPABASE_SERVICE_KEY"])
    except Exception as e:
        logger.warning("Supabase Storage not available, using local storage: %s", e)
        return ImageUploader(local)

    logger.info("Using Supabase Storage for images")
    return ImageUploader(local, managed)


def get_uploader():
    return current_app.extensions["images"]
