import json
import math
import re
import unicodedata
from datetime import datetime, timezone

from shopadmin.errors import ValidationError

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off", ""}


def now_iso():
    return datetime.now(timezone.utc).isoformat()


def to_iso(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def slugify(text):
    text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode()
    text = re.sub(r"[^\w\s-]", "", text.lower())
    return re.sub(r"[-\s_]+", "-", text).strip("-") or "untitled-blog"


def allowed_file(filename, allowed_extensions):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in allowed_extensions


# -----------------------------
# REQUEST VALUE PARSING
# -----------------------------
# Form posts deliver strings, JSON posts deliver typed values; both go
# through these.
def parse_float(value, field, minimum=None):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum:g}")
    return number


def parse_int(value, field, minimum=None):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return number


def parse_bool(value, field):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be true or false")


def parse_json_object(value, field):
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a JSON object")
    if not isinstance(parsed, dict):
        raise ValidationError(f"{field} must be a JSON object")
    return parsed
