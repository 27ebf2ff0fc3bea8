from functools import wraps

from flask import current_app, g, request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from shopadmin.errors import Forbidden, Unauthorized

TOKEN_SALT = "admin-auth-v1"


def hash_password(password):
    return generate_password_hash(password)


def verify_password(user, password):
    return bool(user and user.get("password")) and check_password_hash(user["password"], password)


def public_user(user):
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user.get("name"),
        "role": user.get("role"),
    }


# -----------------------------
# TOKENS
# -----------------------------
def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps(public_user(user))


def read_token(token):
    try:
        return _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except BadSignature:
        # SignatureExpired is a BadSignature too
        raise Forbidden("Invalid or expired token.")


def bearer_token():
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def admin_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        token = bearer_token()
        if not token:
            raise Unauthorized("Access denied. No token provided.")

        g.admin = read_token(token)
        return view(*args, **kwargs)
    return wrapped
