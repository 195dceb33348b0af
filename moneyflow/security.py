# moneyflow/security.py
import hashlib
import hmac
import re

from flask import current_app

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


def _sign(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def make_identity_token(user_id: str, secret: str | None = None) -> str:
    """Token the identity provider hands to clients: "<user_id>.<signature>"."""
    secret = secret or current_app.config["IDENTITY_SECRET"]
    return f"{user_id}.{_sign(secret, user_id.encode())}"


def user_id_from_token(token: str | None, secret: str | None = None) -> str | None:
    """Return the user id carried by a valid token, else None."""
    if not token or "." not in token:
        return None
    user_id, _, signature = token.rpartition(".")
    if not _USER_ID_RE.match(user_id):
        return None
    secret = secret or current_app.config["IDENTITY_SECRET"]
    if not hmac.compare_digest(_sign(secret, user_id.encode()), signature):
        return None
    return user_id


def verify_webhook_signature(raw_body: bytes, signature: str | None, secret: str | None = None) -> None:
    secret = secret or current_app.config.get("IDENTITY_WEBHOOK_SECRET")
    if not secret:
        raise ValueError("Webhook secret not configured")
    if not signature:
        raise ValueError("Missing signature")
    if not hmac.compare_digest(_sign(secret, raw_body), signature):
        raise ValueError("Bad signature")
