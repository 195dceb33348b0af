from flask import current_app, jsonify, request
from flask_login import current_user, login_required, logout_user
from sqlalchemy import select

from moneyflow.errors import Conflict, UpstreamError, ValidationError
from moneyflow.extensions import db
from moneyflow.models import User
from moneyflow.security import verify_webhook_signature
from moneyflow.services.identity import delete_identity_user
from moneyflow.services.purge import purge_user_data
from moneyflow.utils.payload import json_body

from . import identity_bp

SIGNATURE_HEADER = "X-Identity-Signature"


def _email_from(data: dict):
    if data.get("email"):
        return data["email"]
    for entry in data.get("email_addresses") or []:
        if isinstance(entry, dict) and entry.get("email_address"):
            return entry["email_address"]
    return None


def _set_username(user: User, username: str) -> None:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username cannot be empty")
    taken = db.session.execute(
        select(User.id).where(User.username == username, User.id != user.id)
    ).first()
    if taken:
        raise Conflict("username already taken")
    user.username = username


@identity_bp.get("/api/me")
@login_required
def me():
    return jsonify(current_user.to_dict()), 200


@identity_bp.patch("/api/me")
@login_required
def me_update():
    data = json_body()
    user = db.session.get(User, current_user.id)
    if "username" in data:
        _set_username(user, data["username"])
    if "email" in data:
        user.email = data["email"] or None
    db.session.commit()
    return jsonify(user.to_dict()), 200


@identity_bp.delete("/api/me")
@login_required
def me_delete():
    user_id = current_user.id
    counts = purge_user_data(user_id)
    db.session.commit()
    logout_user()

    try:
        delete_identity_user(user_id)
    except UpstreamError as e:
        current_app.logger.error("identity delete failed for %s after purge: %s", user_id, e.message)
        return jsonify({
            "error": "identity provider deletion failed",
            "warning": "Your data has been deleted. Please contact support to finish closing your account.",
            "deleted": counts,
        }), 502

    current_app.logger.info("account deleted user=%s", user_id)
    return jsonify({"success": True, "deleted": counts}), 200


@identity_bp.post("/webhooks/identity")
def identity_webhook():
    raw = request.get_data()
    try:
        verify_webhook_signature(raw, request.headers.get(SIGNATURE_HEADER))
    except ValueError as e:
        current_app.logger.warning("identity webhook rejected: %s", e)
        return jsonify({"error": str(e)}), 400

    event = request.get_json(silent=True) or {}
    kind = event.get("type")
    data = event.get("data") or {}
    user_id = data.get("id")
    if kind in ("user.created", "user.updated", "user.deleted") and not user_id:
        return jsonify({"error": "no user id in event"}), 400

    if kind in ("user.created", "user.updated"):
        user = db.session.get(User, user_id) or User(id=user_id)
        db.session.add(user)
        if data.get("username"):
            _set_username(user, data["username"])
        user.email = _email_from(data) or user.email
        db.session.commit()
        current_app.logger.info("identity webhook %s user=%s", kind, user_id)
        return jsonify({"success": True}), 200

    if kind == "user.deleted":
        counts = purge_user_data(user_id)
        db.session.commit()
        return jsonify({"success": True, "deleted": counts}), 200

    return jsonify({"received": True}), 200
