from flask import current_app, jsonify
from flask_login import current_user, login_required

from moneyflow.extensions import db
from moneyflow.models import NotificationPreference
from moneyflow.services import alerts, ledger, push
from moneyflow.utils.payload import json_body, to_bool, to_decimal, to_int

from . import notifications_bp


@notifications_bp.post("/subscriptions")
@login_required
def subscribe():
    push.save_subscription(current_user.id, json_body())
    db.session.commit()
    return jsonify({"success": True}), 201


@notifications_bp.delete("/subscriptions")
@login_required
def unsubscribe():
    removed = push.remove_subscription(current_user.id, json_body().get("endpoint"))
    db.session.commit()
    return jsonify({"success": True, "removed": removed}), 200


@notifications_bp.get("/subscription-status")
@login_required
def subscription_status():
    subs = push.subscriptions_for(current_user.id)
    return jsonify({
        "subscribed": bool(subs),
        "count": len(subs),
        "vapid_public_key": current_app.config.get("VAPID_PUBLIC_KEY") or None,
    }), 200


@notifications_bp.get("/preferences")
@login_required
def preferences_get():
    return jsonify(alerts.preferences_for(current_user.id).to_dict()), 200


@notifications_bp.patch("/preferences")
@login_required
def preferences_update():
    data = json_body()
    prefs = db.session.get(NotificationPreference, current_user.id)
    if prefs is None:
        prefs = push.default_preferences(current_user.id)
        db.session.add(prefs)

    for key in NotificationPreference.EDITABLE:
        if key not in data:
            continue
        if key == "low_balance_threshold":
            value = to_decimal(data[key], key)
        elif key == "upcoming_recurring_days":
            value = to_int(data[key], key)
        else:
            value = to_bool(data[key])
        setattr(prefs, key, value)

    db.session.commit()
    return jsonify(prefs.to_dict()), 200


@notifications_bp.post("/check")
@login_required
def check():
    ledger.settle_due(current_user.id)
    db.session.commit()
    results = alerts.check_user_alerts(current_user.id)
    return jsonify({"success": True, "results": results}), 200
