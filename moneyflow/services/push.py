# moneyflow/services/push.py
import json
import logging
from dataclasses import dataclass

from flask import current_app
from pywebpush import WebPushException, webpush
from sqlalchemy import delete, select

from moneyflow.errors import ValidationError
from moneyflow.extensions import db
from moneyflow.models import NotificationPreference, PushSubscription

log = logging.getLogger(__name__)

GONE_STATUSES = (404, 410)
DEFAULT_ICON = "/icon-192x192.png"


@dataclass
class DeliveryResult:
    success: bool = False
    sent: int = 0
    failed: int = 0
    error: str | None = None

    def to_dict(self):
        out = {"success": self.success, "sent": self.sent, "failed": self.failed}
        if self.error:
            out["error"] = self.error
        return out


def is_configured() -> bool:
    cfg = current_app.config
    return bool(cfg.get("VAPID_PUBLIC_KEY") and cfg.get("VAPID_PRIVATE_KEY"))


def build_payload(notification: dict) -> str:
    return json.dumps({
        "title": notification["title"],
        "body": notification.get("body", ""),
        "icon": notification.get("icon") or DEFAULT_ICON,
        "badge": notification.get("badge") or DEFAULT_ICON,
        "tag": notification.get("tag") or notification.get("type"),
        "url": notification.get("url") or "/",
        "data": notification.get("data") or {},
    })


# ---- subscriptions ----------------------------------------------------------

def save_subscription(user_id: str, data: dict) -> PushSubscription:
    sub = data.get("subscription") if isinstance(data.get("subscription"), dict) else data
    endpoint = sub.get("endpoint")
    keys = sub.get("keys") or {}
    if not endpoint or not keys.get("p256dh") or not keys.get("auth"):
        raise ValidationError("subscription needs endpoint, keys.p256dh and keys.auth")

    row = db.session.execute(
        select(PushSubscription).where(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
    ).scalar_one_or_none()
    if row is None:
        row = PushSubscription(user_id=user_id, endpoint=endpoint)
        db.session.add(row)
    row.keys_p256dh = keys["p256dh"]
    row.keys_auth = keys["auth"]

    if db.session.get(NotificationPreference, user_id) is None:
        db.session.add(default_preferences(user_id))
    return row


def remove_subscription(user_id: str, endpoint: str | None = None) -> int:
    stmt = delete(PushSubscription).where(PushSubscription.user_id == user_id)
    if endpoint:
        stmt = stmt.where(PushSubscription.endpoint == endpoint)
    return db.session.execute(stmt).rowcount


def subscriptions_for(user_id: str) -> list[PushSubscription]:
    return db.session.execute(
        select(PushSubscription).where(PushSubscription.user_id == user_id)
    ).scalars().all()


def default_preferences(user_id: str) -> NotificationPreference:
    cfg = current_app.config
    return NotificationPreference(
        user_id=user_id,
        negative_balance=True,
        low_balance=True,
        low_balance_threshold=cfg.get("LOW_BALANCE_THRESHOLD_DEFAULT", 100),
        upcoming_recurring=True,
        upcoming_recurring_days=cfg.get("UPCOMING_RECURRING_DAYS_DEFAULT", 3),
        monthly_summary=True,
    )


# ---- delivery ---------------------------------------------------------------

def send_push(user_id: str, notification: dict) -> DeliveryResult:
    """Deliver one notification to every endpoint the user registered."""
    if not is_configured():
        log.warning("push not configured (VAPID keys missing); dropping %s for %s",
                    notification.get("type"), user_id)
        return DeliveryResult(error="push not configured")

    subs = subscriptions_for(user_id)
    if not subs:
        return DeliveryResult(error="no subscriptions found")

    cfg = current_app.config
    payload = build_payload(notification)
    result = DeliveryResult()
    gone = []

    for sub in subs:
        try:
            webpush(
                subscription_info=sub.subscription_info(),
                data=payload,
                vapid_private_key=cfg["VAPID_PRIVATE_KEY"],
                # pywebpush mutates the claims dict, so build a fresh one each time
                vapid_claims={"sub": f"mailto:{cfg['VAPID_CLAIM_EMAIL']}"},
                ttl=cfg.get("PUSH_TTL_SECONDS", 86400),
            )
            result.sent += 1
        except WebPushException as e:
            result.failed += 1
            status = getattr(e.response, "status_code", None)
            if status in GONE_STATUSES:
                gone.append(sub.id)
            log.warning("push to %s failed (status=%s): %s", sub.endpoint[:60], status, e)

    if gone:
        db.session.execute(delete(PushSubscription).where(PushSubscription.id.in_(gone)))
        db.session.commit()
        log.info("pruned %s expired push subscription(s) for %s", len(gone), user_id)

    result.success = result.sent > 0
    if not result.success:
        result.error = "all notifications failed"
    return result
