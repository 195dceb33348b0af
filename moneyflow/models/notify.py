# moneyflow/models/notify.py
from datetime import datetime

from moneyflow.extensions import db
from moneyflow.utils import dates

NOTIFICATION_TYPES = ("negative_balance", "low_balance", "recurring_due", "credit_due", "monthly_summary")


class PushSubscription(db.Model):
    __tablename__ = "push_subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    endpoint = db.Column(db.Text, nullable=False)
    keys_p256dh = db.Column(db.String(255), nullable=False)
    keys_auth = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_user_endpoint"),)

    def subscription_info(self) -> dict:
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.keys_p256dh, "auth": self.keys_auth}}


class NotificationPreference(db.Model):
    __tablename__ = "notification_preferences"

    user_id = db.Column(db.String(64), primary_key=True)
    negative_balance = db.Column(db.Boolean, nullable=False, default=True)
    low_balance = db.Column(db.Boolean, nullable=False, default=True)
    low_balance_threshold = db.Column(db.Numeric(12, 2), nullable=False, default=100)
    upcoming_recurring = db.Column(db.Boolean, nullable=False, default=True)
    upcoming_recurring_days = db.Column(db.Integer, nullable=False, default=3)
    monthly_summary = db.Column(db.Boolean, nullable=False, default=True)

    EDITABLE = (
        "negative_balance", "low_balance", "low_balance_threshold",
        "upcoming_recurring", "upcoming_recurring_days", "monthly_summary",
    )

    def to_dict(self):
        return {
            "negative_balance": bool(self.negative_balance),
            "low_balance": bool(self.low_balance),
            "low_balance_threshold": float(self.low_balance_threshold),
            "upcoming_recurring": bool(self.upcoming_recurring),
            "upcoming_recurring_days": int(self.upcoming_recurring_days),
            "monthly_summary": bool(self.monthly_summary),
        }


class SentNotification(db.Model):
    __tablename__ = "sent_notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    notification_type = db.Column(db.String(32), nullable=False)
    reference_id = db.Column(db.String(120), nullable=False)
    # app-timezone wall clock, matched against the start of dates.today()
    sent_at = db.Column(db.DateTime, nullable=False, default=dates.now, index=True)
