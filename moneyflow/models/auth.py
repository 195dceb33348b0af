# moneyflow/models/auth.py
from datetime import datetime

from flask_login import UserMixin

from moneyflow.extensions import db


class User(db.Model, UserMixin):
    __tablename__ = "users"

    # identity provider subject ("user_2abc..."), not a local sequence
    id = db.Column(db.String(64), primary_key=True)
    username = db.Column(db.String(120), unique=True, index=True)
    email = db.Column(db.String(320), index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def display_name(self) -> str:
        return self.username or self.email or self.id

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}>"


class UserSettings(db.Model):
    __tablename__ = "user_settings"

    user_id = db.Column(db.String(64), primary_key=True)
    spend_targets = db.Column(db.JSON)
    savings_rate = db.Column(db.Numeric(5, 2))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "spend_targets": self.spend_targets,
            "savings_rate": float(self.savings_rate) if self.savings_rate is not None else None,
        }
