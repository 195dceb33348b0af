# moneyflow/models/sharing.py
from datetime import datetime

from moneyflow.extensions import db

PERMISSIONS = ("view", "edit")


class SharedDashboard(db.Model):
    __tablename__ = "shared_dashboards"

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.String(64), nullable=False, index=True)
    shared_with_user_id = db.Column(db.String(64), nullable=False, index=True)
    permission = db.Column(db.String(10), nullable=False, default="view")  # 'view'|'edit'
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("owner_user_id", "shared_with_user_id", name="uq_shared_dashboard_pair"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "owner_user_id": self.owner_user_id,
            "shared_with_user_id": self.shared_with_user_id,
            "permission": self.permission,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
