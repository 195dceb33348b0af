# moneyflow/services/sharing.py
from datetime import timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import select

from moneyflow.errors import Conflict, Forbidden, NotFound, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account, MonthClosure, SharedDashboard, Transaction, User
from moneyflow.models.sharing import PERMISSIONS
from moneyflow.utils import dates


def owned_account(user_id: str, account_id: int) -> Account:
    account = db.session.get(Account, account_id)
    if account is None or account.user_id != user_id:
        raise NotFound("account not found")
    return account


def share_between(owner_id: str, user_id: str) -> SharedDashboard | None:
    return db.session.execute(
        select(SharedDashboard).where(
            SharedDashboard.owner_user_id == owner_id,
            SharedDashboard.shared_with_user_id == user_id,
        )
    ).scalar_one_or_none()


def load_editable_account(actor_id: str, account_id: int) -> Account:
    """Account ``actor_id`` may write to: their own, or one shared with 'edit'.

    A 'view' share is a 403; no share at all looks like a missing account.
    """
    account = db.session.get(Account, account_id)
    if account is None:
        raise NotFound("account not found")
    if account.user_id == actor_id:
        return account

    share = share_between(account.user_id, actor_id)
    if share is None:
        raise NotFound("account not found")
    if share.permission != "edit":
        raise Forbidden("read-only access to this dashboard")
    return account


# ---- owner side -------------------------------------------------------------

def list_shares(owner_id: str) -> list[dict]:
    rows = db.session.execute(
        select(SharedDashboard, User.username)
        .outerjoin(User, User.id == SharedDashboard.shared_with_user_id)
        .where(SharedDashboard.owner_user_id == owner_id)
        .order_by(SharedDashboard.created_at.desc())
    ).all()
    return [{**share.to_dict(), "shared_with_username": username} for share, username in rows]


def create_share(owner_id: str, username: str, permission: str) -> SharedDashboard:
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")
    if permission not in PERMISSIONS:
        raise ValidationError("permission must be 'view' or 'edit'")

    recipient = db.session.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if recipient is None:
        raise NotFound("user not found")
    if recipient.id == owner_id:
        raise ValidationError("you cannot share with yourself")
    if share_between(owner_id, recipient.id) is not None:
        raise Conflict("dashboard already shared with this user")

    share = SharedDashboard(owner_user_id=owner_id, shared_with_user_id=recipient.id, permission=permission)
    db.session.add(share)
    db.session.flush()
    current_app.logger.info("share %s: %s -> %s (%s)", share.id, owner_id, recipient.id, permission)
    return share


def _owned_share(owner_id: str, share_id: int) -> SharedDashboard:
    share = db.session.get(SharedDashboard, share_id)
    if share is None or share.owner_user_id != owner_id:
        raise NotFound("share not found")
    return share


def update_share(owner_id: str, share_id: int, permission: str) -> SharedDashboard:
    if permission not in PERMISSIONS:
        raise ValidationError("permission must be 'view' or 'edit'")
    share = _owned_share(owner_id, share_id)
    share.permission = permission
    return share


def revoke_share(owner_id: str, share_id: int) -> None:
    db.session.delete(_owned_share(owner_id, share_id))


# ---- recipient side ---------------------------------------------------------

def _dashboard(share: SharedDashboard, owner: User | None, today) -> dict:
    owner_id = share.owner_user_id
    accounts = db.session.execute(
        select(Account).where(Account.user_id == owner_id).order_by(Account.created_at)
    ).scalars().all()
    closures = db.session.execute(
        select(MonthClosure).where(MonthClosure.user_id == owner_id).order_by(MonthClosure.month_year.desc())
    ).scalars().all()

    transactions = []
    if accounts:
        transactions = db.session.execute(
            select(Transaction)
            .where(Transaction.account_id.in_([a.id for a in accounts]), Transaction.date <= today)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        ).scalars().all()

    income = expense = Decimal("0")
    for t in transactions:
        if t.is_recurring or (t.date.year, t.date.month) != (today.year, today.month):
            continue
        if t.type == "income":
            income += t.amount
        else:
            expense += t.amount

    current_month_start = None
    if closures:
        current_month_start = (closures[0].end_date + timedelta(days=1)).isoformat()

    return {
        "owner_user_id": owner_id,
        "owner_username": owner.display_name() if owner else owner_id,
        "permission": share.permission,
        "share_id": share.id,
        "accounts": [a.to_dict() for a in accounts],
        "transactions": [t.to_dict() for t in transactions],
        "total_balance": float(sum((Decimal(a.initial_balance) for a in accounts), Decimal("0"))),
        "monthly_income": float(income),
        "monthly_expense": float(expense),
        "month_closures": [c.to_dict() for c in closures],
        "current_month_start": current_month_start,
    }


def dashboards_for(user_id: str, today=None) -> list[dict]:
    today = today or dates.today()
    rows = db.session.execute(
        select(SharedDashboard, User)
        .outerjoin(User, User.id == SharedDashboard.owner_user_id)
        .where(SharedDashboard.shared_with_user_id == user_id)
        .order_by(SharedDashboard.created_at)
    ).all()
    return [_dashboard(share, owner, today) for share, owner in rows]
