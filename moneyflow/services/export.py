# moneyflow/services/export.py
import csv
import io

from sqlalchemy import select

from moneyflow.errors import ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account, Transaction

EXPORT_FORMATS = ("csv", "json")
EXPORT_TYPES = ("all", "accounts", "transactions")

ACCOUNT_COLS = ["name", "type", "balance", "exclude_from_forecast", "created_at"]
TRANSACTION_COLS = ["date", "type", "amount", "category", "account", "note", "recurring", "frequency"]


def collect(user_id: str, start=None, end=None):
    accounts = db.session.execute(
        select(Account).where(Account.user_id == user_id).order_by(Account.name)
    ).scalars().all()
    q = (
        select(Transaction)
        .where(Transaction.account_id.in_([a.id for a in accounts] or [-1]))
        .order_by(Transaction.date.desc(), Transaction.id.desc())
    )
    if start:
        q = q.where(Transaction.date >= start)
    if end:
        q = q.where(Transaction.date <= end)
    return accounts, db.session.execute(q).scalars().all()


def to_csv(accounts, transactions, kind: str = "all") -> bytes:
    """Sectioned CSV: an ACCOUNTS block and/or a TRANSACTIONS block."""
    if kind not in EXPORT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(EXPORT_TYPES)}")
    sio = io.StringIO(newline="")
    w = csv.writer(sio)

    if kind in ("all", "accounts"):
        w.writerow(["ACCOUNTS"])
        w.writerow(ACCOUNT_COLS)
        for a in accounts:
            w.writerow([
                a.name, a.type, f"{a.initial_balance:.2f}",
                "yes" if a.exclude_from_forecast else "no",
                a.created_at.date().isoformat() if a.created_at else "",
            ])
        w.writerow([])

    if kind in ("all", "transactions"):
        w.writerow(["TRANSACTIONS"])
        w.writerow(TRANSACTION_COLS)
        for t in transactions:
            w.writerow([
                t.date.isoformat(), t.type, f"{t.amount:.2f}",
                t.category.name if t.category else "N/A",
                t.account.name if t.account else "N/A",
                t.note or "",
                "yes" if t.is_recurring else "no",
                t.recurrence_frequency or "",
            ])

    return sio.getvalue().encode("utf-8")


def to_json(accounts, transactions, kind: str = "all") -> dict:
    if kind not in EXPORT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(EXPORT_TYPES)}")
    out = {}
    if kind in ("all", "accounts"):
        out["accounts"] = [a.to_dict() for a in accounts]
    if kind in ("all", "transactions"):
        out["transactions"] = [t.to_dict() for t in transactions]
    return out
