# moneyflow/jobs/month_archive.py
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import select, update

from moneyflow.errors import NothingToArchive
from moneyflow.extensions import db
from moneyflow.models import Account, MonthClosure, Transaction
from moneyflow.utils import dates
from moneyflow.utils.dates import month_key


@dataclass
class MonthCloseResult:
    month_year: str
    start_date: date
    end_date: date
    archived: int
    income: Decimal
    expense: Decimal

    def to_dict(self):
        return {
            "success": True,
            "month_year": self.month_year,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "archived": self.archived,
            "income": float(self.income),
            "expense": float(self.expense),
        }


def _latest_closure(user_id: str) -> MonthClosure | None:
    return db.session.execute(
        select(MonthClosure)
        .where(MonthClosure.user_id == user_id)
        .order_by(MonthClosure.end_date.desc())
        .limit(1)
    ).scalar_one_or_none()


def _advance_closure(user_id: str, latest: MonthClosure | None, first: date, last: date) -> MonthClosure:
    """Record ``first..last`` after the latest closure; closures never overlap."""
    month_year = month_key(first)
    if latest is not None:
        taken = db.session.execute(
            select(MonthClosure.id).where(MonthClosure.user_id == user_id, MonthClosure.month_year == month_year)
        ).first()
        if taken is not None:
            # same month closed again: the latest range grows forward only
            latest.end_date = max(latest.end_date, last)
            return latest
        first = latest.end_date + timedelta(days=1)

    closure = MonthClosure(user_id=user_id, month_year=month_year, start_date=first, end_date=last)
    db.session.add(closure)
    return closure


def close_month(user_id: str, today: date | None = None, *, notify: bool = True) -> MonthCloseResult:
    """Archive every settled, unarchived transaction dated before today.

    Recurring templates stay live. Raises NothingToArchive when there is
    nothing to close; nothing is written in that case.
    """
    today = today or dates.today()
    rows = db.session.execute(
        select(Transaction.id, Transaction.date, Transaction.type, Transaction.amount)
        .join(Account, Account.id == Transaction.account_id)
        .where(
            Account.user_id == user_id,
            Transaction.archived.is_(False),
            Transaction.is_recurring.is_(False),
            Transaction.date < today,
        )
        .order_by(Transaction.date, Transaction.id)
    ).all()
    if not rows:
        raise NothingToArchive()

    income = sum((Decimal(r.amount) for r in rows if r.type == "income"), Decimal("0"))
    expense = sum((Decimal(r.amount) for r in rows if r.type == "expense"), Decimal("0"))

    # rows back-dated into an already closed range are archived, but that range stays put
    latest = _latest_closure(user_id)
    fresh = [r for r in rows if latest is None or r.date > latest.end_date]
    if fresh:
        closure = _advance_closure(user_id, latest, fresh[0].date, fresh[-1].date)
    else:
        closure = latest
    month_year = closure.month_year

    db.session.execute(
        update(Transaction)
        .where(Transaction.id.in_([r.id for r in rows]))
        .values(archived=True),
        execution_options={"synchronize_session": False},
    )
    db.session.commit()

    current_app.logger.info(
        "month closed user=%s month=%s range=%s..%s archived=%s",
        user_id, month_year, closure.start_date, closure.end_date, len(rows),
    )
    result = MonthCloseResult(month_year, closure.start_date, closure.end_date, len(rows), income, expense)

    if notify:
        from moneyflow.services.alerts import notify_monthly_summary
        try:
            notify_monthly_summary(user_id, month_year, income, expense)
        except Exception:
            current_app.logger.exception("monthly summary push failed for user=%s", user_id)
    return result


def close_month_for_all(today: date | None = None) -> dict:
    """CLI entry: close the month for every user holding accounts."""
    today = today or dates.today()
    user_ids = db.session.execute(select(Account.user_id).distinct()).scalars().all()
    closed = skipped = 0
    for uid in user_ids:
        try:
            close_month(uid, today)
            closed += 1
        except NothingToArchive:
            skipped += 1
    return {"closed": closed, "skipped": skipped}
