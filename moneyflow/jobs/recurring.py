# moneyflow/jobs/recurring.py
from dataclasses import dataclass, field
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy import select

from moneyflow.extensions import db
from moneyflow.models import Account, Transaction
from moneyflow.models.finance import PROCESSED
from moneyflow.services import ledger
from moneyflow.utils import dates
from moneyflow.utils.dates import last_day_of_month
from moneyflow.utils.db import run_with_retry


def next_occurrence(current: date, frequency: str | None, recurrence_day: int | None = None) -> date:
    if frequency == "daily":
        return current + timedelta(days=1)
    if frequency == "weekly":
        return current + timedelta(days=7)
    if frequency == "yearly":
        return current + relativedelta(years=1)  # Feb 29 -> Feb 28

    # monthly, and the fallback for anything unknown
    nxt = current + relativedelta(months=1)
    day = min(recurrence_day or current.day, last_day_of_month(nxt.year, nxt.month))
    return nxt.replace(day=day)


@dataclass
class RecurringRunResult:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    settled: int = 0
    results: list = field(default_factory=list)

    def to_dict(self):
        return {
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "settled": self.settled,
            "message": f"{self.processed} recurring transaction(s) processed",
            "results": self.results,
        }


def _templates_query(user_id: str | None, today: date):
    q = (
        select(Transaction)
        .join(Account, Account.id == Transaction.account_id)
        .where(
            Transaction.is_recurring.is_(True),
            Transaction.is_active.is_(True),
            Transaction.archived.is_(False),
            Transaction.date <= today,
        )
        .order_by(Transaction.date, Transaction.id)
    )
    if user_id is not None:
        q = q.where(Account.user_id == user_id)
    return q


def _already_posted(template: Transaction) -> bool:
    return db.session.execute(
        select(Transaction.id).where(
            Transaction.account_id == template.account_id,
            Transaction.category_id == template.category_id,
            Transaction.type == template.type,
            Transaction.amount == template.amount,
            Transaction.date == template.date,
            Transaction.is_recurring.is_(False),
        ).limit(1)
    ).first() is not None


def _post_and_advance(template_id: int, today: date) -> dict | None:
    """One step for one template. Returns the result row, or None if only advanced."""
    template = db.session.get(Transaction, template_id)
    posted = False

    if not _already_posted(template):
        copy = Transaction(
            account_id=template.account_id,
            category_id=template.category_id,
            amount=template.amount,
            type=template.type,
            date=template.date,
            note=f"{template.note} (recurring)" if template.note else "(recurring)",
            is_recurring=False,
            is_active=True,
            archived=False,
            source_transaction_id=template.id,
        )
        db.session.add(copy)
        db.session.flush()
        ledger.record_created(copy, today)
        posted = True

    occurred_on = template.date
    if template.recurrence_day is None and template.recurrence_frequency not in ("daily", "weekly", "yearly"):
        # rows stored before the day was pinned at creation
        template.recurrence_day = occurred_on.day
    template.last_processed_date = occurred_on
    template.date = next_occurrence(occurred_on, template.recurrence_frequency, template.recurrence_day)

    if not posted:
        current_app.logger.info(
            "recurring %s: copy for %s already exists, advanced to %s", template.id, occurred_on, template.date
        )
        return None
    return {"id": template.id, "name": template.note or "Recurring transaction", "next_date": template.date.isoformat()}


def process_recurring(user_id: str | None = None, today: date | None = None) -> RecurringRunResult:
    """Settle rows that came due, then post each due template once and advance it.

    Each template commits on its own; a failure is logged and the run goes on.
    """
    today = today or dates.today()
    run = RecurringRunResult()

    settled = run_with_retry(db.session, lambda: ledger.settle_due(user_id, today))
    run.settled = settled["transactions"] + settled["transfers"]

    templates = db.session.execute(_templates_query(user_id, today)).scalars().all()
    due_ids = []
    for t in templates:
        if t.recurrence_state(today) == PROCESSED:
            run.skipped += 1
        else:
            due_ids.append(t.id)

    for template_id in due_ids:
        try:
            row = run_with_retry(db.session, lambda: _post_and_advance(template_id, today))
        except Exception:
            db.session.rollback()
            run.failed += 1
            current_app.logger.exception("recurring %s failed", template_id)
            continue
        if row is None:
            run.skipped += 1
        else:
            run.processed += 1
            run.results.append(row)

    current_app.logger.info(
        "process_recurring user=%s processed=%s skipped=%s failed=%s",
        user_id or "*", run.processed, run.skipped, run.failed,
    )
    return run


def preview_recurring(user_id: str, today: date | None = None) -> dict:
    today = today or dates.today()
    templates = [
        t for t in db.session.execute(_templates_query(user_id, today)).scalars().all()
        if t.recurrence_state(today) != PROCESSED
    ]
    return {"pending": len(templates), "transactions": [t.to_dict() for t in templates]}
