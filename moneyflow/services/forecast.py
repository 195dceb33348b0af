# moneyflow/services/forecast.py
"""Forecast figures: where the money of a period goes, per category.

Totals only look at accounts not flagged ``exclude_from_forecast``. Expenses
are split into fixed (housing, insurance, subscriptions...) and variable
spending; the variable part is what a budget can act on.

The period comes from month closures:

- a closed month covers exactly its closure range;
- an open month covers every unarchived row from the day after the previous
  month's closure, future rows included unless asked otherwise.
"""
import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta
from flask import current_app
from sqlalchemy import func, select

from moneyflow.errors import Forbidden, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account, Category, MonthClosure, Transaction
from moneyflow.services.sharing import share_between
from moneyflow.utils import dates
from moneyflow.utils.dates import month_key
from moneyflow.utils.payload import to_decimal

FIXED_KEYWORDS = (
    "housing", "rent", "allowance", "insurance", "health", "subscription",
    "logement", "allocation", "assurance", "santé", "abonnement",
)
UNCATEGORIZED = "Uncategorized"
ZERO = Decimal("0")
CENT = Decimal("0.01")
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_fixed_category(name: str | None) -> bool:
    lowered = (name or "").lower()
    return any(k in lowered for k in FIXED_KEYWORDS)


def _money(value: Decimal) -> float:
    return float(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass
class ForecastPeriod:
    start: date | None = None
    end: date | None = None
    closed: bool = False

    def meta(self) -> dict:
        return {
            "start_date": self.start.isoformat() if self.start else None,
            "end_date": self.end.isoformat() if self.end else None,
            "use_non_archived": not self.closed,
        }


def _closure(user_id: str, month_year: str) -> MonthClosure | None:
    return db.session.execute(
        select(MonthClosure).where(MonthClosure.user_id == user_id, MonthClosure.month_year == month_year)
    ).scalar_one_or_none()


def forecast_period(user_id: str, selected_month: str | None = None, *, since_latest_closure: bool = False) -> ForecastPeriod:
    if selected_month:
        if not MONTH_RE.match(selected_month):
            raise ValidationError("selected_month must look like YYYY-MM")
        closure = _closure(user_id, selected_month)
        if closure is not None:
            return ForecastPeriod(closure.start_date, closure.end_date, closed=True)

        year, month = (int(p) for p in selected_month.split("-"))
        previous = _closure(user_id, month_key(date(year, month, 1) - relativedelta(months=1)))
        if previous is not None:
            return ForecastPeriod(start=previous.end_date + timedelta(days=1))
        return ForecastPeriod()

    if since_latest_closure:
        latest = db.session.execute(
            select(func.max(MonthClosure.end_date)).where(MonthClosure.user_id == user_id)
        ).scalar()
        if latest is not None:
            return ForecastPeriod(start=latest + timedelta(days=1))
    return ForecastPeriod()


def _period_rows(account_ids: list[int], period: ForecastPeriod, include_future: bool, today: date):
    q = (
        select(Transaction.amount, Transaction.type, Category.name, Category.type.label("category_type"))
        .outerjoin(Category, Category.id == Transaction.category_id)
        .where(Transaction.account_id.in_(account_ids))
    )
    if period.closed:
        q = q.where(
            Transaction.date >= period.start,
            Transaction.date <= period.end,
            Transaction.is_recurring.is_(False),
        )
    else:
        # open templates stand for their next occurrence
        q = q.where(Transaction.archived.is_(False))
        if not include_future:
            q = q.where(Transaction.date <= today)
        if period.start is not None:
            q = q.where(Transaction.date >= period.start)
    return db.session.execute(q).all()


def _category_totals(sums: dict, months_window: int, is_fixed: bool) -> list[dict]:
    rows = [
        {
            "category": name,
            "total": _money(total),
            "avg_per_month": _money(total / months_window),
            "is_fixed": is_fixed,
        }
        for name, total in sums.items()
    ]
    rows.sort(key=lambda r: r["total"], reverse=True)
    return rows


def forecast_totals(
    user_id: str,
    selected_month: str | None = None,
    months_window: int = 1,
    include_future: bool = True,
    today: date | None = None,
    *,
    since_latest_closure: bool = False,
    require_accounts: bool = True,
) -> dict:
    """Income, fixed and variable spending of the period, plus account balances.

    With no account left in the forecast this is a 400, or an empty result
    when ``require_accounts`` is off.
    """
    today = today or dates.today()
    if months_window < 1:
        raise ValidationError("months_window must be at least 1")

    accounts = db.session.execute(select(Account).where(Account.user_id == user_id)).scalars().all()
    included = [a for a in accounts if not a.exclude_from_forecast]
    excluded = [a for a in accounts if a.exclude_from_forecast]
    balance_included = sum((Decimal(a.initial_balance) for a in included), ZERO)
    balance_excluded = sum((Decimal(a.initial_balance) for a in excluded), ZERO)

    period = forecast_period(user_id, selected_month, since_latest_closure=since_latest_closure)
    meta = {"months_window": months_window, **period.meta(), "excluded_accounts_count": len(excluded)}

    if not included:
        if require_accounts:
            raise ValidationError("no account is included in the forecast")
        return {"totals": [], "fixed_totals": [], "summary": None, "meta": meta}

    income = ZERO
    fixed, variable = {}, {}
    for amount, type_, category_name, category_type in _period_rows(
        [a.id for a in included], period, include_future, today
    ):
        value = abs(Decimal(amount))
        if type_ == "income":
            income += value
            continue
        if type_ != "expense" and category_type != "expense":
            continue
        name = category_name or UNCATEGORIZED
        bucket = fixed if is_fixed_category(name) else variable
        bucket[name] = bucket.get(name, ZERO) + value

    total_fixed = sum(fixed.values(), ZERO)
    total_variable = sum(variable.values(), ZERO)
    current_app.logger.debug(
        "forecast user=%s period=%s..%s income=%s fixed=%s variable=%s",
        user_id, period.start, period.end, income, total_fixed, total_variable,
    )

    return {
        "totals": _category_totals(variable, months_window, False),
        "fixed_totals": _category_totals(fixed, months_window, True),
        "summary": {
            "total_income": _money(income),
            "total_fixed_expenses": _money(total_fixed),
            "total_variable_expenses": _money(total_variable),
            "available_for_variable": _money(income - total_fixed),
            "potential_savings": _money(income - total_fixed - total_variable),
            "total_balance_included": _money(balance_included),
            "total_balance_excluded": _money(balance_excluded),
            "total_balance_all": _money(balance_included + balance_excluded),
        },
        "meta": meta,
    }


def shared_forecast_totals(viewer_id: str, owner_id: str, **kwargs) -> dict:
    """The owner's open-period forecast, for someone they shared their dashboard with."""
    if not owner_id:
        raise ValidationError("owner_user_id is required")
    if share_between(owner_id, viewer_id) is None:
        raise Forbidden("no access to this dashboard")
    return forecast_totals(owner_id, since_latest_closure=True, require_accounts=False, **kwargs)


def calc_budgets(transactions: list, months_window: int = 3, today: date | None = None) -> list[dict]:
    """Average monthly spending per category over a caller-supplied list of rows.

    The window runs from the first day of the month ``months_window - 1``
    months back up to today. Rows without a type count as expenses.
    """
    today = today or dates.today()
    if not isinstance(transactions, list) or not transactions:
        raise ValidationError("no transactions supplied")
    if months_window < 1:
        raise ValidationError("months_window must be at least 1")
    start = today.replace(day=1) - relativedelta(months=months_window - 1)

    sums = {}
    for row in transactions:
        if not isinstance(row, dict):
            continue
        try:
            when = dates.parse_date(row.get("date"))
        except (ValueError, OverflowError):
            continue
        if when is None or not start <= when <= today:
            continue
        amount = to_decimal(row.get("amount"), "amount", required=False) or ZERO
        type_ = str(row.get("type") or "").lower()
        if not (type_ == "expense" or amount < 0 or (not type_ and amount > 0)):
            continue
        name = row.get("category") or UNCATEGORIZED
        sums[name] = sums.get(name, ZERO) + abs(amount)

    budgets = [
        {"category": name, "total": _money(total), "avg_per_month": _money(total / months_window)}
        for name, total in sums.items()
    ]
    budgets.sort(key=lambda b: b["total"], reverse=True)
    return budgets


def category_usage(user_id: str, type_: str, limit: int = 3) -> list[dict]:
    """The categories ``user_id`` reaches for most, most used first."""
    uses = func.count(Transaction.id)
    last_used = func.max(Transaction.date)
    rows = db.session.execute(
        select(Transaction.category_id, uses, last_used)
        .join(Account, Account.id == Transaction.account_id)
        .where(Account.user_id == user_id, Transaction.type == type_)
        .group_by(Transaction.category_id)
        .order_by(uses.desc(), last_used.desc())
        .limit(limit)
    ).all()
    return [
        {"category_id": cid, "usage_count": count, "last_used_date": last.isoformat() if last else None}
        for cid, count, last in rows
    ]
