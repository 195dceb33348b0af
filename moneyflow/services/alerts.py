# moneyflow/services/alerts.py
"""Critical push alerts, each sent at most once per day per reference."""
from datetime import datetime, time, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import select

from moneyflow.extensions import db
from moneyflow.models import Account, Credit, NotificationPreference, SentNotification, Transaction
from moneyflow.services.push import default_preferences, send_push
from moneyflow.utils import dates

ICONS = {
    "negative_balance": "🔴",
    "low_balance": "⚠️",
    "recurring_due": "📅",
    "credit_due": "💳",
    "monthly_summary": "📊",
}


def preferences_for(user_id: str) -> NotificationPreference:
    """Stored preferences, or unsaved defaults."""
    return db.session.get(NotificationPreference, user_id) or default_preferences(user_id)


def was_sent_today(user_id: str, type_: str, reference_id: str, today=None) -> bool:
    since = datetime.combine(today or dates.today(), time.min)
    return db.session.execute(
        select(SentNotification.id).where(
            SentNotification.user_id == user_id,
            SentNotification.notification_type == type_,
            SentNotification.reference_id == reference_id,
            SentNotification.sent_at >= since,
        ).limit(1)
    ).first() is not None


def _notify_once(user_id: str, notification: dict, reference_id: str, today=None) -> dict:
    type_ = notification["type"]
    if was_sent_today(user_id, type_, reference_id, today):
        return {"type": type_, "success": False, "reason": "already_sent"}

    result = send_push(user_id, notification)
    if result.success:
        db.session.add(SentNotification(
            user_id=user_id, notification_type=type_, reference_id=reference_id, sent_at=dates.now(),
        ))
        db.session.commit()
    out = {"type": type_, "success": result.success}
    if result.error:
        out["reason"] = result.error
    return out


def _days_text(days: int) -> str:
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    return f"in {days} days"


def notify_negative_balance(user_id, account: Account, today=None):
    balance = float(account.initial_balance)
    return _notify_once(user_id, {
        "type": "negative_balance",
        "title": f"{ICONS['negative_balance']} Negative balance!",
        "body": f'Your account "{account.name}" is at {balance:.2f} €. Watch out for bank fees!',
        "tag": f"negative_balance_{account.id}",
        "url": "/accounts",
        "data": {"account_id": account.id, "account_name": account.name, "balance": balance},
    }, f"negative_{account.id}", today)


def notify_low_balance(user_id, account: Account, threshold: Decimal, today=None):
    balance = float(account.initial_balance)
    return _notify_once(user_id, {
        "type": "low_balance",
        "title": f"{ICONS['low_balance']} Low balance",
        "body": f'Your account "{account.name}" is down to {balance:.2f} € (threshold: {float(threshold):.2f} €)',
        "tag": f"low_balance_{account.id}",
        "url": "/accounts",
        "data": {"account_id": account.id, "balance": balance, "threshold": float(threshold)},
    }, f"low_{account.id}_{threshold}", today)


def notify_upcoming_recurring(user_id, txn: Transaction, days_until: int, today=None):
    name = txn.note or (txn.category.name if txn.category else None) or "Recurring transaction"
    when = _days_text(days_until)
    return _notify_once(user_id, {
        "type": "recurring_due",
        "title": f"{ICONS['recurring_due']} Payment due {when}",
        "body": f'"{name}" of {float(txn.amount):.2f} € will be posted {when}',
        "tag": f"recurring_{txn.id}",
        "url": "/transactions",
        "data": {"transaction_id": txn.id, "amount": float(txn.amount), "due_date": txn.date.isoformat()},
    }, f"recurring_{txn.id}_{txn.date.isoformat()}", today)


def notify_credit_due(user_id, credit: Credit, days_until: int, today=None):
    when = _days_text(days_until)
    return _notify_once(user_id, {
        "type": "credit_due",
        "title": f"{ICONS['credit_due']} Credit due {when}",
        "body": f'"{credit.title}": {float(credit.outstanding):.2f} € still outstanding',
        "tag": f"credit_{credit.id}",
        "url": "/credits",
        "data": {"credit_id": credit.id, "outstanding": float(credit.outstanding),
                 "due_date": credit.due_date.isoformat()},
    }, f"credit_{credit.id}_{credit.due_date.isoformat()}", today)


def notify_monthly_summary(user_id: str, month: str, income, expense, today=None):
    prefs = preferences_for(user_id)
    if not prefs.monthly_summary:
        return {"type": "monthly_summary", "success": False, "reason": "disabled"}

    net = Decimal(income) - Decimal(expense)
    mark = "✅" if net >= 0 else "❌"
    label = "surplus" if net >= 0 else "deficit"
    return _notify_once(user_id, {
        "type": "monthly_summary",
        "title": f"{ICONS['monthly_summary']} Summary for {month}",
        "body": f"{mark} Income: {float(income):.2f} € | Expenses: {float(expense):.2f} € | "
                f"{label}: {abs(float(net)):.2f} €",
        "tag": f"summary_{month}",
        "url": "/",
        "data": {"month": month, "income": float(income), "expense": float(expense), "balance": float(net)},
    }, f"summary_{month}", today)


def check_user_alerts(user_id: str, today=None) -> list[dict]:
    today = today or dates.today()
    prefs = preferences_for(user_id)
    threshold = Decimal(prefs.low_balance_threshold)
    results = []

    accounts = db.session.execute(select(Account).where(Account.user_id == user_id)).scalars().all()
    for account in accounts:
        balance = Decimal(account.initial_balance)
        if prefs.negative_balance and balance < 0:
            results.append(notify_negative_balance(user_id, account, today))
        elif prefs.low_balance and 0 <= balance < threshold:
            results.append(notify_low_balance(user_id, account, threshold, today))

    if prefs.upcoming_recurring:
        horizon = today + timedelta(days=int(prefs.upcoming_recurring_days))
        upcoming = db.session.execute(
            select(Transaction)
            .join(Account, Account.id == Transaction.account_id)
            .where(
                Account.user_id == user_id,
                Transaction.is_recurring.is_(True),
                Transaction.is_active.is_(True),
                Transaction.date >= today,
                Transaction.date <= horizon,
            )
            .order_by(Transaction.date)
        ).scalars().all()
        for txn in upcoming:
            results.append(notify_upcoming_recurring(user_id, txn, (txn.date - today).days, today))

    credit_horizon = today + timedelta(days=current_app.config.get("CREDIT_DUE_DAYS", 3))
    credits = db.session.execute(
        select(Credit).where(
            Credit.user_id == user_id,
            Credit.is_closed.is_(False),
            Credit.due_date.is_not(None),
            Credit.due_date >= today,
            Credit.due_date <= credit_horizon,
        )
    ).scalars().all()
    for credit in credits:
        results.append(notify_credit_due(user_id, credit, (credit.due_date - today).days, today))

    current_app.logger.info(
        "alerts user=%s checked=%s sent=%s", user_id, len(results), sum(1 for r in results if r["success"])
    )
    return results


def check_all_users(today=None) -> dict:
    user_ids = db.session.execute(select(Account.user_id).distinct()).scalars().all()
    sent = 0
    for uid in user_ids:
        sent += sum(1 for r in check_user_alerts(uid, today) if r["success"])
    return {"users": len(user_ids), "sent": sent}
