# moneyflow/services/transactions.py
"""Create / edit / delete of transactions, for owners and shared editors alike.

Each function stages the row write plus its balance (and loan) adjustments on
the session; the caller commits once.
"""
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import select

from moneyflow.errors import NotFound, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account, Category, Transaction
from moneyflow.models.finance import RECURRENCE_FREQUENCIES, TRANSACTION_TYPES
from moneyflow.services import ledger, loans
from moneyflow.services.sharing import load_editable_account
from moneyflow.utils import dates
from moneyflow.utils.payload import choice, first_of, to_bool, to_date, to_decimal, to_int


def _category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise ValidationError("unknown category")
    return category


def _recurrence_day(value):
    day = to_int(value, "recurrence_day", required=False)
    if day is not None and not 1 <= day <= 31:
        raise ValidationError("recurrence_day must be between 1 and 31")
    return day


def _pin_recurrence_day(txn: Transaction) -> None:
    """Monthly templates remember their day so a short month does not drag them back."""
    if txn.is_recurring and txn.recurrence_frequency == "monthly" and txn.recurrence_day is None:
        txn.recurrence_day = txn.date.day


@dataclass
class TransactionPatch:
    """Fields present in an edit request; ``None`` means "leave unchanged"."""

    account_id: Optional[int] = None
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None
    type: Optional[str] = None
    date: Optional[date] = None
    note: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_frequency: Optional[str] = None
    recurrence_day: Optional[int] = None
    is_active: Optional[bool] = None

    @classmethod
    def from_json(cls, data: dict) -> "TransactionPatch":
        patch = cls()
        if any(k in data for k in ("account_id", "accountId")):
            patch.account_id = to_int(first_of(data, "account_id", "accountId"), "account_id")
        if any(k in data for k in ("category_id", "categoryId")):
            patch.category_id = to_int(first_of(data, "category_id", "categoryId"), "category_id")
        if "amount" in data:
            patch.amount = to_decimal(data["amount"], "amount", positive=True)
        if "type" in data:
            patch.type = choice(data["type"], "type", TRANSACTION_TYPES)
        if "date" in data:
            patch.date = to_date(data["date"], "date")
        if "note" in data:
            patch.note = data["note"] or ""
        if any(k in data for k in ("is_recurring", "isRecurring")):
            patch.is_recurring = to_bool(first_of(data, "is_recurring", "isRecurring"))
        if any(k in data for k in ("recurrence_frequency", "recurrenceFrequency")):
            patch.recurrence_frequency = choice(
                first_of(data, "recurrence_frequency", "recurrenceFrequency"),
                "recurrence_frequency", RECURRENCE_FREQUENCIES,
            )
        if any(k in data for k in ("recurrence_day", "recurrenceDay")):
            patch.recurrence_day = _recurrence_day(first_of(data, "recurrence_day", "recurrenceDay"))
        if any(k in data for k in ("is_active", "isActive")):
            patch.is_active = to_bool(first_of(data, "is_active", "isActive"))
        return patch

    def apply(self, txn: Transaction) -> Transaction:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "note":
                value = value or None
            setattr(txn, f.name, value)
        return txn


def list_transactions(user_id: str, args, today: date | None = None) -> list[Transaction]:
    """The user's own transactions, newest first; future rows only on request."""
    today = today or dates.today()
    q = (
        select(Transaction)
        .join(Account, Account.id == Transaction.account_id)
        .where(Account.user_id == user_id)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
    )
    account_id = to_int(first_of(args, "account_id", "accountId"), "account_id", required=False)
    if account_id is not None:
        q = q.where(Transaction.account_id == account_id)
    category_id = to_int(first_of(args, "category_id", "categoryId"), "category_id", required=False)
    if category_id is not None:
        q = q.where(Transaction.category_id == category_id)
    if args.get("type"):
        q = q.where(Transaction.type == choice(args.get("type"), "type", TRANSACTION_TYPES))
    start = to_date(first_of(args, "start", "start_date", "startDate"), "start", required=False)
    if start:
        q = q.where(Transaction.date >= start)
    end = to_date(first_of(args, "end", "end_date", "endDate"), "end", required=False)
    if end:
        q = q.where(Transaction.date <= end)
    if not to_bool(first_of(args, "include_upcoming", "includeUpcoming", default="false")):
        q = q.where(Transaction.date <= today)
    return db.session.execute(q).scalars().all()


def create_transaction(actor_id: str, data: dict, today: date | None = None) -> Transaction:
    today = today or dates.today()
    account_id = to_int(first_of(data, "account_id", "accountId"), "account_id")
    category_id = to_int(first_of(data, "category_id", "categoryId"), "category_id")
    amount = to_decimal(data.get("amount"), "amount", positive=True)
    type_ = choice(data.get("type"), "type", TRANSACTION_TYPES)
    when = to_date(data.get("date"), "date")
    is_recurring = to_bool(first_of(data, "is_recurring", "isRecurring", default=False))
    frequency = choice(
        first_of(data, "recurrence_frequency", "recurrenceFrequency"),
        "recurrence_frequency", RECURRENCE_FREQUENCIES, required=False,
    )
    if is_recurring and frequency is None:
        frequency = "monthly"

    account = load_editable_account(actor_id, account_id)
    _category(category_id)

    txn = Transaction(
        account_id=account.id,
        category_id=category_id,
        amount=amount,
        type=type_,
        date=when,
        note=data.get("note") or None,
        is_recurring=is_recurring,
        recurrence_frequency=frequency,
        recurrence_day=_recurrence_day(first_of(data, "recurrence_day", "recurrenceDay")),
        is_active=to_bool(first_of(data, "is_active", "isActive", default=True)),
        archived=False,
    )
    _pin_recurrence_day(txn)
    db.session.add(txn)
    db.session.flush()
    ledger.record_created(txn, today)

    current_app.logger.info(
        "transaction created id=%s account=%s %s %s on %s by %s",
        txn.id, account.id, type_, amount, when, actor_id,
    )
    return txn


def _editable_transaction(actor_id: str, txn_id: int) -> Transaction:
    txn = db.session.get(Transaction, txn_id)
    if txn is None:
        raise NotFound("transaction not found")
    load_editable_account(actor_id, txn.account_id)
    return txn


def update_transaction(actor_id: str, txn_id: int, patch: TransactionPatch, today: date | None = None) -> Transaction:
    today = today or dates.today()
    txn = _editable_transaction(actor_id, txn_id)
    before = ledger.LedgerEntry.of(txn)

    if patch.account_id is not None and patch.account_id != txn.account_id:
        load_editable_account(actor_id, patch.account_id)
    if patch.category_id is not None:
        _category(patch.category_id)

    patch.apply(txn)
    if txn.is_recurring and not txn.recurrence_frequency:
        txn.recurrence_frequency = "monthly"
    if patch.date is not None and patch.recurrence_day is None:
        # a moved template re-anchors on its new day
        txn.recurrence_day = None
    _pin_recurrence_day(txn)
    db.session.flush()

    ledger.record_edited(before, txn, today)
    if txn.credit_id and Decimal(txn.amount) != before.amount:
        loans.on_repayment_edited(txn.credit_id, before.amount, Decimal(txn.amount))

    current_app.logger.info("transaction updated id=%s by %s", txn.id, actor_id)
    return txn


def delete_transaction(actor_id: str, txn_id: int) -> None:
    txn = _editable_transaction(actor_id, txn_id)

    ledger.record_deleted(txn)
    loans.on_repayment_deleted(txn)
    db.session.delete(txn)
    current_app.logger.info("transaction deleted id=%s by %s", txn_id, actor_id)
