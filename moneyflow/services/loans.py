# moneyflow/services/loans.py
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import select, update

from moneyflow.errors import NotFound, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Category, Credit, Transaction
from moneyflow.services import ledger
from moneyflow.services.sharing import owned_account
from moneyflow.utils import dates
from moneyflow.utils.payload import first_of, to_bool, to_date, to_decimal, to_int

REPAYMENT_CATEGORY_NAME = "Credit"


@dataclass
class CreditPatch:
    title: str | None = None
    note: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    outstanding: Decimal | None = None
    is_closed: bool | None = None

    @classmethod
    def from_json(cls, data: dict) -> "CreditPatch":
        patch = cls()
        if "title" in data:
            title = (data.get("title") or "").strip()
            if not title:
                raise ValidationError("title cannot be empty")
            patch.title = title
        if "note" in data:
            patch.note = data.get("note") or ""
        if "start_date" in data:
            patch.start_date = to_date(data.get("start_date"), "start_date")
        if "due_date" in data:
            patch.due_date = to_date(data.get("due_date"), "due_date")
        if "outstanding" in data:
            patch.outstanding = to_decimal(data.get("outstanding"), "outstanding")
        if "is_closed" in data:
            patch.is_closed = to_bool(data.get("is_closed"))
        return patch

    def apply(self, credit: Credit) -> Credit:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "note":
                value = value or None
            setattr(credit, f.name, value)
        return credit


def get_credit(user_id: str, credit_id: int) -> Credit:
    credit = db.session.execute(
        select(Credit).where(Credit.id == credit_id, Credit.user_id == user_id)
    ).scalar_one_or_none()
    if credit is None:
        raise NotFound("credit not found")
    return credit


def create_credit(user_id: str, data: dict) -> Credit:
    principal = to_decimal(data.get("principal"), "principal", positive=True)
    outstanding = to_decimal(data.get("outstanding"), "outstanding", required=False)

    account_id = to_int(first_of(data, "account_id", "accountId"), "account_id", required=False)
    if account_id is not None:
        owned_account(user_id, account_id)

    credit = Credit(
        user_id=user_id,
        account_id=account_id,
        title=(data.get("title") or "").strip() or "Credit",
        principal=principal,
        outstanding=principal if outstanding is None else outstanding,
        start_date=to_date(data.get("start_date"), "start_date", default=dates.today()),
        due_date=to_date(data.get("due_date"), "due_date", required=False),
        installments=to_int(data.get("installments"), "installments", required=False),
        frequency=(data.get("frequency") or "oneoff"),
        note=data.get("note") or None,
        is_closed=False,
    )
    db.session.add(credit)
    db.session.flush()
    current_app.logger.info("credit created id=%s user=%s principal=%s", credit.id, user_id, principal)
    return credit


def adjust_outstanding(credit_id: int, delta: Decimal) -> None:
    """outstanding += delta; the loan is closed at or below zero, reopened above it."""
    if not delta:
        return
    new_outstanding = Credit.outstanding + delta
    db.session.execute(
        update(Credit)
        .where(Credit.id == credit_id)
        .values(outstanding=new_outstanding, is_closed=new_outstanding <= 0)
    )


def on_repayment_deleted(txn) -> None:
    # no cap at principal: deleting a repayment always gives the full amount back
    if txn.credit_id:
        adjust_outstanding(txn.credit_id, Decimal(txn.amount))


def on_repayment_edited(credit_id: int | None, old_amount: Decimal, new_amount: Decimal) -> None:
    if credit_id:
        adjust_outstanding(credit_id, Decimal(old_amount) - Decimal(new_amount))


def repayment_category_id() -> int:
    cat_id = db.session.execute(
        select(Category.id).where(Category.name == REPAYMENT_CATEGORY_NAME, Category.type == "expense")
    ).scalar()
    if cat_id is None:
        cat_id = db.session.execute(
            select(Category.id).where(Category.type == "expense").order_by(Category.id).limit(1)
        ).scalar()
    if cat_id is None:
        raise ValidationError("no expense category available for repayments")
    return cat_id


def repay(user_id: str, credit_id: int, data: dict, today: date | None = None):
    """Record a repayment: an expense on an owned account linked to the loan."""
    today = today or dates.today()
    credit = get_credit(user_id, credit_id)
    amount = to_decimal(data.get("amount"), "amount", positive=True)
    account_id = to_int(first_of(data, "account_id", "accountId", default=credit.account_id), "account_id")
    account = owned_account(user_id, account_id)

    if credit.is_closed:
        raise ValidationError("credit is already closed")
    if amount > Decimal(credit.outstanding):
        raise ValidationError("amount exceeds the outstanding balance")

    txn = Transaction(
        account_id=account.id,
        category_id=repayment_category_id(),
        amount=amount,
        type="expense",
        date=to_date(data.get("date"), "date", default=today),
        note=data.get("note") or None,
        credit_id=credit.id,
        is_recurring=False,
        is_active=True,
        archived=False,
    )
    db.session.add(txn)
    db.session.flush()

    ledger.record_created(txn, today)
    adjust_outstanding(credit.id, -amount)
    db.session.flush()
    db.session.refresh(credit)

    current_app.logger.info(
        "repayment txn=%s credit=%s amount=%s outstanding=%s", txn.id, credit.id, amount, credit.outstanding
    )
    return txn, credit


def delete_credit(user_id: str, credit_id: int) -> None:
    credit = get_credit(user_id, credit_id)
    # detach repayments instead of deleting them; their balance effect stays
    db.session.execute(
        update(Transaction).where(Transaction.credit_id == credit.id).values(credit_id=None)
    )
    db.session.delete(credit)
