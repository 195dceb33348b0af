# moneyflow/services/ledger.py
"""Running-balance bookkeeping.

Every account carries a single stored balance (``Account.initial_balance``).
Rows dated on or before today move it; future rows wait until they come due
and are picked up by ``settle_due``. Recurring templates never move it
themselves: the copies the recurring processor posts do.

Each row records in ``balance_applied`` whether its amount is currently in the
stored balance, and reversals only ever undo what that flag says was applied.

All adjustments are issued as ``balance = balance + :delta`` inside the
caller's transaction, so concurrent requests cannot lose each other's update.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import select, update

from moneyflow.extensions import db
from moneyflow.models import Account, Transaction, Transfer
from moneyflow.utils import dates

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class LedgerEntry:
    """The balance-relevant part of a transaction, frozen before an edit."""

    account_id: int
    amount: Decimal
    type: str
    date: date
    is_recurring: bool = False
    applied: bool = False

    @classmethod
    def of(cls, txn) -> "LedgerEntry":
        return cls(
            account_id=txn.account_id,
            amount=Decimal(txn.amount),
            type=txn.type,
            date=txn.date,
            is_recurring=bool(txn.is_recurring),
            applied=bool(txn.balance_applied),
        )


def signed_amount(amount, type_: str) -> Decimal:
    amount = Decimal(amount)
    if type_ == "income":
        return amount
    if type_ == "expense":
        return -amount
    return ZERO


def is_settled(entry, today: date) -> bool:
    return not getattr(entry, "is_recurring", False) and entry.date <= today


def effect(entry, today: date | None = None) -> Decimal:
    """Signed contribution ``entry`` should have on its account as of ``today``."""
    today = today or dates.today()
    if not is_settled(entry, today):
        return ZERO
    return signed_amount(entry.amount, entry.type)


def applied_effect(entry: LedgerEntry) -> Decimal:
    """Signed contribution ``entry`` actually has in the stored balance."""
    return signed_amount(entry.amount, entry.type) if entry.applied else ZERO


def apply_delta(account_id: int, delta: Decimal) -> None:
    if not delta:
        return
    db.session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(initial_balance=Account.initial_balance + delta)
    )
    current_app.logger.debug("ledger: account=%s delta=%s", account_id, delta)


def record_created(txn, today: date | None = None) -> dict:
    today = today or dates.today()
    delta = effect(txn, today)
    txn.balance_applied = is_settled(txn, today)
    apply_delta(txn.account_id, delta)
    return {txn.account_id: delta} if delta else {}


def record_edited(before: LedgerEntry, txn, today: date | None = None) -> dict:
    """Move the balance from what a row contributed to what it contributes now.

    When the account changed, the old account only loses the old effect and the
    new account only gains the new one.
    """
    today = today or dates.today()
    old = applied_effect(before)
    new = effect(txn, today)
    txn.balance_applied = is_settled(txn, today)

    if before.account_id == txn.account_id:
        delta = new - old
        apply_delta(txn.account_id, delta)
        return {txn.account_id: delta} if delta else {}

    changes = {}
    if old:
        apply_delta(before.account_id, -old)
        changes[before.account_id] = -old
    if new:
        apply_delta(txn.account_id, new)
        changes[txn.account_id] = new
    return changes


def record_deleted(txn) -> dict:
    delta = -applied_effect(LedgerEntry.of(txn))
    apply_delta(txn.account_id, delta)
    txn.balance_applied = False
    return {txn.account_id: delta} if delta else {}


def record_transfer(transfer, today: date | None = None, *, reverse: bool = False) -> bool:
    """Debit source / credit destination for a due transfer, or undo an applied one."""
    amount = Decimal(transfer.amount)
    if reverse:
        if not transfer.balance_applied:
            return False
        amount = -amount
        transfer.balance_applied = False
    else:
        if transfer.date > (today or dates.today()):
            return False
        transfer.balance_applied = True
    apply_delta(transfer.from_account_id, -amount)
    apply_delta(transfer.to_account_id, amount)
    return True


def _claim(model, row_id: int) -> bool:
    """Flip ``balance_applied`` on one row; False if someone else already did."""
    res = db.session.execute(
        update(model)
        .where(model.id == row_id, model.balance_applied.is_(False))
        .values(balance_applied=True),
        execution_options={"synchronize_session": False},
    )
    return res.rowcount == 1


def settle_due(user_id: str | None = None, today: date | None = None) -> dict:
    """Apply every row whose date has arrived since it was recorded. Does not commit."""
    today = today or dates.today()

    txn_q = (
        select(Transaction.id, Transaction.account_id, Transaction.amount, Transaction.type)
        .join(Account, Account.id == Transaction.account_id)
        .where(
            Transaction.is_recurring.is_(False),
            Transaction.balance_applied.is_(False),
            Transaction.date <= today,
        )
    )
    transfer_q = select(Transfer.id, Transfer.from_account_id, Transfer.to_account_id, Transfer.amount).where(
        Transfer.balance_applied.is_(False),
        Transfer.date <= today,
    )
    if user_id is not None:
        txn_q = txn_q.where(Account.user_id == user_id)
        transfer_q = transfer_q.where(Transfer.user_id == user_id)

    settled = {"transactions": 0, "transfers": 0}
    for row in db.session.execute(txn_q).all():
        if _claim(Transaction, row.id):
            apply_delta(row.account_id, signed_amount(row.amount, row.type))
            settled["transactions"] += 1
    for row in db.session.execute(transfer_q).all():
        if _claim(Transfer, row.id):
            amount = Decimal(row.amount)
            apply_delta(row.from_account_id, -amount)
            apply_delta(row.to_account_id, amount)
            settled["transfers"] += 1

    if settled["transactions"] or settled["transfers"]:
        current_app.logger.info("settled user=%s %s", user_id or "*", settled)
    return settled
