# moneyflow/services/transfers.py
from datetime import date

from flask import current_app
from sqlalchemy import func, select

from moneyflow.errors import Forbidden, NotFound, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account, Transfer
from moneyflow.services import ledger
from moneyflow.utils import dates
from moneyflow.utils.payload import first_of, to_date, to_decimal, to_int


def list_transfers(user_id: str) -> list[Transfer]:
    return db.session.execute(
        select(Transfer).where(Transfer.user_id == user_id).order_by(Transfer.date.desc(), Transfer.id.desc())
    ).scalars().all()


def create_transfer(user_id: str, data: dict, today: date | None = None) -> Transfer:
    today = today or dates.today()
    from_id = to_int(first_of(data, "from_account_id", "fromAccountId"), "from_account_id", required=False)
    to_id = to_int(first_of(data, "to_account_id", "toAccountId"), "to_account_id", required=False)
    if from_id is None or to_id is None:
        raise ValidationError("source and destination accounts are required")
    if from_id == to_id:
        raise ValidationError("source and destination accounts must differ")
    amount = to_decimal(data.get("amount"), "amount", positive=True)

    owned = db.session.execute(
        select(func.count(Account.id)).where(Account.id.in_([from_id, to_id]), Account.user_id == user_id)
    ).scalar()
    if owned != 2:
        raise Forbidden("invalid or unauthorized accounts")

    transfer = Transfer(
        user_id=user_id,
        from_account_id=from_id,
        to_account_id=to_id,
        amount=amount,
        date=to_date(data.get("date"), "date", default=today),
        note=data.get("note") or None,
    )
    db.session.add(transfer)
    db.session.flush()
    moved = ledger.record_transfer(transfer, today)
    current_app.logger.info(
        "transfer %s: %s -> %s amount=%s applied=%s", transfer.id, from_id, to_id, amount, moved
    )
    return transfer


def delete_transfer(user_id: str, transfer_id: int) -> None:
    transfer = db.session.get(Transfer, transfer_id)
    if transfer is None or transfer.user_id != user_id:
        raise NotFound("transfer not found")
    ledger.record_transfer(transfer, reverse=True)
    db.session.delete(transfer)
    current_app.logger.info("transfer %s deleted", transfer_id)
