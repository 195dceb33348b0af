# moneyflow/services/accounts.py
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import select

from moneyflow.errors import ValidationError
from moneyflow.extensions import db
from moneyflow.models import Account
from moneyflow.models.finance import ACCOUNT_TYPES
from moneyflow.services.sharing import owned_account
from moneyflow.utils.payload import choice, first_of, to_bool, to_decimal


@dataclass
class AccountPatch:
    name: Optional[str] = None
    type: Optional[str] = None
    initial_balance: Optional[Decimal] = None
    exclude_from_forecast: Optional[bool] = None

    @classmethod
    def from_json(cls, data: dict) -> "AccountPatch":
        patch = cls()
        if "name" in data:
            patch.name = (data.get("name") or "").strip()
            if not patch.name:
                raise ValidationError("name cannot be empty")
        if "type" in data:
            patch.type = choice(data.get("type"), "type", ACCOUNT_TYPES)
        if any(k in data for k in ("initial_balance", "initialBalance")):
            patch.initial_balance = to_decimal(first_of(data, "initial_balance", "initialBalance"), "initial_balance")
        if any(k in data for k in ("exclude_from_forecast", "excludeFromForecast")):
            patch.exclude_from_forecast = to_bool(first_of(data, "exclude_from_forecast", "excludeFromForecast"))
        return patch

    def apply(self, account: Account) -> Account:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                setattr(account, f.name, value)
        return account


def list_accounts(user_id: str) -> list[Account]:
    return db.session.execute(
        select(Account).where(Account.user_id == user_id).order_by(Account.created_at, Account.id)
    ).scalars().all()


def create_account(user_id: str, data: dict) -> Account:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    account = Account(
        user_id=user_id,
        name=name,
        type=choice(data.get("type") or "one-off", "type", ACCOUNT_TYPES),
        initial_balance=to_decimal(
            first_of(data, "initial_balance", "initialBalance"), "initial_balance", required=False
        ) or Decimal("0"),
        exclude_from_forecast=to_bool(first_of(data, "exclude_from_forecast", "excludeFromForecast", default=False)),
    )
    db.session.add(account)
    db.session.flush()
    current_app.logger.info("account created id=%s user=%s", account.id, user_id)
    return account


def update_account(user_id: str, account_id: int, patch: AccountPatch) -> Account:
    """Direct field overwrite; a new ``initial_balance`` is a manual correction."""
    account = owned_account(user_id, account_id)
    if patch.initial_balance is not None:
        current_app.logger.info(
            "account %s balance corrected %s -> %s", account.id, account.initial_balance, patch.initial_balance
        )
    return patch.apply(account)


def account_json(account: Account) -> dict:
    return {**account.to_dict(), "current_balance": float(account.initial_balance)}
