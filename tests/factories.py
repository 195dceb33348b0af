"""Row builders for service-level tests; call inside an app context."""

from decimal import Decimal

from config import TestConfig
from moneyflow.extensions import db
from moneyflow.models import Account, Category, Transaction, User
from moneyflow.security import make_identity_token


def make_user(user_id, username=None):
    user = User(id=user_id, username=username or user_id)
    db.session.add(user)
    db.session.commit()
    return user


def make_account(user_id, balance="0", name="Main"):
    account = Account(user_id=user_id, name=name, type="one-off", initial_balance=Decimal(balance))
    db.session.add(account)
    db.session.commit()
    return account


def make_category(name="Groceries", type_="expense"):
    category = Category(name=name, type=type_)
    db.session.add(category)
    db.session.commit()
    return category


def make_template(account, category, amount, when, frequency="monthly", recurrence_day=None,
                  type_="expense", note="Rent"):
    txn = Transaction(
        account_id=account.id, category_id=category.id, amount=Decimal(amount), type=type_, date=when,
        note=note, is_recurring=True, recurrence_frequency=frequency, recurrence_day=recurrence_day,
        is_active=True, archived=False,
    )
    db.session.add(txn)
    db.session.commit()
    return txn


def balance_of(account_id):
    db.session.expire_all()
    return db.session.get(Account, account_id).initial_balance


def auth_headers(user_id):
    token = make_identity_token(user_id, secret=TestConfig.IDENTITY_SECRET)
    return {"Authorization": f"Bearer {token}"}
