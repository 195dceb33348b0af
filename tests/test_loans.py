"""Loan tracker: outstanding balance driven by linked repayment transactions."""

from datetime import date
from decimal import Decimal

import pytest

from factories import balance_of, make_account, make_category
from moneyflow.errors import NotFound, ValidationError
from moneyflow.extensions import db
from moneyflow.models import Credit, Transaction
from moneyflow.services import loans
from moneyflow.services.transactions import TransactionPatch, delete_transaction, update_transaction

TODAY = date(2025, 3, 15)


@pytest.fixture
def world(ctx):
    account = make_account("u1", "2000")
    make_category("Groceries", "expense")
    credit_cat = make_category("Credit", "expense")
    credit = loans.create_credit("u1", {"principal": "1000", "title": "Car", "account_id": account.id})
    db.session.commit()
    return account, credit, credit_cat


def _credit(credit_id):
    db.session.expire_all()
    return db.session.get(Credit, credit_id)


def _repay(credit, amount, account=None):
    payload = {"amount": amount, "date": "2025-03-10"}
    if account is not None:
        payload["account_id"] = account.id
    txn, _ = loans.repay("u1", credit.id, payload, today=TODAY)
    db.session.commit()
    return txn


def test_create_defaults_outstanding_to_principal(world):
    _, credit, _ = world
    assert credit.outstanding == Decimal("1000")
    assert credit.is_closed is False
    assert credit.frequency == "oneoff"


def test_create_rejects_non_positive_principal(ctx):
    with pytest.raises(ValidationError):
        loans.create_credit("u1", {"principal": "0"})


def test_repay_reduces_outstanding_and_balance(world):
    account, credit, credit_cat = world
    txn = _repay(credit, "200")

    assert txn.credit_id == credit.id
    assert txn.category_id == credit_cat.id
    assert txn.type == "expense"
    assert _credit(credit.id).outstanding == Decimal("800")
    assert balance_of(account.id) == Decimal("1800")


def test_full_repayment_closes_the_loan(world):
    _, credit, _ = world
    _repay(credit, "1000")
    closed = _credit(credit.id)
    assert closed.outstanding == Decimal("0")
    assert closed.is_closed is True


def test_overpayment_is_rejected(world):
    account, credit, _ = world
    with pytest.raises(ValidationError):
        loans.repay("u1", credit.id, {"amount": "1000.01"}, today=TODAY)
    db.session.rollback()
    assert balance_of(account.id) == Decimal("2000")


def test_repay_on_someone_elses_account_is_not_found(world):
    _, credit, _ = world
    foreign = make_account("u2", "10")
    with pytest.raises(NotFound):
        loans.repay("u1", credit.id, {"amount": "10", "account_id": foreign.id}, today=TODAY)


def test_deleting_repayment_adds_amount_back_without_cap(world):
    account, credit, _ = world
    # a linked expense recorded outside the repay flow: outstanding stays at 1000
    txn = Transaction(
        account_id=account.id, category_id=world[2].id, amount=Decimal("200"), type="expense",
        date=date(2025, 3, 1), credit_id=credit.id, is_recurring=False, is_active=True, archived=False,
    )
    db.session.add(txn)
    db.session.commit()

    delete_transaction("u1", txn.id)
    db.session.commit()

    assert _credit(credit.id).outstanding == Decimal("1200")


def test_deleting_repayment_reopens_closed_loan(world):
    _, credit, _ = world
    txn = _repay(credit, "1000")
    assert _credit(credit.id).is_closed is True

    delete_transaction("u1", txn.id)
    db.session.commit()

    reopened = _credit(credit.id)
    assert reopened.outstanding == Decimal("1000")
    assert reopened.is_closed is False


def test_editing_repayment_amount_adjusts_outstanding(world):
    _, credit, _ = world
    txn = _repay(credit, "300")

    update_transaction("u1", txn.id, TransactionPatch(amount=Decimal("1000")), today=TODAY)
    db.session.commit()
    edited = _credit(credit.id)
    assert edited.outstanding == Decimal("0")
    assert edited.is_closed is True

    update_transaction("u1", txn.id, TransactionPatch(amount=Decimal("100")), today=TODAY)
    db.session.commit()
    assert _credit(credit.id).outstanding == Decimal("900")
    assert _credit(credit.id).is_closed is False


def test_patch_is_direct_overwrite(world):
    _, credit, _ = world
    patch = loans.CreditPatch.from_json({"outstanding": "5", "is_closed": True, "title": "Car loan"})
    patch.apply(_credit(credit.id))
    db.session.commit()

    updated = _credit(credit.id)
    assert (updated.outstanding, updated.is_closed, updated.title) == (Decimal("5"), True, "Car loan")


def test_delete_credit_detaches_transactions(world):
    account, credit, _ = world
    txn = _repay(credit, "100")

    loans.delete_credit("u1", credit.id)
    db.session.commit()

    assert db.session.get(Credit, credit.id) is None
    kept = db.session.get(Transaction, txn.id)
    assert kept is not None and kept.credit_id is None
    assert balance_of(account.id) == Decimal("1900")
