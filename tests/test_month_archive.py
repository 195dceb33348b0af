"""Month closing: archiving settled rows and recording the closure range."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from factories import make_account, make_category, make_template
from moneyflow.errors import NothingToArchive
from moneyflow.extensions import db
from moneyflow.jobs import month_archive
from moneyflow.jobs.month_archive import close_month
from moneyflow.models import MonthClosure, Transaction

TODAY = date(2025, 3, 15)


def _txn(account, category, when, amount="10", type_="expense"):
    txn = Transaction(
        account_id=account.id, category_id=category.id, amount=Decimal(amount), type=type_, date=when,
        is_recurring=False, is_active=True, archived=False,
    )
    db.session.add(txn)
    db.session.commit()
    return txn


@pytest.fixture
def world(ctx, monkeypatch):
    sent = []
    monkeypatch.setattr(
        "moneyflow.services.alerts.notify_monthly_summary",
        lambda user_id, month, income, expense: sent.append((user_id, month, income, expense)),
    )
    account = make_account("u1", "0")
    category = make_category()
    return account, category, sent


def test_nothing_to_archive_changes_nothing(world):
    account, category, sent = world
    _txn(account, category, TODAY)
    make_template(account, category, "5", date(2025, 3, 1))

    with pytest.raises(NothingToArchive):
        close_month("u1", today=TODAY)

    assert db.session.execute(select(MonthClosure)).scalars().all() == []
    assert db.session.execute(select(Transaction).where(Transaction.archived.is_(True))).first() is None
    assert sent == []


def test_archives_past_rows_and_records_closure(world):
    account, category, sent = world
    a = _txn(account, category, date(2025, 2, 3))
    b = _txn(account, category, date(2025, 3, 14), amount="2500", type_="income")
    today_row = _txn(account, category, TODAY)
    template = make_template(account, category, "700", date(2025, 2, 1))

    result = close_month("u1", today=TODAY)

    assert result.month_year == "2025-02"
    assert (result.start_date, result.end_date) == (date(2025, 2, 3), date(2025, 3, 14))
    assert result.archived == 2
    assert (result.income, result.expense) == (Decimal("2500"), Decimal("10"))

    archived = {t.id: t.archived for t in db.session.execute(select(Transaction)).scalars()}
    assert archived[a.id] and archived[b.id]
    assert not archived[today_row.id]
    assert not archived[template.id]

    closure = db.session.execute(select(MonthClosure)).scalar_one()
    assert (closure.user_id, closure.month_year) == ("u1", "2025-02")
    assert sent == [("u1", "2025-02", Decimal("2500"), Decimal("10"))]


def _closures():
    return db.session.execute(select(MonthClosure).order_by(MonthClosure.end_date)).scalars().all()


def _assert_disjoint(closures):
    for earlier, later in zip(closures, closures[1:]):
        assert earlier.end_date < later.start_date


def test_back_dated_rows_never_widen_a_closed_range(world):
    account, category, _ = world
    db.session.add(MonthClosure(
        user_id="u1", month_year="2025-02", start_date=date(2025, 2, 1), end_date=date(2025, 2, 28),
    ))
    db.session.commit()
    late = _txn(account, category, date(2025, 2, 10))
    _txn(account, category, date(2025, 3, 5))

    result = close_month("u1", today=TODAY)

    feb, mar = _closures()
    assert (feb.month_year, feb.start_date, feb.end_date) == ("2025-02", date(2025, 2, 1), date(2025, 2, 28))
    assert (mar.month_year, mar.start_date, mar.end_date) == ("2025-03", date(2025, 3, 1), date(2025, 3, 5))
    assert (result.month_year, result.archived) == ("2025-03", 2)
    assert db.session.get(Transaction, late.id).archived is True


def test_closing_the_same_month_again_extends_forward(world):
    account, category, _ = world
    _txn(account, category, date(2025, 3, 2))
    close_month("u1", today=date(2025, 3, 5))
    _txn(account, category, date(2025, 3, 9))

    close_month("u1", today=TODAY)

    closure = db.session.execute(select(MonthClosure)).scalar_one()
    assert (closure.start_date, closure.end_date) == (date(2025, 3, 2), date(2025, 3, 9))


def test_successive_closures_stay_disjoint(world):
    account, category, _ = world
    _txn(account, category, date(2025, 9, 3))
    _txn(account, category, date(2025, 9, 28))
    close_month("u1", today=date(2025, 10, 1))
    _txn(account, category, date(2025, 10, 4))
    _txn(account, category, date(2025, 10, 30))
    close_month("u1", today=date(2025, 11, 1))

    _txn(account, category, date(2025, 9, 20))
    _txn(account, category, date(2025, 11, 5))
    result = close_month("u1", today=date(2025, 11, 10))

    closures = _closures()
    assert [(c.month_year, c.start_date, c.end_date) for c in closures] == [
        ("2025-09", date(2025, 9, 3), date(2025, 9, 28)),
        ("2025-10", date(2025, 9, 29), date(2025, 10, 30)),
        ("2025-11", date(2025, 10, 31), date(2025, 11, 5)),
    ]
    _assert_disjoint(closures)
    assert result.archived == 2
    assert db.session.execute(select(Transaction).where(Transaction.archived.is_(False))).first() is None


def test_only_back_dated_rows_reports_latest_closure(world):
    account, category, _ = world
    _txn(account, category, date(2025, 3, 2))
    close_month("u1", today=date(2025, 3, 5))
    _txn(account, category, date(2025, 3, 1))

    result = close_month("u1", today=TODAY)

    assert (result.month_year, result.start_date, result.end_date) == ("2025-03", date(2025, 3, 2), date(2025, 3, 2))
    assert result.archived == 1


def test_only_the_callers_rows(world):
    account, category, _ = world
    other = make_account("u2", "0")
    theirs = _txn(other, category, date(2025, 3, 1))
    _txn(account, category, date(2025, 3, 1))

    close_month("u1", today=TODAY)

    assert db.session.get(Transaction, theirs.id).archived is False


def test_summary_failure_is_not_fatal(world, monkeypatch):
    account, category, _ = world
    _txn(account, category, date(2025, 3, 1))

    def boom(*_args, **_kwargs):
        raise RuntimeError("push down")

    monkeypatch.setattr("moneyflow.services.alerts.notify_monthly_summary", boom)
    result = close_month("u1", today=TODAY)
    assert result.archived == 1


def test_close_month_for_all_counts_users(world):
    account, category, _ = world
    make_account("u2", "0")
    _txn(account, category, date(2025, 3, 1))

    assert month_archive.close_month_for_all(today=TODAY) == {"closed": 1, "skipped": 1}
