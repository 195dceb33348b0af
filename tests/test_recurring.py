"""Recurring processor: scheduling arithmetic, posting, duplicate guard, isolation."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from factories import balance_of, make_account, make_category, make_template
from moneyflow.extensions import db
from moneyflow.jobs import recurring
from moneyflow.jobs.recurring import next_occurrence, preview_recurring, process_recurring
from moneyflow.models import Transaction
from moneyflow.services.transactions import TransactionPatch, create_transaction, update_transaction

TODAY = date(2025, 3, 15)


class TestNextOccurrence:
    @pytest.mark.parametrize("current, frequency, day, expected", [
        (date(2025, 1, 31), "monthly", None, date(2025, 2, 28)),
        (date(2024, 1, 31), "monthly", None, date(2024, 2, 29)),
        (date(2025, 2, 28), "monthly", 31, date(2025, 3, 31)),
        (date(2025, 4, 10), "monthly", 5, date(2025, 5, 5)),
        (date(2025, 3, 15), "daily", None, date(2025, 3, 16)),
        (date(2025, 12, 29), "weekly", None, date(2026, 1, 5)),
        (date(2024, 2, 29), "yearly", None, date(2025, 2, 28)),
        (date(2025, 1, 31), None, None, date(2025, 2, 28)),
        (date(2025, 1, 31), "fortnightly", None, date(2025, 2, 28)),
    ])
    def test_steps(self, current, frequency, day, expected):
        assert next_occurrence(current, frequency, day) == expected


def _copies(template_id):
    return db.session.execute(
        select(Transaction).where(Transaction.source_transaction_id == template_id)
    ).scalars().all()


class TestProcessRecurring:
    @pytest.fixture
    def world(self, ctx):
        account = make_account("u1", "1000")
        category = make_category("Housing", "expense")
        return account, category

    def test_posts_copy_applies_balance_and_advances(self, world):
        account, category = world
        template = make_template(account, category, "700", date(2025, 3, 1))

        run = process_recurring("u1", today=TODAY)

        assert (run.processed, run.skipped, run.failed) == (1, 0, 0)
        assert run.results == [{"id": template.id, "name": "Rent", "next_date": "2025-04-01"}]
        assert balance_of(account.id) == Decimal("300")

        copies = _copies(template.id)
        assert len(copies) == 1
        copy = copies[0]
        assert copy.date == date(2025, 3, 1)
        assert copy.note == "Rent (recurring)"
        assert copy.is_recurring is False and copy.archived is False

        template = db.session.get(Transaction, template.id)
        assert template.date == date(2025, 4, 1)
        assert template.last_processed_date == date(2025, 3, 1)

    def test_second_run_is_a_no_op(self, world):
        account, category = world
        template = make_template(account, category, "700", date(2025, 3, 1))

        process_recurring("u1", today=TODAY)
        second = process_recurring("u1", today=TODAY)

        assert second.processed == 0
        assert len(_copies(template.id)) == 1
        assert balance_of(account.id) == Decimal("300")
        assert db.session.get(Transaction, template.id).date == date(2025, 4, 1)

    def test_catch_up_is_one_step_per_run(self, world):
        account, category = world
        template = make_template(account, category, "10", date(2025, 1, 15))

        process_recurring("u1", today=TODAY)
        assert db.session.get(Transaction, template.id).date == date(2025, 2, 15)
        process_recurring("u1", today=TODAY)
        assert db.session.get(Transaction, template.id).date == date(2025, 3, 15)
        assert balance_of(account.id) == Decimal("980")

    def test_duplicate_guard_advances_without_posting(self, world):
        account, category = world
        template = make_template(account, category, "700", date(2025, 3, 1))
        db.session.add(Transaction(
            account_id=account.id, category_id=category.id, amount=Decimal("700"), type="expense",
            date=date(2025, 3, 1), is_recurring=False, is_active=True, archived=False, balance_applied=True,
        ))
        db.session.commit()

        run = process_recurring("u1", today=TODAY)

        assert run.processed == 0 and run.skipped == 1
        assert _copies(template.id) == []
        assert balance_of(account.id) == Decimal("1000")
        assert db.session.get(Transaction, template.id).date == date(2025, 4, 1)

    def test_future_inactive_and_archived_templates_are_ignored(self, world):
        account, category = world
        make_template(account, category, "5", date(2025, 3, 20))
        inactive = make_template(account, category, "5", date(2025, 3, 1))
        inactive.is_active = False
        archived = make_template(account, category, "5", date(2025, 3, 1))
        archived.archived = True
        db.session.commit()

        run = process_recurring("u1", today=TODAY)
        assert (run.processed, run.skipped, run.failed) == (0, 0, 0)
        assert balance_of(account.id) == Decimal("1000")

    def test_other_users_templates_untouched(self, world):
        account, category = world
        other = make_account("u2", "50")
        make_template(other, category, "20", date(2025, 3, 1))

        run = process_recurring("u1", today=TODAY)
        assert run.processed == 0
        assert balance_of(other.id) == Decimal("50")

    def test_failing_template_does_not_stop_the_batch(self, world, monkeypatch):
        account, category = world
        bad = make_template(account, category, "100", date(2025, 3, 1), note="Broken")
        good = make_template(account, category, "50", date(2025, 3, 2), note="Phone")

        real = recurring._post_and_advance

        def flaky(template_id, today):
            if template_id == bad.id:
                raise RuntimeError("boom")
            return real(template_id, today)

        monkeypatch.setattr(recurring, "_post_and_advance", flaky)
        run = process_recurring("u1", today=TODAY)

        assert (run.processed, run.failed) == (1, 1)
        assert [r["id"] for r in run.results] == [good.id]
        assert balance_of(account.id) == Decimal("950")
        assert db.session.get(Transaction, bad.id).date == date(2025, 3, 1)

    def test_preview_lists_due_templates_without_side_effects(self, world):
        account, category = world
        template = make_template(account, category, "700", date(2025, 3, 1))
        make_template(account, category, "5", date(2025, 4, 1))

        out = preview_recurring("u1", today=TODAY)

        assert out["pending"] == 1
        assert out["transactions"][0]["id"] == template.id
        assert balance_of(account.id) == Decimal("1000")
        assert _copies(template.id) == []


class TestMonthEndTemplates:
    @pytest.fixture
    def account(self, ctx):
        return make_account("u1", "1000")

    def _create(self, account, category, when, **extra):
        txn = create_transaction("u1", {
            "account_id": account.id, "category_id": category.id, "amount": "10",
            "type": "expense", "date": when.isoformat(), "is_recurring": True,
            "recurrence_frequency": "monthly", **extra,
        }, today=date(2025, 1, 1))
        db.session.commit()
        return txn

    def test_creation_pins_the_day(self, account):
        template = self._create(account, make_category("Insurance", "expense"), date(2025, 1, 31))
        assert template.recurrence_day == 31

    def test_explicit_day_wins(self, account):
        template = self._create(account, make_category("Insurance", "expense"), date(2025, 1, 31), recurrence_day=5)
        assert template.recurrence_day == 5

    def test_month_end_survives_february(self, account):
        template = self._create(account, make_category("Insurance", "expense"), date(2025, 1, 31))
        today = date(2025, 3, 31)

        process_recurring("u1", today=today)
        assert db.session.get(Transaction, template.id).date == date(2025, 2, 28)
        process_recurring("u1", today=today)
        assert db.session.get(Transaction, template.id).date == date(2025, 3, 31)

    def test_unpinned_legacy_template_is_pinned_on_first_run(self, account):
        template = make_template(account, make_category("Insurance", "expense"), "10", date(2025, 1, 31))
        today = date(2025, 3, 31)

        process_recurring("u1", today=today)
        process_recurring("u1", today=today)

        template = db.session.get(Transaction, template.id)
        assert template.recurrence_day == 31
        assert template.date == date(2025, 3, 31)

    def test_moving_the_date_re_anchors(self, account):
        template = self._create(account, make_category("Insurance", "expense"), date(2025, 1, 31))
        update_transaction("u1", template.id, TransactionPatch(date=date(2025, 2, 10)), today=date(2025, 1, 1))
        db.session.commit()

        assert db.session.get(Transaction, template.id).recurrence_day == 10
