"""Pytest configuration and fixtures."""

from datetime import date, datetime, time

import pytest

from factories import auth_headers
from moneyflow import create_app
from moneyflow.extensions import db
from moneyflow.models import Category
from moneyflow.utils import dates

TODAY = date(2025, 3, 15)


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    """App context for service-level tests (do not mix with client requests)."""
    with app.app_context():
        yield


@pytest.fixture(autouse=True)
def frozen_today(monkeypatch):
    monkeypatch.setattr(dates, "today", lambda: TODAY)
    monkeypatch.setattr(dates, "now", lambda: datetime.combine(TODAY, time(12, 0)))
    return TODAY


@pytest.fixture
def alice():
    return auth_headers("user_alice")


@pytest.fixture
def bob():
    return auth_headers("user_bob")


@pytest.fixture
def categories(app):
    """Seeded categories: {'salary': id, 'food': id, 'credit': id}."""
    with app.app_context():
        rows = {
            "salary": Category(name="Salary", type="income"),
            "food": Category(name="Groceries", type="expense"),
            "credit": Category(name="Credit", type="expense"),
        }
        db.session.add_all(rows.values())
        db.session.commit()
        return {k: c.id for k, c in rows.items()}
