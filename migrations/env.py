# migrations/env.py
"""Alembic environment for MoneyFlow.

``flask db ...`` runs inside the app context Flask-Migrate pushes, so the
running app's engine and metadata are reused as-is. Plain ``alembic`` builds
the app from the environment first.
"""
from __future__ import annotations

from contextlib import nullcontext
from logging.config import fileConfig

from alembic import context
from flask import current_app, has_app_context

config = context.config

if config.config_file_name is not None:
    # keep the app's own handlers when invoked through the Flask CLI
    fileConfig(config.config_file_name, disable_existing_loggers=False)

if has_app_context():
    app_ctx = nullcontext()
    db = current_app.extensions["migrate"].db
else:
    from moneyflow import create_app
    from moneyflow.extensions import db

    app_ctx = create_app().app_context()


def _configure(**kwargs):
    context.configure(
        target_metadata=db.metadata,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline():
    url = db.engine.url.render_as_string(hide_password=False)
    _configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    with db.engine.connect() as connection:
        # SQLite cannot ALTER most things in place
        _configure(connection=connection, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()


with app_ctx:
    if context.is_offline_mode():
        run_migrations_offline()
    else:
        run_migrations_online()
