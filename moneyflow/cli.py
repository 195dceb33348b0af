# moneyflow/cli.py
import click
from flask.cli import with_appcontext
from sqlalchemy import select

from moneyflow.extensions import db
from moneyflow.models import Category
from moneyflow.utils.dates import parse_date

DEFAULT_CATEGORIES = [
    ("Salary", "income", "💼", "#22c55e"),
    ("Other income", "income", "➕", "#84cc16"),
    ("Housing", "expense", "🏠", "#ef4444"),
    ("Groceries", "expense", "🛒", "#f97316"),
    ("Transport", "expense", "🚗", "#eab308"),
    ("Leisure", "expense", "🎉", "#a855f7"),
    ("Health", "expense", "💊", "#06b6d4"),
    ("Subscriptions", "expense", "📺", "#6366f1"),
    ("Credit", "expense", "💳", "#64748b"),
    ("Other", "expense", "📦", "#94a3b8"),
]

today_option = click.option("--today", "today_str", default=None, help="Override today's date (YYYY-MM-DD).")


@click.command("process-recurring")
@click.option("--user", "user_id", default=None, help="Only this user's templates.")
@today_option
@with_appcontext
def process_recurring_cmd(user_id, today_str):
    """Post due recurring transactions for everyone (or one user)."""
    from moneyflow.jobs.recurring import process_recurring
    run = process_recurring(user_id, parse_date(today_str))
    click.echo(f"settled={run.settled} processed={run.processed} skipped={run.skipped} failed={run.failed}")


@click.command("settle-due")
@click.option("--user", "user_id", default=None, help="Only this user's rows.")
@today_option
@with_appcontext
def settle_due_cmd(user_id, today_str):
    """Apply transactions and transfers whose date has arrived to account balances."""
    from moneyflow.services.ledger import settle_due
    out = settle_due(user_id, parse_date(today_str))
    db.session.commit()
    click.echo(f"transactions={out['transactions']} transfers={out['transfers']}")


@click.command("change-month")
@click.option("--user", "user_id", default=None, help="Only close this user's month.")
@today_option
@with_appcontext
def change_month_cmd(user_id, today_str):
    """Archive settled transactions and record month closures."""
    from moneyflow.errors import NothingToArchive
    from moneyflow.jobs.month_archive import close_month, close_month_for_all

    today = parse_date(today_str)
    if user_id is None:
        out = close_month_for_all(today)
        click.echo(f"closed={out['closed']} skipped={out['skipped']}")
        return
    try:
        result = close_month(user_id, today)
    except NothingToArchive:
        click.echo("nothing to archive")
        return
    click.echo(f"{result.month_year}: archived {result.archived} transaction(s)")


@click.command("check-notifications")
@today_option
@with_appcontext
def check_notifications_cmd(today_str):
    """Settle due rows, then run the alert checker for every user."""
    from moneyflow.services.alerts import check_all_users
    from moneyflow.services.ledger import settle_due

    today = parse_date(today_str)
    settle_due(None, today)
    db.session.commit()
    out = check_all_users(today)
    click.echo(f"users={out['users']} sent={out['sent']}")


@click.command("seed-categories")
@with_appcontext
def seed_categories_cmd():
    """Insert the default income/expense categories (idempotent)."""
    existing = set(db.session.execute(select(Category.name, Category.type)).all())
    added = 0
    for name, type_, icon, color in DEFAULT_CATEGORIES:
        if (name, type_) in existing:
            continue
        db.session.add(Category(name=name, type=type_, icon=icon, color=color))
        added += 1
    db.session.commit()
    click.echo(f"categories: {added} added")


@click.command("identity-token")
@click.argument("user_id")
@with_appcontext
def identity_token_cmd(user_id):
    """Print a bearer token for USER_ID (development helper)."""
    from moneyflow.security import make_identity_token
    click.echo(make_identity_token(user_id))


def register_cli(app):
    for cmd in (
        process_recurring_cmd, settle_due_cmd, change_month_cmd, check_notifications_cmd,
        seed_categories_cmd, identity_token_cmd,
    ):
        app.cli.add_command(cmd)
