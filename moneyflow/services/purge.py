# moneyflow/services/purge.py
from flask import current_app
from sqlalchemy import delete, or_, select, update

from moneyflow.extensions import db
from moneyflow.models import (
    Account, Credit, MonthClosure, NotificationPreference, PushSubscription,
    SentNotification, SharedDashboard, Transaction, Transfer, User, UserSettings,
)


def purge_user_data(user_id: str) -> dict:
    """Delete everything the user owns, children before parents. Does not commit."""
    account_ids = select(Account.id).where(Account.user_id == user_id).scalar_subquery()
    counts = {}

    # posted copies point at their template; unlink before deleting either
    db.session.execute(
        update(Transaction)
        .where(Transaction.account_id.in_(account_ids))
        .values(source_transaction_id=None),
        execution_options={"synchronize_session": False},
    )
    steps = [
        ("transactions", delete(Transaction).where(Transaction.account_id.in_(account_ids))),
        ("transfers", delete(Transfer).where(
            or_(Transfer.user_id == user_id,
                Transfer.from_account_id.in_(account_ids),
                Transfer.to_account_id.in_(account_ids)))),
        ("credits", delete(Credit).where(Credit.user_id == user_id)),
        ("accounts", delete(Account).where(Account.user_id == user_id)),
        ("month_closures", delete(MonthClosure).where(MonthClosure.user_id == user_id)),
        ("user_settings", delete(UserSettings).where(UserSettings.user_id == user_id)),
        ("push_subscriptions", delete(PushSubscription).where(PushSubscription.user_id == user_id)),
        ("notification_preferences", delete(NotificationPreference).where(NotificationPreference.user_id == user_id)),
        ("sent_notifications", delete(SentNotification).where(SentNotification.user_id == user_id)),
        ("shared_dashboards", delete(SharedDashboard).where(
            or_(SharedDashboard.owner_user_id == user_id, SharedDashboard.shared_with_user_id == user_id))),
        ("users", delete(User).where(User.id == user_id)),
    ]
    for name, stmt in steps:
        counts[name] = db.session.execute(stmt, execution_options={"synchronize_session": False}).rowcount

    current_app.logger.warning("purged data for user=%s: %s", user_id, counts)
    return counts
