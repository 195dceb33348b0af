# moneyflow/models/__init__.py
from .auth import User, UserSettings
from .finance import Account, Category, Credit, MonthClosure, Transaction, Transfer
from .notify import NotificationPreference, PushSubscription, SentNotification
from .sharing import SharedDashboard

__all__ = [
    "User", "UserSettings",
    "Account", "Category", "Credit", "MonthClosure", "Transaction", "Transfer",
    "NotificationPreference", "PushSubscription", "SentNotification",
    "SharedDashboard",
]
