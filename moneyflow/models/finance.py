# moneyflow/models/finance.py
from datetime import datetime

from moneyflow.extensions import db

ACCOUNT_TYPES = ("one-off", "mandatory")
TRANSACTION_TYPES = ("income", "expense")
RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

# recurrence_state() values
SCHEDULED = "scheduled"
DUE = "due"
PROCESSED = "processed"


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value is not None else None


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="one-off")  # 'one-off'|'mandatory'
    # running balance, not the opening value
    initial_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    exclude_from_forecast = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "initial_balance": _money(self.initial_balance),
            "exclude_from_forecast": bool(self.exclude_from_forecast),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Account {self.id} {self.name!r}>"


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False)
    type = db.Column(db.String(10), nullable=False)  # 'income'|'expense'
    icon = db.Column(db.String(16))
    color = db.Column(db.String(16))

    __table_args__ = (db.UniqueConstraint("name", "type", name="uq_category_name_type"),)

    def to_dict(self):
        return {"id": self.id, "name": self.name, "type": self.type, "icon": self.icon, "color": self.color}


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)  # always positive; sign comes from type
    type = db.Column(db.String(10), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    note = db.Column(db.Text)

    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_frequency = db.Column(db.String(10))
    recurrence_day = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)
    last_processed_date = db.Column(db.Date)
    # whether this row's amount is currently counted in account.initial_balance
    balance_applied = db.Column(db.Boolean, nullable=False, default=False)

    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), index=True)
    # set on copies posted by the recurring processor
    source_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id", ondelete="SET NULL"))

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = db.relationship("Account", lazy="joined")
    category = db.relationship("Category", lazy="joined")

    def recurrence_state(self, today):
        """Where a recurring template stands relative to ``today``.

        scheduled -> next occurrence still in the future
        due       -> date reached and not yet posted for that date
        processed -> already posted for its current date
        """
        if self.date > today:
            return SCHEDULED
        if self.last_processed_date is not None and self.last_processed_date >= self.date:
            return PROCESSED
        return DUE

    def to_dict(self):
        return {
            "id": self.id,
            "account_id": self.account_id,
            "account_name": self.account.name if self.account else None,
            "category_id": self.category_id,
            "category": self.category.to_dict() if self.category else None,
            "amount": _money(self.amount),
            "type": self.type,
            "date": _iso(self.date),
            "note": self.note,
            "is_recurring": bool(self.is_recurring),
            "recurrence_frequency": self.recurrence_frequency,
            "recurrence_day": self.recurrence_day,
            "is_active": bool(self.is_active),
            "archived": bool(self.archived),
            "last_processed_date": _iso(self.last_processed_date),
            "balance_applied": bool(self.balance_applied),
            "credit_id": self.credit_id,
            "source_transaction_id": self.source_transaction_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Transaction {self.id} {self.type} {self.amount} {self.date}>"


class Transfer(db.Model):
    __tablename__ = "transfers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    from_account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False)
    to_account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    note = db.Column(db.Text)
    balance_applied = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    from_account = db.relationship("Account", foreign_keys=[from_account_id], lazy="joined")
    to_account = db.relationship("Account", foreign_keys=[to_account_id], lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "from_account": {"id": self.from_account.id, "name": self.from_account.name} if self.from_account else None,
            "to_account": {"id": self.to_account.id, "name": self.to_account.name} if self.to_account else None,
            "amount": _money(self.amount),
            "date": _iso(self.date),
            "note": self.note,
            "balance_applied": bool(self.balance_applied),
            "created_at": _iso(self.created_at),
        }


class Credit(db.Model):
    """A loan whose ``outstanding`` is the balance of record."""

    __tablename__ = "credits"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"))
    title = db.Column(db.String(120), nullable=False, default="Credit")
    principal = db.Column(db.Numeric(12, 2), nullable=False)
    outstanding = db.Column(db.Numeric(12, 2), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date)
    installments = db.Column(db.Integer)
    frequency = db.Column(db.String(20), nullable=False, default="oneoff")
    note = db.Column(db.Text)
    is_closed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "account_id": self.account_id,
            "title": self.title,
            "principal": _money(self.principal),
            "outstanding": _money(self.outstanding),
            "start_date": _iso(self.start_date),
            "due_date": _iso(self.due_date),
            "installments": self.installments,
            "frequency": self.frequency,
            "note": self.note,
            "is_closed": bool(self.is_closed),
            "created_at": _iso(self.created_at),
        }


class MonthClosure(db.Model):
    __tablename__ = "month_closures"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    month_year = db.Column(db.String(7), nullable=False)  # 'YYYY-MM'
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint("user_id", "month_year", name="uq_month_closure_user_month"),)

    def to_dict(self):
        return {
            "month_year": self.month_year,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
        }
