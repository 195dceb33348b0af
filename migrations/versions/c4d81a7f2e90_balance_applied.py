"""track which rows are counted in the stored balance

Revision ID: c4d81a7f2e90
Revises: a1f3c9e2b7d4
Create Date: 2026-10-18 09:15:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c4d81a7f2e90'
down_revision: Union[str, Sequence[str], None] = 'a1f3c9e2b7d4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    with op.batch_alter_table("transactions") as batch:
        batch.add_column(sa.Column("balance_applied", sa.Boolean(), nullable=False, server_default=sa.false()))
    with op.batch_alter_table("transfers") as batch:
        batch.add_column(sa.Column("balance_applied", sa.Boolean(), nullable=False, server_default=sa.false()))

    # rows already dated on or before the upgrade were applied when recorded
    transactions = sa.table(
        "transactions",
        sa.column("balance_applied", sa.Boolean),
        sa.column("is_recurring", sa.Boolean),
        sa.column("date", sa.Date),
    )
    transfers = sa.table("transfers", sa.column("balance_applied", sa.Boolean), sa.column("date", sa.Date))
    op.execute(
        transactions.update()
        .where(transactions.c.is_recurring == sa.false(), transactions.c.date <= sa.func.current_date())
        .values(balance_applied=True)
    )
    op.execute(
        transfers.update()
        .where(transfers.c.date <= sa.func.current_date())
        .values(balance_applied=True)
    )


def downgrade():
    with op.batch_alter_table("transfers") as batch:
        batch.drop_column("balance_applied")
    with op.batch_alter_table("transactions") as batch:
        batch.drop_column("balance_applied")
