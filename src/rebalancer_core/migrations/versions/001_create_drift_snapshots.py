"""Create the drift snapshot table.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # rebalancer_state is created by env.py before migrations run
    op.create_table(
        "drift_snapshots",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.Text, nullable=False),
        sa.Column("day", sa.Date, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("weights", postgresql.JSONB, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("account_id", "day", "name"),
        schema="rebalancer_state",
    )
    op.create_index(
        "ix_drift_snapshots_account_day",
        "drift_snapshots",
        ["account_id", "day"],
        schema="rebalancer_state",
    )


def downgrade() -> None:
    op.drop_index("ix_drift_snapshots_account_day", table_name="drift_snapshots", schema="rebalancer_state")
    op.drop_table("drift_snapshots", schema="rebalancer_state")
