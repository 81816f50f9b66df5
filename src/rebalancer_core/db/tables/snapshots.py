"""SQLAlchemy ORM model for the rebalancer_state schema."""

from datetime import date, datetime

from sqlalchemy import BigInteger, Date, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from rebalancer_core.db.base import Base

SCHEMA = "rebalancer_state"


class DriftSnapshotRow(Base):
    """One named weight map (``00:00`` or ``iteration_N``) for an account and day."""

    __tablename__ = "drift_snapshots"
    __table_args__ = (
        UniqueConstraint("account_id", "day", "name"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    account_id: Mapped[str] = mapped_column(Text, nullable=False)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    weights: Mapped[dict] = mapped_column(JSONB, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
