"""Shared test fixtures."""

import pytest
from sqlalchemy import BigInteger, Integer, JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

import rebalancer_core.db.tables  # noqa: F401
from rebalancer_core.config.schema import AccountPolicy, InstrumentConfig
from rebalancer_core.db.base import Base
from rebalancer_core.gateway import StaticGateway
from rebalancer_core.instruments import InstrumentRegistry
from rebalancer_core.models import Position


@pytest.fixture
def db_session():
    """In-memory SQLite session with all tables created.

    Patches JSONB→JSON and BigInteger→Integer for SQLite compatibility.
    """
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    # SQLite doesn't support schemas, JSONB, or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)

    session = Session(engine)
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def instrument_configs() -> list[InstrumentConfig]:
    return [
        InstrumentConfig(ticker="TGLD", figi="FIGI_TGLD", lot=1),
        InstrumentConfig(ticker="TRUR", figi="FIGI_TRUR", lot=1),
        InstrumentConfig(ticker="TMOS", figi="FIGI_TMOS", lot=10),
        InstrumentConfig(ticker="TMON", figi="FIGI_TMON", lot=1),
        InstrumentConfig(ticker="TPAY", figi="FIGI_TPAY", lot=1),
    ]


@pytest.fixture
def registry(instrument_configs) -> InstrumentRegistry:
    return InstrumentRegistry.from_config(instrument_configs)


@pytest.fixture
def wallet_a() -> list[Position]:
    """TGLD 12000 + TRUR 5000 + 1000 RUB cash."""
    return [
        Position(ticker="TGLD", figi="FIGI_TGLD", quantity=100, price=120, avg_price_fifo=100),
        Position(ticker="TRUR", figi="FIGI_TRUR", quantity=50, price=100, avg_price_fifo=90),
        Position(ticker="RUB", quote="RUB", quantity=1000, price=1),
    ]


@pytest.fixture
def policy_a() -> AccountPolicy:
    return AccountPolicy(id="acc-1", desired_wallet={"TGLD": 30, "TRUR": 60, "RUB": 10})


@pytest.fixture
def gateway() -> StaticGateway:
    return StaticGateway(
        prices={
            "FIGI_TGLD": 120.0,
            "FIGI_TRUR": 100.0,
            "FIGI_TMOS": 8.0,
            "FIGI_TMON": 100.0,
            "FIGI_TPAY": 95.0,
        },
    )
