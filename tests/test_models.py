"""Tests for Pydantic domain models."""

from __future__ import annotations

import datetime as dt
import math

import pytest
from pydantic import ValidationError

from rebalancer_core.gateway import StaticGateway
from rebalancer_core.models import DriftSnapshot, PlannedOrder, Position


class TestPosition:
    def test_total_value_filled(self):
        position = Position(ticker="TGLD", quantity=100, price=120)
        assert position.total_value == 12000
        assert position.value == 12000

    def test_explicit_total_value_kept(self):
        assert Position(ticker="TGLD", quantity=1, price=1, total_value=5).total_value == 5

    def test_lot_price_and_current_lots(self):
        position = Position(ticker="TMOS", quantity=25, lot_size=10, price=8)
        assert position.lot_price == 80
        assert position.current_lots == 2.5

    def test_unknown_price(self):
        position = Position(ticker="TGLD", quantity=3)
        assert position.lot_price is None
        assert position.total_value is None
        assert position.value == 0.0

    def test_non_finite_value_is_zero(self):
        assert Position(ticker="TGLD", quantity=1, price=math.inf).value == 0.0

    def test_currency(self):
        assert Position(ticker="RUB", quote="RUB", quantity=10, price=1).is_currency
        assert not Position(ticker="TGLD").is_currency

    def test_acquisition_price_preference(self):
        assert Position(ticker="A", avg_price_fifo=10, avg_price=20).acquisition_price == 10
        assert Position(ticker="A", avg_price=20).acquisition_price == 20
        assert Position(ticker="A").acquisition_price is None

    def test_reprice(self):
        position = Position(ticker="A", quantity=4, price=10)
        position.reprice(12.5)
        assert position.total_value == 50


class TestPlannedOrder:
    def test_lots_delta_sign(self):
        sell = PlannedOrder(ticker="A", direction="SELL", lots=3, lot_price=10, value_delta=-30)
        assert sell.lots_delta == -3

    def test_zero_lots_rejected(self):
        with pytest.raises(ValidationError):
            PlannedOrder(ticker="A", direction="BUY", lots=0, lot_price=10, value_delta=0)


class TestDriftSnapshot:
    def test_iteration_helpers(self):
        snapshot = DriftSnapshot(
            account_id="acc",
            date=dt.date(2026, 3, 2),
            snapshots={"00:00": {"A": 1}, "iteration_9": {"A": 2}, "iteration_12": {"A": 3}, "iteration_x": {}},
        )
        assert snapshot.latest_iteration() == {"A": 3}
        assert snapshot.next_iteration_key() == "iteration_13"
        assert snapshot.day_start() == {"A": 1}

    def test_empty(self):
        snapshot = DriftSnapshot(account_id="acc", date=dt.date(2026, 3, 2))
        assert snapshot.latest_iteration() is None
        assert snapshot.next_iteration_key() == "iteration_1"
        assert snapshot.day_start() is None


class TestStaticGateway:
    def test_from_file(self, tmp_path):
        path = tmp_path / "portfolio.yaml"
        path.write_text(
            "prices: {F1: 120}\n"
            "accounts:\n"
            "  main:\n"
            "    - {ticker: tray@, figi: F1, quantity: 2, price: 95}\n"
        )
        gateway = StaticGateway.from_file(path)
        assert gateway.get_last_price("F1") == 120
        assert gateway.get_last_price("F9") is None
        wallet = gateway.wallet("main")
        assert wallet[0].ticker == "tray@"
        assert wallet[0].total_value == 240
        assert gateway.wallet("other") == []

    def test_records_orders(self):
        gateway = StaticGateway()
        order = PlannedOrder(ticker="A", direction="BUY", lots=1, lot_price=10, value_delta=10)
        gateway.generate_orders([order])
        assert gateway.submitted == [[order]]
