"""Tests for order sequencing and final-share projection."""

from __future__ import annotations

import pytest

from rebalancer_core.balancer.sequencing import (
    current_percents,
    sequence_orders,
    share_changes,
    simulate_final_percents,
)
from rebalancer_core.models import Position


def _pos(ticker: str, lots_delta: float, value_delta: float, price: float, lot: int = 1, qty: float = 10) -> Position:
    position = Position(ticker=ticker, figi=f"FIGI_{ticker}", quantity=qty, lot_size=lot, price=price)
    position.lots_delta = lots_delta
    position.value_delta = value_delta
    return position


class TestSequenceOrders:
    def test_sells_before_buys(self):
        wallet = [
            _pos("BUY_CHEAP", 3, 30, price=10),
            _pos("SELL_SMALL", -1, -50, price=50),
            _pos("BUY_PRICEY", 2, 400, price=200),
            _pos("SELL_BIG", -4, -400, price=100),
        ]
        orders = sequence_orders(wallet)
        assert [o.ticker for o in orders] == ["SELL_BIG", "SELL_SMALL", "BUY_PRICEY", "BUY_CHEAP"]
        assert [o.direction for o in orders] == ["SELL", "SELL", "BUY", "BUY"]
        assert orders[0].lots_delta == -4

    def test_buys_by_lot_price_not_unit_price(self):
        wallet = [
            _pos("A", 1, 100, price=100, lot=1),
            _pos("B", 1, 200, price=20, lot=10),
        ]
        assert [o.ticker for o in sequence_orders(wallet)] == ["B", "A"]

    def test_sub_lot_deltas_dropped(self):
        wallet = [
            _pos("A", 0.5, 5, price=10),
            _pos("B", -0.9, -9, price=10),
            _pos("C", 0, 0, price=10),
        ]
        assert sequence_orders(wallet) == []

    def test_fractional_delta_truncated(self):
        orders = sequence_orders([_pos("A", 2.7, 27, price=10), _pos("B", -1.5, -15, price=10)])
        assert {o.ticker: o.lots_delta for o in orders} == {"A": 2, "B": -1}

    def test_currency_excluded(self):
        cash = Position(ticker="RUB", quote="RUB", quantity=1000, price=1)
        cash.lots_delta, cash.value_delta = 500, 500.0
        assert sequence_orders([cash]) == []

    def test_no_zero_deltas(self, wallet_a):
        wallet_a[0].lots_delta = -55
        wallet_a[1].lots_delta = 58
        orders = sequence_orders(wallet_a)
        assert all(o.lots >= 1 for o in orders)


class TestFinalPercents:
    def test_simulation_excludes_currency(self, wallet_a):
        wallet_a[0].lots_delta = -55
        wallet_a[1].lots_delta = 58
        wallet_a[2].lots_delta = 800
        result = simulate_final_percents(wallet_a)
        assert set(result) == {"TGLD", "TRUR"}
        assert result["TGLD"] == pytest.approx(5400 / 16200 * 100)
        assert result["TRUR"] == pytest.approx(10800 / 16200 * 100)

    def test_empty_when_nothing_held(self):
        assert simulate_final_percents([Position(ticker="A", quantity=0, price=10)]) == {}

    def test_current_percents(self, wallet_a):
        result = current_percents(wallet_a)
        assert result["TGLD"] == pytest.approx(12000 / 17000 * 100)
        assert "RUB" not in result

    def test_share_changes(self):
        assert share_changes({"A": 60, "B": 40}, {"A": 50, "C": 50}) == {
            "A": (60, 50),
            "B": (40, 0.0),
            "C": (0.0, 50),
        }
