"""End-to-end tests for a single rebalancing pass."""

from __future__ import annotations

import datetime as dt

import pytest

from rebalancer_core.balancer.drift import DriftDampener
from rebalancer_core.balancer.engine import Balancer, ingest_wallet
from rebalancer_core.config.schema import AccountPolicy, DriftConfig, MarginConfig, PriorityFundingConfig
from rebalancer_core.models import Position, PositionMetric
from rebalancer_core.snapshots import JsonSnapshotStore


class TestScenarioA:
    def test_plan(self, policy_a, wallet_a, registry, gateway):
        result = Balancer(policy_a, registry, gateway).run(wallet_a)

        plan = [(o.ticker, o.direction, o.lots) for o in result.orders_planned]
        assert plan == [("TGLD", "SELL", 55), ("TRUR", "BUY", 58)]
        assert result.total_portfolio_value == pytest.approx(18000)
        assert result.final_percents["TGLD"] == pytest.approx(100 / 3)
        assert result.final_percents["TRUR"] == pytest.approx(200 / 3)
        assert result.mode_used == "manual"
        assert result.margin_info is None
        assert gateway.submitted == [result.orders_planned]

    def test_input_wallet_not_mutated(self, policy_a, wallet_a, registry, gateway):
        Balancer(policy_a, registry, gateway).run(wallet_a)
        assert wallet_a[0].lots_delta == 0
        assert wallet_a[0].target_lots is None

    def test_dry_run_skips_submission(self, policy_a, wallet_a, registry, gateway):
        result = Balancer(policy_a, registry, gateway).run(wallet_a, dry_run=True)
        assert len(result.orders_planned) == 2
        assert gateway.submitted == []

    def test_metrics_passthrough(self, policy_a, wallet_a, registry, gateway):
        metrics = [PositionMetric(ticker="TGLD", market_cap=1e9)]
        result = Balancer(policy_a, registry, gateway).run(
            wallet_a, mode_used="marketcap", position_metrics=metrics,
        )
        assert result.mode_used == "marketcap"
        assert result.position_metrics == metrics


class TestEnginePolicies:
    def test_profit_gate_blocks_sell(self, wallet_a, registry, gateway):
        policy = AccountPolicy(
            id="acc-1",
            desired_wallet={"TGLD": 30, "TRUR": 60, "RUB": 10},
            min_profit_percent_for_close_position=25,
        )
        result = Balancer(policy, registry, gateway).run(wallet_a)
        assert [o.ticker for o in result.orders_planned] == ["TRUR"]
        assert set(result.blocked_sells) == {"TGLD"}

    def test_unheld_instrument_bought(self, wallet_a, registry, gateway):
        policy = AccountPolicy(id="acc-1", desired_wallet={"TGLD": 50, "TMON": 50})
        result = Balancer(policy, registry, gateway).run(wallet_a)
        by_ticker = {o.ticker: o for o in result.orders_planned}
        # 18000 / 2 = 9000 → 90 lots of TMON at 100
        assert by_ticker["TMON"].direction == "BUY"
        assert by_ticker["TMON"].lots == 90
        assert by_ticker["TMON"].figi == "FIGI_TMON"
        # TRUR is no longer desired and is sold in full
        assert by_ticker["TRUR"].lots_delta == -50

    def test_unknown_instrument_skipped(self, wallet_a, registry, gateway):
        policy = AccountPolicy(id="acc-1", desired_wallet={"TGLD": 50, "NOPE": 50})
        result = Balancer(policy, registry, gateway).run(wallet_a)
        assert "NOPE" not in {o.ticker for o in result.orders_planned}

    def test_minimum_lot_for_small_weight(self, wallet_a, registry, gateway):
        policy = AccountPolicy(id="acc-1", desired_wallet={"TGLD": 99.99, "TMOS": 0.01})
        result = Balancer(policy, registry, gateway).run(wallet_a)
        tmos = [o for o in result.orders_planned if o.ticker == "TMOS"]
        assert len(tmos) == 1
        assert tmos[0].lots_delta == 1

    def test_aliases_merged(self, registry, gateway):
        wallet = [
            Position(ticker="TRAY@", figi="FIGI_TPAY", quantity=10, price=95),
            Position(ticker="RUB", quote="rub", quantity=50, price=1),
        ]
        policy = AccountPolicy(id="acc-1", desired_wallet={"TRAY": 40, "TPAY": 60})
        result = Balancer(policy, registry, gateway).run(wallet)
        assert result.final_percents == {"TPAY": pytest.approx(100)}

    def test_ingest_wallet_canonicalizes(self):
        wallet = ingest_wallet([Position(ticker="tray", quote="rub", quantity=1, price=1)])
        assert wallet[0].ticker == "TPAY"
        assert wallet[0].quote == "RUB"

    def test_margin_info_reported(self, wallet_a, registry, gateway):
        policy = AccountPolicy(
            id="acc-1",
            desired_wallet={"TGLD": 50, "TRUR": 50},
            margin_trading=MarginConfig(enabled=True, multiplier=2, max_margin_size=100000),
        )
        result = Balancer(policy, registry, gateway).run(wallet_a, dry_run=True)
        assert result.margin_info is not None
        assert result.margin_info.within_limits is True
        # 12000 / 2 + 5000 / 2
        assert result.margin_info.total_margin_used == pytest.approx(8500)
        assert {p.ticker for p in result.margin_info.margin_positions} == {"TGLD", "TRUR"}

    def test_priority_funding(self, registry, gateway):
        wallet = [Position(ticker="TGLD", figi="FIGI_TGLD", quantity=50, price=100, avg_price_fifo=80)]
        policy = AccountPolicy(
            id="acc-1",
            desired_wallet={"TMON": 50, "TGLD": 50},
            buy_requires_total_marginal_sell=PriorityFundingConfig(enabled=True, instruments=["TMON"]),
        )
        result = Balancer(policy, registry, gateway).run(wallet)
        assert result.funding.applied is True
        assert result.funding.reason == "funded"
        assert result.funding.sells == {"TGLD": 25}
        plan = [(o.ticker, o.lots_delta) for o in result.orders_planned]
        assert plan == [("TGLD", -25), ("TMON", 25)]

    def test_drift_dampening(self, tmp_path, wallet_a, registry, gateway):
        policy = AccountPolicy(
            id="acc-1",
            desired_wallet={"TGLD": 30, "TRUR": 70},
            diff=DriftConfig(mode="iteration", multiplier=30),
        )
        store = JsonSnapshotStore(tmp_path)
        balancer = Balancer(policy, registry, gateway, dampener=DriftDampener(store))
        day = dt.date(2026, 3, 2)

        balancer.run(wallet_a, desired={"TGLD": 20, "TRUR": 80}, dry_run=True, today=day)
        assert balancer.prepare_desired({"TGLD": 30, "TRUR": 70}, today=day)["TGLD"] == pytest.approx(
            45 / 111.25 * 100
        )
        snapshot = store.load("acc-1", day)
        assert set(snapshot.snapshots) == {"iteration_1", "iteration_2"}
