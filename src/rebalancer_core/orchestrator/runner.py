"""Account runner — one rebalancing pass per configured account."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog
from sqlalchemy.orm import Session

from rebalancer_core.balancer.drift import DriftDampener
from rebalancer_core.balancer.engine import Balancer
from rebalancer_core.balancer.margin import MarketSchedule
from rebalancer_core.config.loader import get_account, load_config
from rebalancer_core.config.schema import AccountPolicy, AppConfig
from rebalancer_core.db.engine import get_session, init_engine
from rebalancer_core.gateway import PortfolioGateway, StaticGateway
from rebalancer_core.instruments.registry import InstrumentRegistry
from rebalancer_core.logging.setup import account_context, setup_logging
from rebalancer_core.models.result import EnhancedBalancerResult
from rebalancer_core.snapshots import JsonSnapshotStore, SnapshotStore, SqlSnapshotStore

log = structlog.get_logger("orchestrator")


def build_store(config: AppConfig, session: Session | None = None) -> SnapshotStore:
    """Snapshot store for the configured backend."""
    if config.snapshots.backend == "db":
        if session is None:
            raise ValueError("snapshots.backend is 'db' but no database session was given")
        return SqlSnapshotStore(session)
    return JsonSnapshotStore(config.snapshots.directory)


def run_account(
    policy: AccountPolicy,
    gateway: PortfolioGateway,
    registry: InstrumentRegistry,
    store: SnapshotStore,
    dry_run: bool = False,
    now: datetime | None = None,
) -> EnhancedBalancerResult | None:
    """Run one pass for *policy*. Returns None when the pass is skipped."""
    with account_context(policy.id):
        schedule: MarketSchedule | None = None
        if policy.schedule is not None:
            schedule = MarketSchedule.from_config(policy.schedule, policy.balance_interval, now=now)
            if not schedule.is_market_open():
                behavior = policy.exchange_closure_behavior
                log.info("exchange_closed", behavior=behavior)
                if behavior == "skip_iteration":
                    return None
                if behavior == "dry_run":
                    dry_run = True

        balancer = Balancer(
            policy,
            registry,
            gateway,
            dampener=DriftDampener(store),
            schedule=schedule,
        )
        today = schedule.now.date() if schedule is not None else (now.date() if now else None)
        result = balancer.run(gateway.wallet(policy.id), dry_run=dry_run, today=today)
        for order in result.orders_planned:
            log.info(
                "order_planned",
                ticker=order.ticker,
                direction=order.direction,
                lots=order.lots,
                value=round(order.value_delta, 2),
            )
        return result


def run_accounts(
    config: AppConfig,
    gateway: PortfolioGateway,
    store: SnapshotStore,
    account_ids: Sequence[str] | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
) -> dict[str, EnhancedBalancerResult | None]:
    """Run every requested account (all configured ones by default).

    Unknown account ids abort before any collaborator is touched. A failing
    pass is logged and the remaining accounts still run.
    """
    if account_ids:
        policies = [get_account(config, account_id) for account_id in account_ids]
    else:
        policies = list(config.accounts)
    registry = InstrumentRegistry.from_config(config.instruments)

    results: dict[str, EnhancedBalancerResult | None] = {}
    for policy in policies:
        try:
            results[policy.id] = run_account(policy, gateway, registry, store, dry_run=dry_run, now=now)
        except Exception:
            log.exception("account_pass_failed", account_id=policy.id)
            results[policy.id] = None
    return results


def main(
    config_path: str | None,
    portfolio_path: str,
    account_ids: Sequence[str] | None = None,
    dry_run: bool = False,
) -> None:
    """Entry point — load config, set up logging, run each account once."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    for account_id in account_ids or ():
        get_account(config, account_id)

    gateway = StaticGateway.from_file(portfolio_path)

    if config.snapshots.backend != "db":
        run_accounts(config, gateway, build_store(config), account_ids, dry_run=dry_run)
        return

    init_engine(config.database.url)
    session_gen = get_session()
    session = next(session_gen)
    try:
        run_accounts(config, gateway, build_store(config, session), account_ids, dry_run=dry_run)
    finally:
        try:
            next(session_gen)
        except StopIteration:
            pass
