"""Account runner — loads config and portfolio, runs one pass per account."""

from rebalancer_core.orchestrator.runner import build_store, run_account, run_accounts

__all__ = ["build_store", "run_account", "run_accounts"]
