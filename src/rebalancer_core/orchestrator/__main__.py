"""Allow running the rebalancer as: python -m rebalancer_core.orchestrator --portfolio path."""

import argparse

from rebalancer_core.orchestrator.runner import main

parser = argparse.ArgumentParser(description="Portfolio rebalancer")
parser.add_argument("--config", default=None, help="Path to config.yaml")
parser.add_argument("--portfolio", required=True, help="Path to the portfolio YAML file")
parser.add_argument("--account", action="append", dest="accounts", help="Account id (repeatable)")
parser.add_argument("--dry-run", action="store_true", help="Plan orders without submitting them")
args = parser.parse_args()
main(
    config_path=args.config,
    portfolio_path=args.portfolio,
    account_ids=args.accounts,
    dry_run=args.dry_run,
)
