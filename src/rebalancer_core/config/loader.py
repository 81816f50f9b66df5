"""Config loader — reads YAML, applies REBALANCER_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from rebalancer_core.config.schema import AccountPolicy, AppConfig


class AccountNotFoundError(LookupError):
    """Raised when an account id is not present in the loaded config."""


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        REBALANCER_DATABASE_URL   -> database.url
        REBALANCER_LOG_LEVEL      -> logging.level
        REBALANCER_LOG_FORMAT     -> logging.format
        REBALANCER_SNAPSHOT_DIR   -> snapshots.directory
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    db_url = os.environ.get("REBALANCER_DATABASE_URL")
    if db_url:
        data.setdefault("database", {})["url"] = db_url

    log_level = os.environ.get("REBALANCER_LOG_LEVEL")
    if log_level:
        data.setdefault("logging", {})["level"] = log_level

    log_format = os.environ.get("REBALANCER_LOG_FORMAT")
    if log_format:
        data.setdefault("logging", {})["format"] = log_format

    snapshot_dir = os.environ.get("REBALANCER_SNAPSHOT_DIR")
    if snapshot_dir:
        data.setdefault("snapshots", {})["directory"] = snapshot_dir

    return AppConfig.model_validate(data)


def get_account(config: AppConfig, account_id: str) -> AccountPolicy:
    """Return the policy for *account_id* or raise AccountNotFoundError."""
    for account in config.accounts:
        if account.id == account_id:
            return account
    known = [a.id for a in config.accounts]
    raise AccountNotFoundError(f"Account {account_id!r} not found in config (known: {known})")
