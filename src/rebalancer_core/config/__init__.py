"""Configuration system."""

from rebalancer_core.config.loader import AccountNotFoundError, get_account, load_config
from rebalancer_core.config.schema import (
    AccountPolicy,
    AppConfig,
    DriftConfig,
    InstrumentConfig,
    MarginConfig,
    PriorityFundingConfig,
    ScheduleConfig,
)

__all__ = [
    "AccountNotFoundError",
    "AccountPolicy",
    "AppConfig",
    "DriftConfig",
    "InstrumentConfig",
    "MarginConfig",
    "PriorityFundingConfig",
    "ScheduleConfig",
    "get_account",
    "load_config",
]
