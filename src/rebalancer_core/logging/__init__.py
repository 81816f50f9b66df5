"""Structured logging."""

from rebalancer_core.logging.setup import account_context, get_logger, setup_logging

__all__ = ["account_context", "get_logger", "setup_logging"]
