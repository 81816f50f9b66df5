"""Instrument registry and ticker aliasing."""

from rebalancer_core.instruments.aliases import (
    TICKER_ALIASES,
    canonical_key,
    canonicalize_weights,
    tickers_equal,
)
from rebalancer_core.instruments.registry import Instrument, InstrumentRegistry

__all__ = [
    "TICKER_ALIASES",
    "Instrument",
    "InstrumentRegistry",
    "canonical_key",
    "canonicalize_weights",
    "tickers_equal",
]
