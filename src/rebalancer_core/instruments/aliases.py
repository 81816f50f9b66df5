"""Canonical instrument keys.

Exchanges rename tickers and some APIs append an ``@`` suffix. Every raw key
is mapped through :func:`canonical_key` once, when a wallet or desired
wallet enters the engine.
"""

from __future__ import annotations

from collections.abc import Mapping

TICKER_ALIASES: Mapping[str, str] = {
    "TRAY": "TPAY",
}


def canonical_key(raw: str) -> str:
    key = raw.strip().upper()
    if key.endswith("@"):
        key = key[:-1]
    return TICKER_ALIASES.get(key, key)


def tickers_equal(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return canonical_key(a) == canonical_key(b)


def canonicalize_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """Re-key a weight map canonically; weights of aliased duplicates are summed."""
    result: dict[str, float] = {}
    for raw, weight in weights.items():
        key = canonical_key(raw)
        result[key] = result.get(key, 0.0) + float(weight)
    return result
