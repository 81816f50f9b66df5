"""Position models — one holding plus the fields a rebalancing pass fills in."""

from __future__ import annotations

import math

from pydantic import BaseModel, model_validator


class Position(BaseModel):
    """One instrument holding.

    ``ticker`` is the canonical instrument key, ``figi`` the tradable-unit
    identifier. Currency balances are positions whose ticker equals their
    quote currency (price 1, lot 1).
    """

    ticker: str
    quote: str = "RUB"
    figi: str | None = None
    quantity: float = 0.0
    lot_size: int = 1
    price: float | None = None
    total_value: float | None = None
    avg_price_fifo: float | None = None
    avg_price: float | None = None

    # Filled in by the target resolver
    target_value: float | None = None
    target_lots: int | None = None
    target_lots_value: float | None = None
    unallocated: float | None = None
    lots_delta: float = 0.0
    value_delta: float = 0.0

    @model_validator(mode="after")
    def _fill_total_value(self) -> "Position":
        if self.total_value is None and self.price is not None:
            self.total_value = self.quantity * self.price
        return self

    @property
    def is_currency(self) -> bool:
        return self.ticker == self.quote

    @property
    def lot_price(self) -> float | None:
        if self.price is None:
            return None
        return self.lot_size * self.price

    @property
    def current_lots(self) -> float:
        return self.quantity / self.lot_size if self.lot_size else 0.0

    @property
    def value(self) -> float:
        """Total value as a plain number, 0 when unknown or non-finite."""
        if self.total_value is None or not math.isfinite(self.total_value):
            return 0.0
        return self.total_value

    @property
    def acquisition_price(self) -> float | None:
        """FIFO average when known, simple average otherwise."""
        if self.avg_price_fifo:
            return self.avg_price_fifo
        if self.avg_price:
            return self.avg_price
        return None

    def reprice(self, price: float) -> None:
        self.price = price
        self.total_value = self.quantity * price


class MarginPosition(Position):
    """A position whose value exceeds what unleveraged cash could have bought."""

    is_margin: bool = True
    margin_value: float = 0.0
    leverage: float = 1.0
    margin_call: bool = False


Wallet = list[Position]
