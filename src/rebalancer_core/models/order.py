"""Planned order — one entry of the execution plan."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PlannedOrder(BaseModel):
    """A whole-lot market order the gateway should submit."""

    ticker: str
    figi: str | None = None
    direction: Literal["BUY", "SELL"]
    lots: int = Field(ge=1)
    lot_price: float
    value_delta: float

    @property
    def lots_delta(self) -> int:
        return self.lots if self.direction == "BUY" else -self.lots
