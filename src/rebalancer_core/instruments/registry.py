"""Read-only instrument registry: ticker → tradable id and lot size."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from rebalancer_core.config.schema import InstrumentConfig
from rebalancer_core.instruments.aliases import canonical_key


@dataclass(frozen=True)
class Instrument:
    ticker: str
    figi: str
    lot: int
    currency: str = "RUB"


class InstrumentRegistry:
    """Instruments keyed by canonical ticker. Built once, never mutated."""

    def __init__(self, instruments: Iterable[Instrument] = ()) -> None:
        self._by_ticker: dict[str, Instrument] = {}
        self._by_figi: dict[str, Instrument] = {}
        for instrument in instruments:
            key = canonical_key(instrument.ticker)
            self._by_ticker[key] = instrument
            self._by_figi[instrument.figi] = instrument

    @classmethod
    def from_config(cls, entries: Iterable[InstrumentConfig]) -> "InstrumentRegistry":
        return cls(
            Instrument(ticker=e.ticker, figi=e.figi, lot=e.lot, currency=e.currency.upper())
            for e in entries
        )

    def get(self, ticker: str) -> Instrument | None:
        return self._by_ticker.get(canonical_key(ticker))

    def by_figi(self, figi: str) -> Instrument | None:
        return self._by_figi.get(figi)

    def __contains__(self, ticker: object) -> bool:
        return isinstance(ticker, str) and canonical_key(ticker) in self._by_ticker

    def __iter__(self) -> Iterator[Instrument]:
        return iter(self._by_ticker.values())

    def __len__(self) -> int:
        return len(self._by_ticker)
