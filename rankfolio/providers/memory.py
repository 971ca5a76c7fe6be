"""
In-memory snapshot provider

Holds snapshots and price series passed in by the caller. Used by tests
and by callers that already have the data loaded.
"""
from datetime import date

import pandas as pd

from rankfolio.core.exceptions import DataUnavailableError
from rankfolio.core.interfaces import SnapshotProvider, StockSnapshot


class InMemorySnapshotProvider(SnapshotProvider):
    """
    Usage:
        provider = InMemorySnapshotProvider(
            snapshots={0: [...], 1: [...]},
            prices={"AAPL": pd.Series(...)},
            as_of=date(2024, 12, 31),
        )
    """

    def __init__(
        self,
        snapshots: dict[int, list[StockSnapshot | dict]],
        prices: dict[str, pd.Series] | None = None,
        as_of: date | None = None,
    ):
        self._as_of = as_of or date.today()
        self._snapshots: dict[int, tuple[StockSnapshot, ...]] = {
            int(years_ago): tuple(
                stock if isinstance(stock, StockSnapshot) else StockSnapshot.from_dict(stock, years_ago)
                for stock in stocks
            )
            for years_ago, stocks in snapshots.items()
        }
        self._prices = {symbol.upper(): series for symbol, series in (prices or {}).items()}

    @property
    def as_of(self) -> date:
        return self._as_of

    @property
    def offsets(self) -> list[int]:
        return sorted(self._snapshots)

    def get_snapshot(self, years_ago: int) -> list[StockSnapshot]:
        stocks = self._snapshots.get(years_ago)
        if not stocks:
            raise DataUnavailableError(f"No snapshot {years_ago} years ago", years_ago)
        return list(stocks)

    def get_price_history(self, symbol: str) -> pd.Series | None:
        return self._prices.get(symbol.upper())
