"""
Price lookup

Per-invocation memo over the provider's price histories. A price is the
last close on or before the requested date, within a staleness bound.
"""
from datetime import date

import pandas as pd

from rankfolio.core.interfaces import SnapshotProvider, clean_value
from rankfolio.core.logger import get_logger


def period_date(as_of: date, years_ago: int) -> date:
    """Calendar date of a lookback offset (as_of minus k years)"""
    return (pd.Timestamp(as_of) - pd.DateOffset(years=years_ago)).date()


def shift_months(start: date, months: int) -> date:
    return (pd.Timestamp(start) + pd.DateOffset(months=months)).date()


class PriceBook:
    """
    Price-on-or-before lookup

    Usage:
        prices = PriceBook(provider, max_staleness_days=10)
        close = prices.price("AAPL", date(2022, 6, 30))   # None when unknown
    """

    def __init__(self, provider: SnapshotProvider, max_staleness_days: int = 10):
        self.logger = get_logger(self.__class__.__name__)
        self.provider = provider
        self.max_staleness = pd.Timedelta(days=max_staleness_days)
        self._histories: dict[str, pd.Series | None] = {}

    def history(self, symbol: str) -> pd.Series | None:
        """Sorted, NaN-free close series for a symbol (memoised)"""
        if symbol in self._histories:
            return self._histories[symbol]

        series = self.provider.get_price_history(symbol)
        if series is not None:
            series = series.copy()
            series.index = pd.to_datetime(series.index)
            series = pd.to_numeric(series, errors="coerce").dropna().sort_index()
            if series.empty:
                series = None

        if series is None:
            self.logger.debug(f"No price history for {symbol}")

        self._histories[symbol] = series
        return series

    def price(self, symbol: str, on: date) -> float | None:
        """
        Close on or before a date

        Returns:
            positive price, or None when there is no close within the
            staleness bound
        """
        series = self.history(symbol)
        if series is None:
            return None

        target = pd.Timestamp(on)
        window = series.loc[:target]
        if window.empty:
            return None

        if target - window.index[-1] > self.max_staleness:
            return None

        value = clean_value(window.iloc[-1])
        if value is None or value <= 0:
            return None
        return value

    def has_price(self, symbol: str, on: date) -> bool:
        return self.price(symbol, on) is not None

    def prices(self, symbols: list[str], on: date) -> dict[str, float | None]:
        return {symbol: self.price(symbol, on) for symbol in symbols}
