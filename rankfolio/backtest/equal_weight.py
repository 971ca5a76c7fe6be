"""
Equal-weight quarterly backtest

Today's top N, re-equalised every quarter, over trailing windows that
end at as_of.
"""
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from rankfolio.backtest.aggregator import ReturnAggregator
from rankfolio.backtest.buy_and_hold import StockReturn, holding_return
from rankfolio.backtest.pricing import PriceBook, period_date, shift_months
from rankfolio.core.config import BacktestSettings
from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import RankedStock, SnapshotProvider
from rankfolio.core.logger import get_logger
from rankfolio.ranking.engine import ScoreEngine
from rankfolio.ranking.normalizer import FactorNormalizer
from rankfolio.ranking.weights import MetricWeightVector


def rebalance_dates(as_of: date, years: int, months: int = 3) -> list[date]:
    """Every `months` from as_of - years, plus as_of itself"""
    start = period_date(as_of, years)
    steps = years * 12 // months
    return [shift_months(start, months * i) for i in range(steps)] + [as_of]


@dataclass
class WindowReturn:
    """Equal-weighted portfolio over one trailing window"""
    years: int
    total_return: float                  # %
    annualized_return: float             # %
    quarterly_returns: list[float]       # fractional
    included: list[str]

    @property
    def valid_stocks(self) -> int:
        return len(self.included)

    def to_dict(self) -> dict:
        return {
            "years": self.years,
            "total_return": round(self.total_return, 4),
            "annualized_return": round(self.annualized_return, 4),
            "quarterly_returns": [round(r * 100, 4) for r in self.quarterly_returns],
            "included": list(self.included),
            "valid_stocks": self.valid_stocks,
        }


@dataclass
class EqualWeightResult:
    stocks: list[RankedStock]
    windows: dict[int, WindowReturn | None] = field(default_factory=dict)
    stock_returns: dict[int, list[StockReturn]] = field(default_factory=dict)

    @property
    def valid_stocks(self) -> dict[int, int]:
        return {
            years: (window.valid_stocks if window is not None else 0)
            for years, window in self.windows.items()
        }

    @property
    def summary(self) -> dict[int, float | None]:
        """Window -> annualized return %"""
        return {
            years: (window.annualized_return if window is not None else None)
            for years, window in self.windows.items()
        }

    def to_dict(self) -> dict:
        return {
            "stocks": [stock.to_dict() for stock in self.stocks],
            "windows": {
                years: (window.to_dict() if window is not None else None)
                for years, window in self.windows.items()
            },
            "stock_returns": {
                years: [r.to_dict() for r in returns]
                for years, returns in self.stock_returns.items()
            },
            "valid_stocks": self.valid_stocks,
            "summary": self.summary,
        }


class EqualWeightQuarterly:
    """
    Quarterly re-equalised top-N

    The top N are selected once from the current snapshot. A stock takes
    part in a window only when it has a price on every rebalance date of
    that window; each quarter's return is the plain mean of the included
    stocks' returns, compounded over the window.

    Usage:
        backtest = EqualWeightQuarterly(provider)
        result = backtest.run(weights, n=10)
        result.valid_stocks   # {1: 10, 2: 9, ...}
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        engine: ScoreEngine | None = None,
        settings: BacktestSettings | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.provider = provider
        self.settings = settings or BacktestSettings()
        self.engine = engine or ScoreEngine(
            FactorNormalizer(self.settings.tie_method),
            duplicate_symbols=self.settings.duplicate_symbols,
        )
        self.aggregator = ReturnAggregator()

    def price_matrix(self, prices: PriceBook, symbols: list[str], dates: list[date]) -> pd.DataFrame:
        """Rows are rebalance dates, columns symbols, NaN where unpriced"""
        data = {
            symbol: [prices.price(symbol, day) for day in dates]
            for symbol in symbols
        }
        frame = pd.DataFrame(data, index=pd.DatetimeIndex(dates), columns=symbols)
        return frame.astype("float64")

    def window(self, prices: PriceBook, symbols: list[str], years: int) -> WindowReturn | None:
        dates = rebalance_dates(self.provider.as_of, years, self.settings.rebalance_months)
        matrix = self.price_matrix(prices, symbols, dates).dropna(axis=1)

        if matrix.empty:
            self.logger.warning(f"{years}y window: no stock priced on every rebalance date")
            return None

        quarterly = (matrix / matrix.shift(1) - 1.0).iloc[1:].mean(axis=1).tolist()
        total = self.aggregator.cumulative(quarterly) * 100

        return WindowReturn(
            years=years,
            total_return=total,
            annualized_return=self.aggregator.annualize(total, years),
            quarterly_returns=quarterly,
            included=list(matrix.columns),
        )

    def run(
        self,
        weights: MetricWeightVector,
        n: int = 10,
        horizons: tuple[int, ...] | None = None,
    ) -> EqualWeightResult:
        """
        Compute every window

        Args:
            weights: selection weights
            n: number of stocks
            horizons: window lengths in years (settings horizons when None)

        Returns:
            EqualWeightResult; a window with no fully priced stock is None
        """
        if n < 1:
            raise ConfigurationError("n must be at least 1", {"n": n})

        horizons = horizons or self.settings.horizons
        as_of = self.provider.as_of
        prices = PriceBook(self.provider, self.settings.price_max_staleness_days)

        stocks = self.engine.rank(self.provider.get_snapshot(0), weights, limit=n)
        symbols = [stock.symbol for stock in stocks]
        self.logger.info(f"Equal-weight top {n}: {symbols}")

        result = EqualWeightResult(stocks=stocks)
        for years in horizons:
            result.windows[years] = self.window(prices, symbols, years)
            start = period_date(as_of, years)
            result.stock_returns[years] = [
                holding_return(prices, self.aggregator, stock, start, as_of, years)
                for stock in stocks
            ]

        return result
