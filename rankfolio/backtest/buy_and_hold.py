"""
Historical buy-and-hold

Pick the top N at a past offset and hold them until as_of
"""
from dataclasses import dataclass, field
from datetime import date

from rankfolio.backtest.aggregator import ReturnAggregator
from rankfolio.backtest.pricing import PriceBook, period_date
from rankfolio.core.config import BacktestSettings
from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import RankedStock, SnapshotProvider
from rankfolio.core.logger import get_logger
from rankfolio.ranking.engine import ScoreEngine
from rankfolio.ranking.normalizer import FactorNormalizer
from rankfolio.ranking.weights import MetricWeightVector


@dataclass
class StockReturn:
    """Buy-and-hold outcome of one symbol over one window"""
    symbol: str
    rank: int
    buy_price: float | None
    sell_price: float | None
    total_return: float | None          # %
    annualized_return: float | None     # %

    @property
    def is_valid(self) -> bool:
        return self.total_return is not None

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "rank": self.rank,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "total_return": _rounded(self.total_return),
            "annualized_return": _rounded(self.annualized_return),
        }


def _rounded(value: float | None, digits: int = 4) -> float | None:
    return round(value, digits) if value is not None else None


def holding_return(
    prices: PriceBook,
    aggregator: ReturnAggregator,
    stock: RankedStock,
    start: date,
    end: date,
    years: int,
) -> StockReturn:
    """Return of one stock bought at start and sold at end (None when unpriced)"""
    buy = prices.price(stock.symbol, start)
    sell = prices.price(stock.symbol, end)

    total = annualized = None
    if buy is not None and sell is not None:
        total = (sell / buy - 1.0) * 100
        annualized = aggregator.annualize(total, years)

    return StockReturn(
        symbol=stock.symbol,
        rank=stock.overall_rank,
        buy_price=buy,
        sell_price=sell,
        total_return=total,
        annualized_return=annualized,
    )


@dataclass
class HistoricalBacktestResult:
    years_ago: int
    start_date: date
    end_date: date
    stocks: list[StockReturn] = field(default_factory=list)
    portfolio_return: float | None = None           # %
    portfolio_annualized: float | None = None       # %

    @property
    def valid_stocks(self) -> int:
        return sum(1 for stock in self.stocks if stock.is_valid)

    def to_dict(self) -> dict:
        return {
            "years_ago": self.years_ago,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "stocks": [stock.to_dict() for stock in self.stocks],
            "portfolio_return": _rounded(self.portfolio_return),
            "portfolio_annualized": _rounded(self.portfolio_annualized),
            "valid_stocks": self.valid_stocks,
        }


class HistoricalBuyAndHold:
    """
    Top-N at an offset, held to the present

    The portfolio return is the equal-weighted mean of the stocks that have
    both a buy and a sell price; unpriced picks are reported but excluded.

    Usage:
        backtest = HistoricalBuyAndHold(provider)
        result = backtest.run(weights, years_ago=3, n=10)
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

    def run(self, weights: MetricWeightVector, years_ago: int, n: int = 10) -> HistoricalBacktestResult:
        if years_ago < 1:
            raise ConfigurationError("years_ago must be at least 1", {"years_ago": years_ago})
        if n < 1:
            raise ConfigurationError("n must be at least 1", {"n": n})

        prices = PriceBook(self.provider, self.settings.price_max_staleness_days)
        end = self.provider.as_of
        start = period_date(end, years_ago)

        picks = self.engine.rank(self.provider.get_snapshot(years_ago), weights, limit=n)
        stocks = [
            holding_return(prices, self.aggregator, stock, start, end, years_ago)
            for stock in picks
        ]

        result = HistoricalBacktestResult(
            years_ago=years_ago, start_date=start, end_date=end, stocks=stocks
        )

        valid = [stock.total_return for stock in stocks if stock.is_valid]
        if valid:
            result.portfolio_return = sum(valid) / len(valid)
            result.portfolio_annualized = self.aggregator.annualize(result.portfolio_return, years_ago)
        else:
            self.logger.warning(f"No priced picks {years_ago} years ago ({len(picks)} selected)")

        return result
