"""
Portfolio simulator

Year-by-year state machine (EMPTY -> HOLDING -> EMPTY) over historical
snapshots. Each period ranks the snapshot of that offset, trades at the
period date and records one or more ledger entries.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

from rankfolio.backtest.aggregator import BacktestResult, HorizonResults, ReturnAggregator
from rankfolio.backtest.ledger import Buy, Hold, Rebalance, Transaction
from rankfolio.backtest.portfolio import Candidate, Portfolio
from rankfolio.backtest.pricing import PriceBook, period_date
from rankfolio.core.config import BacktestSettings
from rankfolio.core.exceptions import (
    ComputationError,
    ConfigurationError,
    DataError,
    InsufficientDataError,
)
from rankfolio.core.interfaces import PortfolioState, RankedStock, SnapshotProvider
from rankfolio.core.logger import get_logger
from rankfolio.ranking.engine import ScoreEngine
from rankfolio.ranking.normalizer import FactorNormalizer
from rankfolio.ranking.weights import MetricWeightVector


@dataclass
class Period:
    """One trading instant of a simulation"""
    years_ago: int
    date: date
    ranked: list[RankedStock]
    prices: PriceBook
    unpriced: tuple[str, ...] = ()

    def candidates(self, exclude: set[str] | None = None, limit: int | None = None) -> list[Candidate]:
        """Best-ranked symbols that have a price on this date"""
        exclude = exclude or set()
        found: list[Candidate] = []
        for stock in self.ranked:
            if limit is not None and len(found) >= limit:
                break
            if stock.symbol in exclude:
                continue
            price = self.prices.price(stock.symbol, self.date)
            if price is None:
                continue
            found.append(Candidate(symbol=stock.symbol, price=price, rank=stock.overall_rank))
        return found


# ============================================
# Strategies
# ============================================
class RebalanceStrategy(ABC):
    """Decides what happens to a HOLDING portfolio at each period"""

    name: str = ""

    def __init__(self, portfolio_size: int = 10):
        if portfolio_size < 1:
            raise ConfigurationError(
                "portfolio_size must be at least 1", {"portfolio_size": portfolio_size}
            )
        self.portfolio_size = portfolio_size

    def open(self, portfolio: Portfolio, period: Period) -> Buy:
        """Buy the top valid candidates into an empty portfolio"""
        candidates = period.candidates(limit=self.portfolio_size)
        if not candidates:
            raise InsufficientDataError(
                f"No priced candidates on {period.date}",
                {"years_ago": period.years_ago, "ranked": len(period.ranked)},
            )
        return portfolio.open(candidates, self.portfolio_size, period.years_ago, period.date)

    @abstractmethod
    def rebalance(self, portfolio: Portfolio, period: Period) -> list[Transaction]:
        """Transactions for a period where the portfolio is HOLDING"""
        pass


class AnnualFullRebalance(RebalanceStrategy):
    """Sell everything, buy the new top N"""

    name = "annual_rebalance"

    def rebalance(self, portfolio: Portfolio, period: Period) -> list[Transaction]:
        sell = portfolio.liquidate(period.years_ago, period.date, period.unpriced)
        return [sell, self.open(portfolio, period)]


class HoldWinners(RebalanceStrategy):
    """
    Keep holdings still ranked within keep_threshold, replace the rest

    keep_threshold == 1 degenerates to full turnover and behaves exactly
    like AnnualFullRebalance.
    """

    name = "hold_winners"

    def __init__(self, portfolio_size: int = 10, keep_threshold: int = 20):
        super().__init__(portfolio_size)
        if keep_threshold < 1:
            raise ConfigurationError(
                "keep_threshold must be at least 1", {"keep_threshold": keep_threshold}
            )
        self.keep_threshold = keep_threshold

    def rebalance(self, portfolio: Portfolio, period: Period) -> list[Transaction]:
        if self.keep_threshold == 1:
            return AnnualFullRebalance(self.portfolio_size).rebalance(portfolio, period)

        ranks = {stock.symbol: stock.overall_rank for stock in period.ranked}

        kept: list[str] = []
        losers: set[str] = set()
        for holding in portfolio.holdings:
            rank = ranks.get(holding.symbol)
            if rank is not None and rank <= self.keep_threshold:
                holding.rank = rank
                kept.append(holding.symbol)
            else:
                losers.add(holding.symbol)

        value = portfolio.value
        trades = portfolio.sell(losers)
        sold = tuple(trade.symbol for trade in trades)

        open_slots = self.portfolio_size - len(kept)
        candidates = period.candidates(exclude=set(kept), limit=max(open_slots, 0))
        if not kept and not candidates:
            raise InsufficientDataError(
                f"No priced candidates on {period.date}",
                {"years_ago": period.years_ago, "sold": list(sold)},
            )

        bought, shortfall, buy_prices = portfolio.buy(candidates, open_slots, period.date)

        if not sold and not bought:
            return [Hold(
                years_ago=period.years_ago,
                date=period.date,
                portfolio_value=value,
                kept=tuple(kept),
                unpriced=period.unpriced,
            )]

        return [Rebalance(
            years_ago=period.years_ago,
            date=period.date,
            portfolio_value=value,
            kept=tuple(kept),
            sold=sold,
            bought=bought,
            trades=tuple(trades),
            buy_prices=buy_prices,
            shortfall=shortfall,
            unpriced=period.unpriced,
        )]


# ============================================
# Simulator
# ============================================
class PortfolioSimulator:
    """
    Runs a strategy over one or more horizons

    Usage:
        simulator = PortfolioSimulator(provider, settings=BacktestSettings())
        result = simulator.run(weights, 3, AnnualFullRebalance(10))
        by_horizon = simulator.run_horizons(weights, HoldWinners(10, 20))
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        engine: ScoreEngine | None = None,
        settings: BacktestSettings | None = None,
        aggregator: ReturnAggregator | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.provider = provider
        self.settings = settings or BacktestSettings()
        self.engine = engine or ScoreEngine(
            FactorNormalizer(self.settings.tie_method),
            duplicate_symbols=self.settings.duplicate_symbols,
        )
        self.aggregator = aggregator or ReturnAggregator()

    def price_book(self) -> PriceBook:
        return PriceBook(self.provider, self.settings.price_max_staleness_days)

    def run(
        self,
        weights: MetricWeightVector,
        years: int,
        strategy: RebalanceStrategy,
        prices: PriceBook | None = None,
    ) -> BacktestResult:
        """
        Simulate one horizon

        Args:
            weights: selection weights
            years: horizon length (first purchase at as_of - years)
            strategy: what to do with a HOLDING portfolio each period
            prices: shared price memo (a fresh one when None)

        Returns:
            BacktestResult

        Raises:
            DataUnavailableError: a snapshot in the horizon is missing
            InsufficientDataError: nothing could be bought
            ComputationError: degenerate returns
        """
        if years < 1:
            raise ConfigurationError("Horizon must be at least one year", {"years": years})

        prices = prices or self.price_book()
        portfolio = Portfolio(self.settings.initial_value)
        ledger: list[Transaction] = []
        as_of = self.provider.as_of

        for years_ago in range(years, -1, -1):
            on = period_date(as_of, years_ago)
            unpriced = portfolio.mark(prices, on)
            if unpriced:
                self.logger.debug(f"{on}: no price for {list(unpriced)}, using last mark")

            if years_ago == 0:
                ledger.append(portfolio.liquidate(0, on, unpriced))
                break

            ranked = self.engine.rank(self.provider.get_snapshot(years_ago), weights)
            period = Period(years_ago=years_ago, date=on, ranked=ranked, prices=prices, unpriced=unpriced)

            if portfolio.state is PortfolioState.EMPTY:
                ledger.append(strategy.open(portfolio, period))
            else:
                ledger.extend(strategy.rebalance(portfolio, period))

        result = self.aggregator.summarize(
            ledger, self.settings.initial_value, years, strategy=strategy.name
        )
        self.logger.info(
            f"{strategy.name} {years}y: {result.total_return:.2f}% total, "
            f"{result.annualized_return:.2f}% annualized ({len(ledger)} transactions)"
        )
        return result

    def run_horizons(
        self,
        weights: MetricWeightVector,
        strategy: RebalanceStrategy,
        horizons: tuple[int, ...] | None = None,
    ) -> HorizonResults:
        """
        Simulate every horizon

        Data and computation failures are local to their horizon: it maps
        to None and the reason is recorded. Configuration errors propagate.
        """
        horizons = horizons or self.settings.horizons
        prices = self.price_book()

        results: dict[int, BacktestResult | None] = {}
        errors: dict[int, str] = {}

        for years in horizons:
            try:
                results[years] = self.run(weights, years, strategy, prices)
            except (DataError, ComputationError) as e:
                self.logger.warning(f"{strategy.name} {years}y skipped: {e}")
                results[years] = None
                errors[years] = str(e)

        return HorizonResults(results=results, errors=errors)
