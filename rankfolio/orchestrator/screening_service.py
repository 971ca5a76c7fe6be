"""
Screening service

Entry point for callers outside the core (HTTP handlers, scripts). Resolves
weights and thresholds from settings, builds the engines with an injected
provider and runs one operation per call.
"""
from typing import Any, Mapping

from rankfolio.backtest.aggregator import HorizonResults
from rankfolio.backtest.buy_and_hold import HistoricalBacktestResult, HistoricalBuyAndHold
from rankfolio.backtest.equal_weight import EqualWeightQuarterly, EqualWeightResult
from rankfolio.backtest.simulator import AnnualFullRebalance, HoldWinners, PortfolioSimulator
from rankfolio.core.config import BacktestSettings, Config, get_config
from rankfolio.core.exceptions import ConfigurationError, DataUnavailableError
from rankfolio.core.interfaces import RankedStock, SnapshotProvider, StockSnapshot
from rankfolio.core.logger import get_logger
from rankfolio.ranking.engine import ScoreEngine, ScreenFilters
from rankfolio.ranking.garp import GarpScreener
from rankfolio.ranking.normalizer import FactorNormalizer
from rankfolio.ranking.statistics import summarize_snapshot
from rankfolio.ranking.weights import GarpThresholds, MetricWeightVector, resolve_weights

WeightSpec = MetricWeightVector | Mapping[str, Any] | str | None


class ScreeningService:
    """
    Ranking and backtest facade

    Usage:
        service = ScreeningService(SqlSnapshotProvider(db))

        top = service.rank_and_screen("ga_optimized", limit=10)
        annual = service.compute_annual_rebalance_returns("annual_rebalance")
        annual.summary           # {1: 12.3, 2: None, ...}
        garp = service.compute_garp_screen(thresholds={"maxPE": 25})
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        settings: BacktestSettings | None = None,
        config: Config | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.config = config or get_config()
        self.settings = settings or BacktestSettings.from_config(self.config)
        self.provider = provider

        self.engine = ScoreEngine(
            FactorNormalizer(self.settings.tie_method),
            duplicate_symbols=self.settings.duplicate_symbols,
        )
        self.garp = GarpScreener(self.engine)

    # ============================================
    # Settings resolution
    # ============================================
    @property
    def presets(self) -> dict[str, str]:
        return dict(self.config.get_section("presets") or {})

    def resolve_weights(self, weights: WeightSpec) -> MetricWeightVector:
        """Vector, mapping, preset name or dash key; None means the configured default"""
        if weights is None:
            weights = self.config.get_required("ranking.default_weights")
        return resolve_weights(weights, self.presets)

    def _positive(self, name: str, value: int | None, default: int) -> int:
        value = default if value is None else value
        if value < 1:
            raise ConfigurationError(f"{name} must be at least 1", {name: value})
        return value

    # ============================================
    # Ranking
    # ============================================
    def rank_and_screen(
        self,
        weights: WeightSpec = None,
        years_ago: int = 0,
        limit: int | None = None,
        filters: ScreenFilters | None = None,
        snapshot: list[StockSnapshot] | None = None,
    ) -> list[RankedStock]:
        """
        Rank a snapshot and apply optional filters

        Args:
            weights: weight specification
            years_ago: offset to rank (ignored when snapshot is given)
            limit: keep only the first N after filtering
            filters: sector / minimum market cap
            snapshot: explicit snapshot instead of the provider's

        Returns:
            RankedStock list with global overall ranks
        """
        vector = self.resolve_weights(weights)
        if snapshot is None:
            snapshot = self.provider.get_snapshot(years_ago)
        return self.engine.rank_and_screen(snapshot, vector, limit=limit, filters=filters)

    def compute_garp_screen(
        self,
        weights: WeightSpec = None,
        thresholds: GarpThresholds | Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[RankedStock]:
        garp = self.config.get_section("garp")

        vector = self.resolve_weights(weights if weights is not None else garp.get("weights"))

        if not isinstance(thresholds, GarpThresholds):
            merged = dict(garp.get("thresholds") or {})
            merged.update(thresholds or {})
            thresholds = GarpThresholds.from_mapping(merged)

        if limit is None:
            limit = garp.get("limit")

        return self.garp.screen(self.provider.get_snapshot(0), vector, thresholds, limit=limit)

    def get_historical_top_stocks(
        self,
        weights: WeightSpec = None,
        years_ago: int = 5,
        limit: int = 10,
    ) -> dict[int, list[RankedStock] | None]:
        """
        Top stocks at every offset from 0 to years_ago

        Offsets without a snapshot map to None.
        """
        if years_ago < 0:
            raise ConfigurationError("years_ago must not be negative", {"years_ago": years_ago})

        vector = self.resolve_weights(weights)
        results: dict[int, list[RankedStock] | None] = {}

        for offset in range(years_ago + 1):
            try:
                snapshot = self.provider.get_snapshot(offset)
            except DataUnavailableError as e:
                self.logger.warning(f"Historical top stocks: {e}")
                results[offset] = None
                continue
            results[offset] = self.engine.rank(snapshot, vector, limit=limit)

        return results

    def get_statistics(self, years_ago: int = 0) -> dict:
        return summarize_snapshot(self.provider.get_snapshot(years_ago))

    # ============================================
    # Backtests
    # ============================================
    def compute_annual_rebalance_returns(
        self,
        weights: WeightSpec = None,
        portfolio_size: int | None = None,
    ) -> HorizonResults:
        size = self._positive("portfolio_size", portfolio_size, self.settings.portfolio_size)
        simulator = PortfolioSimulator(self.provider, self.engine, self.settings)
        return simulator.run_horizons(self.resolve_weights(weights), AnnualFullRebalance(size))

    def compute_hold_winners_returns(
        self,
        weights: WeightSpec = None,
        portfolio_size: int | None = None,
        keep_threshold: int | None = None,
    ) -> HorizonResults:
        size = self._positive("portfolio_size", portfolio_size, self.settings.portfolio_size)
        threshold = self._positive("keep_threshold", keep_threshold, self.settings.keep_threshold)
        simulator = PortfolioSimulator(self.provider, self.engine, self.settings)
        return simulator.run_horizons(self.resolve_weights(weights), HoldWinners(size, threshold))

    def compute_equal_weight_returns(self, weights: WeightSpec = None, n: int = 10) -> EqualWeightResult:
        backtest = EqualWeightQuarterly(self.provider, self.engine, self.settings)
        return backtest.run(self.resolve_weights(weights), n=n)

    def compute_historical_backtest(
        self,
        weights: WeightSpec = None,
        years_ago: int = 3,
        n: int = 10,
    ) -> HistoricalBacktestResult:
        backtest = HistoricalBuyAndHold(self.provider, self.engine, self.settings)
        return backtest.run(self.resolve_weights(weights), years_ago=years_ago, n=n)


def _print_ranking(stocks: list[RankedStock]) -> None:
    for stock in stocks:
        print(
            f"  {stock.overall_rank:>3}. {stock.symbol:<8} "
            f"score={stock.weighted_score:8.2f}  {stock.snapshot.sector}"
        )


def _print_horizons(results: HorizonResults) -> None:
    for years, result in results.results.items():
        if result is None:
            print(f"  {years}y: -  ({results.errors.get(years, 'no data')})")
        else:
            print(
                f"  {years}y: total {result.total_return:8.2f}%  "
                f"annualized {result.annualized_return:7.2f}%  "
                f"final {result.final_value:10.2f}"
            )


if __name__ == "__main__":
    """
    Run against the snapshot cache:
        python -m rankfolio.orchestrator.screening_service rank --weights ga_optimized --limit 20
        python -m rankfolio.orchestrator.screening_service hold-winners --keep-threshold 15
    """
    import argparse

    from rankfolio.core.database import init_database_from_config
    from rankfolio.core.logger import setup_logger_from_config
    from rankfolio.providers.sql import SqlSnapshotProvider

    parser = argparse.ArgumentParser(description="Stock ranking and backtests")
    parser.add_argument(
        "command",
        choices=["rank", "annual", "hold-winners", "equal-weight", "garp", "history", "stats"],
    )
    parser.add_argument("--weights", type=str, default=None, help="preset name or dash key")
    parser.add_argument("--limit", type=int, default=10, help="number of stocks (default: 10)")
    parser.add_argument("--years-ago", type=int, default=0, help="lookback offset (default: 0)")
    parser.add_argument("--sector", type=str, default=None, help="sector filter")
    parser.add_argument("--keep-threshold", type=int, default=None, help="hold-winners keep rank")
    args = parser.parse_args()

    setup_logger_from_config()
    db = init_database_from_config()
    if not db.health_check():
        raise SystemExit("Snapshot cache is unreachable, check database.connection_string")
    service = ScreeningService(SqlSnapshotProvider(db))

    print("=" * 70)
    print(f"{args.command} (weights: {service.resolve_weights(args.weights).to_key()})")
    print("=" * 70)

    if args.command == "rank":
        filters = ScreenFilters(sector=args.sector) if args.sector else None
        _print_ranking(service.rank_and_screen(args.weights, args.years_ago, args.limit, filters))
    elif args.command == "annual":
        _print_horizons(service.compute_annual_rebalance_returns(args.weights, args.limit))
    elif args.command == "hold-winners":
        _print_horizons(service.compute_hold_winners_returns(
            args.weights, args.limit, args.keep_threshold
        ))
    elif args.command == "equal-weight":
        result = service.compute_equal_weight_returns(args.weights, args.limit)
        for years, annualized in result.summary.items():
            shown = f"{annualized:7.2f}%" if annualized is not None else "-"
            print(f"  {years}y: {shown}  ({result.valid_stocks[years]} stocks)")
    elif args.command == "garp":
        _print_ranking(service.compute_garp_screen(limit=args.limit))
    elif args.command == "history":
        for offset, stocks in service.get_historical_top_stocks(
            args.weights, args.years_ago, args.limit
        ).items():
            symbols = ", ".join(s.symbol for s in stocks) if stocks is not None else "-"
            print(f"  -{offset}y: {symbols}")
    elif args.command == "stats":
        stats = service.get_statistics(args.years_ago)
        print(f"  stocks: {stats['total_stocks']}  GARP coverage: {stats['garp_coverage']}%")
        for metric, values in stats["metrics"].items():
            print(f"  {metric:<16} coverage {values['coverage']:5.1f}%  median {values['median']}")
