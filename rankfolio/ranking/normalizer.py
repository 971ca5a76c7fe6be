"""
Factor normaliser

Turns raw per-metric values of one snapshot into integer ranks (1 = best)
"""
import pandas as pd

from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import Direction, Metric, StockSnapshot

# Which raw values rank best. Valuation and leverage ratios favour low values;
# size, liquidity, growth, quality and yield favour high values.
METRIC_DIRECTIONS: dict[Metric, Direction] = {
    Metric.MARKET_CAP: Direction.DESCENDING,
    Metric.ADTV: Direction.DESCENDING,
    Metric.PRICE_TO_SALES: Direction.ASCENDING,
    Metric.SALES_GROWTH: Direction.DESCENDING,
    Metric.GF_SCORE: Direction.DESCENDING,
    Metric.PE_RATIO: Direction.ASCENDING,
    Metric.DEBT_TO_EQUITY: Direction.ASCENDING,
    Metric.OPERATING_MARGIN: Direction.DESCENDING,
    Metric.ROIC: Direction.DESCENDING,
    Metric.FCF_YIELD: Direction.DESCENDING,
}

TIE_METHODS = ("dense", "min")


class FactorNormalizer:
    """
    Per-metric ranker

    Non-null values get ranks in favourability order; identical values share
    a rank. "dense" ranking gives 1,1,2; "min" (competition) gives 1,1,3.
    Null values receive no rank.

    Usage:
        normalizer = FactorNormalizer()
        ranks = normalizer.rank(snapshot, Metric.PRICE_TO_SALES)
        # {"AAPL": 3, "MSFT": 1, ...}
    """

    def __init__(
        self,
        tie_method: str = "dense",
        directions: dict[Metric, Direction] | None = None,
    ):
        if tie_method not in TIE_METHODS:
            raise ConfigurationError(f"Unknown tie method: {tie_method}", {"allowed": TIE_METHODS})
        self.tie_method = tie_method
        self.directions = {**METRIC_DIRECTIONS, **(directions or {})}

    def direction(self, metric: Metric) -> Direction:
        return self.directions[metric]

    def rank(self, snapshot: list[StockSnapshot], metric: Metric) -> dict[str, int]:
        """
        Rank one metric across a snapshot

        Args:
            snapshot: stocks of one lookback offset (symbols unique)
            metric: metric to rank

        Returns:
            {symbol: rank} for stocks with a value; nulls are absent
        """
        values = pd.Series(
            {stock.symbol: stock.value(metric) for stock in snapshot},
            dtype="float64",
        ).dropna()

        if values.empty:
            return {}

        ascending = self.direction(metric) is Direction.ASCENDING
        ranks = values.rank(method=self.tie_method, ascending=ascending)
        return {symbol: int(rank) for symbol, rank in ranks.items()}

    def rank_all(self, snapshot: list[StockSnapshot]) -> dict[Metric, dict[str, int]]:
        """Ranks for every metric"""
        return {metric: self.rank(snapshot, metric) for metric in Metric}
