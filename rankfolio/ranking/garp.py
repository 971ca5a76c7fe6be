"""
GARP screen

Growth-at-a-reasonable-price: threshold filter on the current snapshot,
then a composite ranking over the GARP metrics using ScoreEngine mechanics.
"""
from rankfolio.core.interfaces import GARP_METRICS, Metric, RankedStock, StockSnapshot
from rankfolio.core.logger import get_logger
from rankfolio.ranking.engine import ScoreEngine
from rankfolio.ranking.weights import GarpThresholds, MetricWeightVector, require_garp_weights


class GarpScreener:
    """
    GARP filter + ranking

    Filter rules:
    - a stock needs at least one GARP value
    - P/E and debt/equity at or below their maximums
    - operating margin, ROIC, FCF yield and sales growth at or above their minimums
    - a missing value passes its own threshold

    Usage:
        screener = GarpScreener(engine)
        results = screener.screen(snapshot, garp_weights, GarpThresholds(max_pe=25), limit=50)
    """

    def __init__(self, engine: ScoreEngine | None = None):
        self.logger = get_logger(self.__class__.__name__)
        self.engine = engine or ScoreEngine()

    def passes(self, stock: StockSnapshot, thresholds: GarpThresholds) -> bool:
        """Apply the threshold filter to one stock"""
        if all(stock.value(metric) is None for metric in GARP_METRICS):
            return False

        pe = stock.value(Metric.PE_RATIO)
        if pe is not None and pe > thresholds.max_pe:
            return False

        debt = stock.value(Metric.DEBT_TO_EQUITY)
        if debt is not None and debt > thresholds.max_debt_to_equity:
            return False

        minimums = (
            (Metric.OPERATING_MARGIN, thresholds.min_operating_margin),
            (Metric.ROIC, thresholds.min_roic),
            (Metric.FCF_YIELD, thresholds.min_fcf_yield),
            (Metric.SALES_GROWTH, thresholds.min_sales_growth),
        )
        for metric, minimum in minimums:
            value = stock.value(metric)
            if value is not None and value < minimum:
                return False

        return True

    def screen(
        self,
        snapshot: list[StockSnapshot],
        weights: MetricWeightVector,
        thresholds: GarpThresholds | None = None,
        limit: int | None = None,
    ) -> list[RankedStock]:
        """
        Filter, then rank the survivors

        Args:
            snapshot: current snapshot
            weights: GARP weight vector (GARP metrics only)
            thresholds: screen limits (defaults when None)
            limit: keep only the first N

        Returns:
            RankedStock list; ranks are relative to the filtered set
        """
        require_garp_weights(weights)
        thresholds = thresholds or GarpThresholds()

        candidates = [stock for stock in snapshot if self.passes(stock, thresholds)]
        self.logger.info(
            f"GARP screen: {len(candidates)}/{len(snapshot)} stocks passed {thresholds.to_dict()}"
        )

        return self.engine.rank(candidates, weights, limit=limit)
