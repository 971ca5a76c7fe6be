"""
Score engine

Combines per-metric ranks with a weight vector into one ordered ranking.
Used for live screening and as the selection rule inside the simulator.
"""
from dataclasses import dataclass, replace

from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import Metric, RankedStock, StockSnapshot
from rankfolio.core.logger import get_logger
from rankfolio.ranking.normalizer import FactorNormalizer
from rankfolio.ranking.weights import MetricWeightVector


@dataclass(frozen=True)
class ScreenFilters:
    """Optional post-ranking filters (global ranks are preserved)"""
    sector: str | None = None
    min_market_cap: float | None = None

    def accepts(self, stock: RankedStock) -> bool:
        if self.sector and stock.snapshot.sector.lower() != self.sector.lower():
            return False
        if self.min_market_cap is not None:
            market_cap = stock.snapshot.value(Metric.MARKET_CAP)
            if market_cap is None or market_cap < self.min_market_cap:
                return False
        return True


class ScoreEngine:
    """
    Weighted rank scorer

    weighted_score = sum over weighted metrics of weight/100 * rank.
    A missing value on a weighted metric takes the penalty rank
    count(ranked) + 1. Lower scores rank first; ties go to the
    alphabetically first symbol.

    Usage:
        engine = ScoreEngine()
        ranking = engine.rank(snapshot, weights, limit=10)
        screened = engine.rank_and_screen(snapshot, weights, 25,
                                          ScreenFilters(sector="Technology"))
    """

    def __init__(
        self,
        normalizer: FactorNormalizer | None = None,
        duplicate_symbols: dict[str, str] | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.normalizer = normalizer or FactorNormalizer()
        self.duplicate_symbols = {k.upper(): v.upper() for k, v in (duplicate_symbols or {}).items()}

    def merge_duplicates(self, snapshot: list[StockSnapshot]) -> list[StockSnapshot]:
        """
        Collapse share classes of one company (e.g. GOOGL into GOOG)

        ADTV is summed across the group; every other value comes from the
        canonical symbol when present, otherwise from the first member.
        """
        if not self.duplicate_symbols:
            return list(snapshot)

        groups: dict[str, list[StockSnapshot]] = {}
        for stock in snapshot:
            canonical = self.duplicate_symbols.get(stock.symbol, stock.symbol)
            groups.setdefault(canonical, []).append(stock)

        merged: list[StockSnapshot] = []
        for canonical, group in groups.items():
            if len(group) == 1:
                merged.append(group[0])
                continue

            group = sorted(group, key=lambda s: s.symbol != canonical)
            primary = group[0]
            adtv_values = [s.value(Metric.ADTV) for s in group]
            total_adtv = sum(v for v in adtv_values if v is not None)
            values = dict(primary.values)
            values[Metric.ADTV] = total_adtv if any(v is not None for v in adtv_values) else None

            merged.append(replace(
                primary,
                symbol=canonical,
                values=values,
                merged_from=tuple(s.symbol for s in group if s.symbol != canonical),
            ))
            self.logger.debug(f"Merged {[s.symbol for s in group]} into {canonical}")

        return merged

    def rank(
        self,
        snapshot: list[StockSnapshot],
        weights: MetricWeightVector,
        limit: int | None = None,
    ) -> list[RankedStock]:
        """
        Rank a snapshot

        Args:
            snapshot: stocks of one lookback offset
            weights: validated weight vector
            limit: keep only the first N (None keeps all)

        Returns:
            RankedStock list sorted by weighted score, overall_rank set
        """
        if not isinstance(weights, MetricWeightVector):
            raise ConfigurationError("weights must be a MetricWeightVector")
        if limit is not None and limit < 0:
            raise ConfigurationError("limit must not be negative", {"limit": limit})

        stocks = self.merge_duplicates(snapshot)
        metric_ranks = self.normalizer.rank_all(stocks)
        active = weights.active()

        penalties = {metric: len(metric_ranks[metric]) + 1 for metric in active}

        scored: list[tuple[int, str, RankedStock]] = []
        for stock in stocks:
            ranks = {metric: metric_ranks[metric].get(stock.symbol) for metric in Metric}

            # integer numerator keeps ties exact
            numerator = 0
            for metric, weight in active.items():
                rank = ranks[metric]
                numerator += weight * (rank if rank is not None else penalties[metric])

            scored.append((
                numerator,
                stock.symbol,
                RankedStock(snapshot=stock, ranks=ranks, weighted_score=numerator / 100),
            ))

        scored.sort(key=lambda item: (item[0], item[1]))

        ranked = []
        for position, (_, _, stock) in enumerate(scored, start=1):
            stock.overall_rank = position
            ranked.append(stock)

        self.logger.debug(
            f"Ranked {len(ranked)} stocks with weights {weights.to_key()}"
        )

        return ranked if limit is None else ranked[:limit]

    def rank_and_screen(
        self,
        snapshot: list[StockSnapshot],
        weights: MetricWeightVector,
        limit: int | None = None,
        filters: ScreenFilters | None = None,
    ) -> list[RankedStock]:
        """Rank the whole snapshot, then filter and truncate"""
        ranked = self.rank(snapshot, weights)
        if filters is not None:
            ranked = [stock for stock in ranked if filters.accepts(stock)]
        if limit is not None:
            if limit < 0:
                raise ConfigurationError("limit must not be negative", {"limit": limit})
            ranked = ranked[:limit]
        return ranked

    def top_symbols(
        self,
        snapshot: list[StockSnapshot],
        weights: MetricWeightVector,
        n: int,
    ) -> list[str]:
        return [stock.symbol for stock in self.rank(snapshot, weights, limit=n)]
