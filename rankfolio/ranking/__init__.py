"""
Ranking module

- weights.py: weight vectors and GARP thresholds
- normalizer.py: per-metric ranks
- engine.py: weighted score ranking and screening
- garp.py: GARP filter + ranking
- statistics.py: snapshot summaries
"""
from rankfolio.ranking.weights import (
    MetricWeightVector,
    GarpThresholds,
    resolve_weights,
    require_garp_weights,
)
from rankfolio.ranking.normalizer import FactorNormalizer, METRIC_DIRECTIONS
from rankfolio.ranking.engine import ScoreEngine, ScreenFilters
from rankfolio.ranking.garp import GarpScreener
from rankfolio.ranking.statistics import summarize_snapshot

__all__ = [
    "MetricWeightVector",
    "GarpThresholds",
    "resolve_weights",
    "require_garp_weights",
    "FactorNormalizer",
    "METRIC_DIRECTIONS",
    "ScoreEngine",
    "ScreenFilters",
    "GarpScreener",
    "summarize_snapshot",
]
