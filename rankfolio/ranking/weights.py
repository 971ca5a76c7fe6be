"""
Weight vectors and screen thresholds

Both are closed, validated structs: unknown keys are rejected when the
object is built, never when it is used.
"""
import math
from dataclasses import dataclass, fields
from typing import Any, Iterator, Mapping

from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import Metric, GARP_METRICS

WEIGHT_MIN = 0
WEIGHT_MAX = 100
WEIGHT_TOTAL = 100


@dataclass(frozen=True)
class MetricWeightVector:
    """
    Integer weight per metric, summing to exactly 100

    Usage:
        weights = MetricWeightVector(market_cap=5, adtv=30, price_to_sales=5,
                                     sales_growth=50, gf_score=5, pe_ratio=5)
        weights = MetricWeightVector.from_mapping({"marketCap": 50, "adtv": 50})
        weights = MetricWeightVector.from_key("5-30-5-50-5-5-0-0-0-0")
    """
    market_cap: int = 0
    adtv: int = 0
    price_to_sales: int = 0
    sales_growth: int = 0
    gf_score: int = 0
    pe_ratio: int = 0
    debt_to_equity: int = 0
    operating_margin: int = 0
    roic: int = 0
    fcf_yield: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int):
                if isinstance(value, float) and value.is_integer():
                    object.__setattr__(self, f.name, int(value))
                    value = int(value)
                else:
                    raise ConfigurationError(
                        f"Weight for {f.name} must be an integer", {"value": value}
                    )
            if not WEIGHT_MIN <= value <= WEIGHT_MAX:
                raise ConfigurationError(
                    f"Weight for {f.name} out of range [{WEIGHT_MIN}, {WEIGHT_MAX}]",
                    {"value": value},
                )

        total = sum(getattr(self, f.name) for f in fields(self))
        if total != WEIGHT_TOTAL:
            raise ConfigurationError(
                f"Weights must sum to {WEIGHT_TOTAL}", {"total": total}
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, Any]) -> "MetricWeightVector":
        """Build from camelCase, snake_case or Metric keys; unset metrics are 0"""
        kwargs: dict[str, Any] = {}
        for key, value in mapping.items():
            metric = Metric.parse(key)
            if metric.field_name in kwargs:
                raise ConfigurationError(f"Duplicate weight for {metric.value}")
            kwargs[metric.field_name] = value
        return cls(**kwargs)

    @classmethod
    def from_key(cls, key: str) -> "MetricWeightVector":
        """
        Build from a dash-joined key in Metric declaration order

        "5-30-5-55-5" sets the first five metrics; missing trailing entries
        are 0.
        """
        parts = [p.strip() for p in key.split("-")]
        metrics = list(Metric)
        if not parts or len(parts) > len(metrics):
            raise ConfigurationError(f"Invalid weight key: {key}")
        try:
            values = [int(p) for p in parts]
        except ValueError:
            raise ConfigurationError(f"Invalid weight key: {key}")
        return cls(**{m.field_name: v for m, v in zip(metrics, values)})

    def get(self, metric: Metric) -> int:
        return getattr(self, metric.field_name)

    def items(self) -> Iterator[tuple[Metric, int]]:
        for metric in Metric:
            yield metric, self.get(metric)

    def active(self) -> dict[Metric, int]:
        """Metrics with a nonzero weight"""
        return {metric: weight for metric, weight in self.items() if weight > 0}

    def to_key(self) -> str:
        return "-".join(str(weight) for _, weight in self.items())

    def to_dict(self) -> dict[str, int]:
        return {metric.value: weight for metric, weight in self.items()}


def resolve_weights(value: "MetricWeightVector | Mapping | str", presets: Mapping[str, str] | None = None) -> MetricWeightVector:
    """Accept a vector, a mapping, a preset name or a dash-joined key"""
    if isinstance(value, MetricWeightVector):
        return value
    if isinstance(value, str):
        if presets and value in presets:
            return MetricWeightVector.from_key(presets[value])
        return MetricWeightVector.from_key(value)
    if isinstance(value, Mapping):
        return MetricWeightVector.from_mapping(value)
    raise ConfigurationError(f"Unsupported weight specification: {value!r}")


def require_garp_weights(weights: MetricWeightVector) -> MetricWeightVector:
    """Reject GARP weight vectors that lean on non-GARP metrics"""
    outside = [m.value for m in weights.active() if m not in GARP_METRICS]
    if outside:
        raise ConfigurationError(
            "GARP weights may only use GARP metrics", {"invalid": outside}
        )
    return weights


# ============================================
# GARP thresholds
# ============================================
_THRESHOLD_KEYS = {
    "maxPE": "max_pe",
    "maxDebtToEquity": "max_debt_to_equity",
    "minOperatingMargin": "min_operating_margin",
    "minROIC": "min_roic",
    "minFCFYield": "min_fcf_yield",
    "minSalesGrowth": "min_sales_growth",
}


@dataclass(frozen=True)
class GarpThresholds:
    """Growth-at-a-reasonable-price screen limits"""
    max_pe: float = 30.0
    max_debt_to_equity: float = 2.0
    min_operating_margin: float = 10.0
    min_roic: float = 10.0
    min_fcf_yield: float = 2.0
    min_sales_growth: float = 10.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(
                    f"Threshold {f.name} must be a finite number", {"value": value}
                )
            object.__setattr__(self, f.name, float(value))
        if self.max_pe <= 0:
            raise ConfigurationError("maxPE must be positive", {"value": self.max_pe})
        if self.max_debt_to_equity < 0:
            raise ConfigurationError(
                "maxDebtToEquity must not be negative", {"value": self.max_debt_to_equity}
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> "GarpThresholds":
        """camelCase (maxPE) or snake_case (max_pe) keys; None values keep defaults"""
        kwargs: dict[str, Any] = {}
        allowed = set(_THRESHOLD_KEYS) | set(_THRESHOLD_KEYS.values())
        for key, value in (mapping or {}).items():
            if key not in allowed:
                raise ConfigurationError(
                    f"Unknown GARP threshold: {key}", {"allowed": sorted(_THRESHOLD_KEYS)}
                )
            if value is None:
                continue
            kwargs[_THRESHOLD_KEYS.get(key, key)] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, float]:
        return {camel: getattr(self, snake) for camel, snake in _THRESHOLD_KEYS.items()}
