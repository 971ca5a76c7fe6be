"""
Core interface definitions

Enums, snapshot records and the provider contract shared by all layers
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

import pandas as pd

from rankfolio.core.exceptions import ConfigurationError


# ============================================
# Enums
# ============================================
class Metric(Enum):
    """Recognised ranking metrics (closed set)"""
    MARKET_CAP = "marketCap"
    ADTV = "adtv"                        # average daily trading volume
    PRICE_TO_SALES = "priceToSales"
    SALES_GROWTH = "salesGrowth"
    GF_SCORE = "gfScore"
    PE_RATIO = "peRatio"
    DEBT_TO_EQUITY = "debtToEquity"
    OPERATING_MARGIN = "operatingMargin"
    ROIC = "roic"
    FCF_YIELD = "fcfYield"

    @property
    def field_name(self) -> str:
        """snake_case attribute name (market_cap, price_to_sales, ...)"""
        return self.name.lower()

    @classmethod
    def parse(cls, key: "str | Metric") -> "Metric":
        """Accept a Metric, a camelCase key or a snake_case key"""
        if isinstance(key, Metric):
            return key
        for metric in cls:
            if key in (metric.value, metric.field_name):
                return metric
        raise ConfigurationError(f"Unknown metric: {key}", {"allowed": [m.value for m in cls]})


GARP_METRICS: frozenset[Metric] = frozenset({
    Metric.PE_RATIO,
    Metric.DEBT_TO_EQUITY,
    Metric.OPERATING_MARGIN,
    Metric.ROIC,
    Metric.FCF_YIELD,
    Metric.SALES_GROWTH,
})


class Direction(Enum):
    """Which raw values rank best"""
    ASCENDING = "ascending"    # lower is better
    DESCENDING = "descending"  # higher is better


class TransactionType(Enum):
    """Ledger entry kinds"""
    BUY = "BUY"
    HOLD = "HOLD"
    REBALANCE = "REBALANCE"
    SELL_ALL = "SELL_ALL"


class PortfolioState(Enum):
    """Simulator state"""
    EMPTY = "EMPTY"
    HOLDING = "HOLDING"


def clean_value(value: Any) -> float | None:
    """None for missing, non-numeric or non-finite values"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# ============================================
# Data Classes
# ============================================
@dataclass(frozen=True)
class StockSnapshot:
    """Factor values of one symbol at one lookback offset"""
    symbol: str
    name: str = ""
    sector: str = ""
    years_ago: int = 0
    as_of: date | None = None
    values: dict[Metric, float | None] = field(default_factory=dict, hash=False)
    merged_from: tuple[str, ...] = ()

    def value(self, metric: Metric) -> float | None:
        return clean_value(self.values.get(metric))

    @classmethod
    def from_dict(cls, data: dict, years_ago: int = 0) -> "StockSnapshot":
        """
        Build from a flat record

        Metric keys may be camelCase or snake_case; anything that is not a
        metric or an identity field is ignored.
        """
        values: dict[Metric, float | None] = {}
        for metric in Metric:
            raw = data.get(metric.value, data.get(metric.field_name))
            values[metric] = clean_value(raw)

        snapshot_date = data.get("as_of") or data.get("date")
        if isinstance(snapshot_date, str):
            snapshot_date = date.fromisoformat(snapshot_date[:10])

        return cls(
            symbol=str(data["symbol"]).upper(),
            name=data.get("name") or "",
            sector=data.get("sector") or "",
            years_ago=int(data.get("years_ago", years_ago)),
            as_of=snapshot_date,
            values=values,
        )

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "sector": self.sector,
            "years_ago": self.years_ago,
            "as_of": self.as_of.isoformat() if self.as_of else None,
            **{metric.value: self.value(metric) for metric in Metric},
            "merged_from": list(self.merged_from),
        }


@dataclass
class RankedStock:
    """Snapshot plus per-metric ranks and its overall position"""
    snapshot: StockSnapshot
    ranks: dict[Metric, int | None]
    weighted_score: float
    overall_rank: int = 0

    @property
    def symbol(self) -> str:
        return self.snapshot.symbol

    def to_dict(self) -> dict:
        return {
            **self.snapshot.to_dict(),
            "ranks": {metric.value: rank for metric, rank in self.ranks.items()},
            "weighted_score": round(self.weighted_score, 4),
            "overall_rank": self.overall_rank,
        }


# ============================================
# Abstract Interfaces
# ============================================
class SnapshotProvider(ABC):
    """
    Source of factor snapshots and price histories

    Implementations must treat their data as immutable for the lifetime of
    a backtest call and may return incomplete records (nulls).
    """

    @property
    @abstractmethod
    def as_of(self) -> date:
        """Date of offset 0"""
        pass

    @abstractmethod
    def get_snapshot(self, years_ago: int) -> list[StockSnapshot]:
        """
        Snapshot for a lookback offset

        Raises:
            DataUnavailableError: no data for that offset
        """
        pass

    @abstractmethod
    def get_price_history(self, symbol: str) -> pd.Series | None:
        """Adjusted closes indexed by date, or None when unknown"""
        pass
