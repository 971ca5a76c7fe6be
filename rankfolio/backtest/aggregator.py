"""
Return aggregation

Turns a simulator ledger into per-horizon summary statistics
"""
from dataclasses import dataclass, field

import numpy as np

from rankfolio.backtest.ledger import Buy, Rebalance, SellAll, Trade, Transaction, transaction_to_dict
from rankfolio.core.exceptions import ComputationError


# ============================================
# Result Types
# ============================================
@dataclass
class BacktestResult:
    """Outcome of one strategy over one horizon"""
    strategy: str
    years: int
    initial_value: float
    final_value: float
    total_return: float                 # %
    annualized_return: float            # %
    period_returns: list[float]         # fractional, oldest period first
    shortfall: int = 0
    ledger: list[Transaction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "years": self.years,
            "initial_value": self.initial_value,
            "final_value": round(self.final_value, 2),
            "total_return": round(self.total_return, 4),
            "annualized_return": round(self.annualized_return, 4),
            "period_returns": [round(r * 100, 4) for r in self.period_returns],
            "shortfall": self.shortfall,
            "transactions": [transaction_to_dict(tx) for tx in self.ledger],
        }


@dataclass
class HorizonResults:
    """
    Horizon -> result map

    Every requested horizon is present; a horizon that could not be
    computed maps to None and its reason is kept in `errors`.
    """
    results: dict[int, BacktestResult | None]
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def summary(self) -> dict[int, float | None]:
        """Horizon -> annualized return %"""
        return {
            horizon: (result.annualized_return if result is not None else None)
            for horizon, result in self.results.items()
        }

    def __getitem__(self, horizon: int) -> BacktestResult | None:
        return self.results[horizon]

    def to_dict(self) -> dict:
        return {
            "results": {
                horizon: (result.to_dict() if result is not None else None)
                for horizon, result in self.results.items()
            },
            "errors": dict(self.errors),
            "summary": self.summary,
        }


# ============================================
# Aggregator
# ============================================
class ReturnAggregator:
    """
    Ledger reader

    Usage:
        aggregator = ReturnAggregator()
        aggregator.compound([0.10, -0.05, 0.20], 10_000)   # 12540.0
        result = aggregator.summarize(ledger, 10_000, years=3, strategy="annual")
    """

    @staticmethod
    def compound(returns: list[float], start: float) -> float:
        """start * prod(1 + r)"""
        return float(start * np.prod(1.0 + np.asarray(returns, dtype="float64")))

    @staticmethod
    def cumulative(returns: list[float]) -> float:
        """prod(1 + r) - 1 (fractional)"""
        return float(np.prod(1.0 + np.asarray(returns, dtype="float64")) - 1.0)

    @staticmethod
    def annualize(total_pct: float, years: float) -> float:
        """((1 + total)^(1/years) - 1) * 100"""
        if years <= 0:
            raise ComputationError("Cannot annualize over a non-positive period", {"years": years})
        growth = 1.0 + total_pct / 100
        if growth < 0:
            raise ComputationError("Total return below -100%", {"total_pct": total_pct})
        return (growth ** (1.0 / years) - 1.0) * 100

    @staticmethod
    def period_marks(ledger: list[Transaction]) -> list[float]:
        """Portfolio value at the start of each period, oldest first"""
        marks = []
        seen: set[int] = set()
        for tx in ledger:
            if tx.years_ago not in seen:
                seen.add(tx.years_ago)
                marks.append(tx.portfolio_value)
        return marks

    @staticmethod
    def period_returns(marks: list[float]) -> list[float]:
        returns = []
        for prior, current in zip(marks, marks[1:]):
            if prior <= 0:
                raise ComputationError("Prior portfolio value is not positive", {"value": prior})
            returns.append((current - prior) / prior)
        return returns

    @staticmethod
    def final_value(ledger: list[Transaction]) -> float:
        match ledger[-1] if ledger else None:
            case SellAll(portfolio_value=value):
                return value
        raise ComputationError("Ledger has no closing SellAll", {"transactions": len(ledger)})

    @staticmethod
    def realized_trades(ledger: list[Transaction]) -> list[Trade]:
        """Every closed round trip in ledger order"""
        trades: list[Trade] = []
        for tx in ledger:
            match tx:
                case Rebalance(trades=closed) | SellAll(trades=closed):
                    trades.extend(closed)
        return trades

    @staticmethod
    def total_shortfall(ledger: list[Transaction]) -> int:
        """Unfilled slots summed over every purchase"""
        total = 0
        for tx in ledger:
            match tx:
                case Buy(shortfall=missing) | Rebalance(shortfall=missing):
                    total += missing
        return total

    def summarize(
        self,
        ledger: list[Transaction],
        initial_value: float,
        years: int,
        strategy: str = "",
    ) -> BacktestResult:
        """
        Summarise a ledger

        Args:
            ledger: transactions in time order, ending with a SellAll
            initial_value: value at inception
            years: horizon length
            strategy: label stored on the result

        Returns:
            BacktestResult
        """
        if initial_value <= 0:
            raise ComputationError("Initial value must be positive", {"initial_value": initial_value})

        final = self.final_value(ledger)
        total = (final / initial_value - 1.0) * 100
        return BacktestResult(
            strategy=strategy,
            years=years,
            initial_value=initial_value,
            final_value=final,
            total_return=total,
            annualized_return=self.annualize(total, years),
            period_returns=self.period_returns(self.period_marks(ledger)),
            shortfall=self.total_shortfall(ledger),
            ledger=list(ledger),
        )
