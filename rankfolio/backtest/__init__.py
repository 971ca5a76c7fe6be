"""
Backtest module

- ledger.py: transaction records
- pricing.py: price-on-or-before lookup
- portfolio.py: holdings and cash
- simulator.py: annual / hold-winners state machine
- equal_weight.py: quarterly equal-weight windows
- buy_and_hold.py: historical top-N held to the present
- aggregator.py: ledger -> returns
"""
from rankfolio.backtest.ledger import (
    Buy,
    Hold,
    Rebalance,
    SellAll,
    Trade,
    Transaction,
    transaction_to_dict,
)
from rankfolio.backtest.pricing import PriceBook, period_date
from rankfolio.backtest.portfolio import Portfolio, Holding
from rankfolio.backtest.aggregator import BacktestResult, HorizonResults, ReturnAggregator
from rankfolio.backtest.simulator import (
    PortfolioSimulator,
    RebalanceStrategy,
    AnnualFullRebalance,
    HoldWinners,
)
from rankfolio.backtest.equal_weight import EqualWeightQuarterly, EqualWeightResult
from rankfolio.backtest.buy_and_hold import HistoricalBuyAndHold, HistoricalBacktestResult

__all__ = [
    "Buy",
    "Hold",
    "Rebalance",
    "SellAll",
    "Trade",
    "Transaction",
    "transaction_to_dict",
    "PriceBook",
    "period_date",
    "Portfolio",
    "Holding",
    "BacktestResult",
    "HorizonResults",
    "ReturnAggregator",
    "PortfolioSimulator",
    "RebalanceStrategy",
    "AnnualFullRebalance",
    "HoldWinners",
    "EqualWeightQuarterly",
    "EqualWeightResult",
    "HistoricalBuyAndHold",
    "HistoricalBacktestResult",
]
