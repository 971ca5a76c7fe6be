"""
Transaction ledger

One frozen record type per transaction kind. Consumers dispatch with
`match` on the class rather than probing for optional fields.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, Union

from rankfolio.core.interfaces import TransactionType


@dataclass(frozen=True)
class Trade:
    """Realised round trip of one position"""
    symbol: str
    buy_price: float
    sell_price: float

    @property
    def return_pct(self) -> float:
        return (self.sell_price - self.buy_price) / self.buy_price * 100

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "buy_price": self.buy_price,
            "sell_price": self.sell_price,
            "return_pct": round(self.return_pct, 4),
        }


@dataclass(frozen=True, kw_only=True)
class Buy:
    """Opening purchase of a fresh portfolio"""
    kind: ClassVar[TransactionType] = TransactionType.BUY

    years_ago: int
    date: date
    portfolio_value: float
    bought: tuple[str, ...]
    buy_prices: dict[str, float] = field(default_factory=dict, hash=False)
    shortfall: int = 0


@dataclass(frozen=True, kw_only=True)
class Hold:
    """Period where every holding survived and nothing was bought"""
    kind: ClassVar[TransactionType] = TransactionType.HOLD

    years_ago: int
    date: date
    portfolio_value: float
    kept: tuple[str, ...]
    unpriced: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class Rebalance:
    """Partial turnover: some holdings kept, the rest replaced"""
    kind: ClassVar[TransactionType] = TransactionType.REBALANCE

    years_ago: int
    date: date
    portfolio_value: float
    kept: tuple[str, ...]
    sold: tuple[str, ...]
    bought: tuple[str, ...]
    trades: tuple[Trade, ...] = ()
    buy_prices: dict[str, float] = field(default_factory=dict, hash=False)
    shortfall: int = 0
    unpriced: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class SellAll:
    """Full liquidation"""
    kind: ClassVar[TransactionType] = TransactionType.SELL_ALL

    years_ago: int
    date: date
    portfolio_value: float
    sold: tuple[str, ...]
    trades: tuple[Trade, ...] = ()
    unpriced: tuple[str, ...] = ()


Transaction = Union[Buy, Hold, Rebalance, SellAll]


def transaction_to_dict(tx: Transaction) -> dict:
    """Serialisable view of one ledger entry"""
    base = {
        "action": tx.kind.value,
        "years_ago": tx.years_ago,
        "date": tx.date.isoformat(),
        "portfolio_value": round(tx.portfolio_value, 4),
    }

    match tx:
        case Buy(bought=bought, buy_prices=prices, shortfall=shortfall):
            return {**base, "bought": list(bought), "buy_prices": dict(prices), "shortfall": shortfall}
        case Hold(kept=kept, unpriced=unpriced):
            return {**base, "kept": list(kept), "unpriced": list(unpriced)}
        case Rebalance():
            return {
                **base,
                "kept": list(tx.kept),
                "sold": list(tx.sold),
                "bought": list(tx.bought),
                "trades": [trade.to_dict() for trade in tx.trades],
                "buy_prices": dict(tx.buy_prices),
                "shortfall": tx.shortfall,
                "unpriced": list(tx.unpriced),
            }
        case SellAll(sold=sold, trades=trades, unpriced=unpriced):
            return {
                **base,
                "sold": list(sold),
                "trades": [trade.to_dict() for trade in trades],
                "unpriced": list(unpriced),
            }
        case _:
            raise TypeError(f"Unknown transaction type: {type(tx).__name__}")


def holdings_after(tx: Transaction) -> tuple[str, ...]:
    """Symbols held once this transaction has settled"""
    match tx:
        case Buy(bought=bought):
            return bought
        case Hold(kept=kept):
            return kept
        case Rebalance(kept=kept, bought=bought):
            return kept + bought
        case SellAll():
            return ()
        case _:
            raise TypeError(f"Unknown transaction type: {type(tx).__name__}")
