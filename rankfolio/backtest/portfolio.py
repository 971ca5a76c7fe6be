"""
Portfolio state

Holdings plus uninvested cash. Values are base-normalised: the portfolio
starts at the configured initial value, not at a real money amount.
"""
from dataclasses import dataclass
from datetime import date

from rankfolio.backtest.ledger import Buy, SellAll, Trade
from rankfolio.backtest.pricing import PriceBook
from rankfolio.core.exceptions import ComputationError
from rankfolio.core.interfaces import PortfolioState


@dataclass
class Holding:
    """One open position"""
    symbol: str
    shares: float
    entry_price: float
    entry_date: date
    rank: int
    last_price: float

    @property
    def value(self) -> float:
        return self.shares * self.last_price

    def close(self) -> Trade:
        return Trade(symbol=self.symbol, buy_price=self.entry_price, sell_price=self.last_price)


@dataclass
class Candidate:
    """Ranked symbol with a price on the trade date"""
    symbol: str
    price: float
    rank: int


class Portfolio:
    """
    Mutable simulator portfolio

    Usage:
        portfolio = Portfolio(10_000)
        bought, shortfall, prices = portfolio.buy(candidates, slots=10, on=day)
        unpriced = portfolio.mark(price_book, later_day)
        trades = portfolio.sell_all()
    """

    def __init__(self, initial_value: float):
        if initial_value <= 0:
            raise ComputationError("Initial value must be positive", {"initial_value": initial_value})
        self.cash = float(initial_value)
        self.holdings: list[Holding] = []

    @property
    def state(self) -> PortfolioState:
        return PortfolioState.HOLDING if self.holdings else PortfolioState.EMPTY

    @property
    def value(self) -> float:
        return self.cash + sum(holding.value for holding in self.holdings)

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(holding.symbol for holding in self.holdings)

    def mark(self, prices: PriceBook, on: date) -> tuple[str, ...]:
        """
        Revalue holdings at a date

        Returns:
            symbols with no price on that date (kept at their last mark)
        """
        unpriced = []
        for holding in self.holdings:
            price = prices.price(holding.symbol, on)
            if price is None:
                unpriced.append(holding.symbol)
            else:
                holding.last_price = price
        return tuple(unpriced)

    def buy(
        self,
        candidates: list[Candidate],
        slots: int,
        on: date,
    ) -> tuple[tuple[str, ...], int, dict[str, float]]:
        """
        Spend cash equally across open slots

        Each slot receives cash / slots. Slots without a candidate stay as
        cash.

        Returns:
            (bought symbols, shortfall, buy prices)
        """
        if slots <= 0:
            return (), 0, {}

        slot_value = self.cash / slots
        chosen = candidates[:slots]

        for candidate in chosen:
            self.holdings.append(Holding(
                symbol=candidate.symbol,
                shares=slot_value / candidate.price,
                entry_price=candidate.price,
                entry_date=on,
                rank=candidate.rank,
                last_price=candidate.price,
            ))
            self.cash -= slot_value

        bought = tuple(candidate.symbol for candidate in chosen)
        return bought, slots - len(chosen), {c.symbol: c.price for c in chosen}

    def sell(self, symbols: set[str]) -> list[Trade]:
        """Close the named positions at their last marked price"""
        trades = []
        remaining = []
        for holding in self.holdings:
            if holding.symbol in symbols:
                self.cash += holding.value
                trades.append(holding.close())
            else:
                remaining.append(holding)
        self.holdings = remaining
        return trades

    def sell_all(self) -> list[Trade]:
        return self.sell(set(self.symbols))

    def liquidate(self, years_ago: int, on: date, unpriced: tuple[str, ...] = ()) -> SellAll:
        """Close everything and record the SellAll"""
        sold = self.symbols
        trades = self.sell_all()
        return SellAll(
            years_ago=years_ago,
            date=on,
            portfolio_value=self.value,
            sold=sold,
            trades=tuple(trades),
            unpriced=unpriced,
        )

    def open(self, candidates: list[Candidate], slots: int, years_ago: int, on: date) -> Buy:
        """Fill a fresh (all cash) portfolio and record the Buy"""
        value = self.value
        bought, shortfall, buy_prices = self.buy(candidates, slots, on)
        return Buy(
            years_ago=years_ago,
            date=on,
            portfolio_value=value,
            bought=bought,
            buy_prices=buy_prices,
            shortfall=shortfall,
        )
