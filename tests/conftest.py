"""
Shared fixtures: snapshot/price builders and an in-memory universe
"""
from datetime import date

import pandas as pd
import pytest

from rankfolio.core.config import BacktestSettings, Config
from rankfolio.core.interfaces import StockSnapshot
from rankfolio.providers.memory import InMemorySnapshotProvider

AS_OF = date(2024, 12, 31)


def _make_stock(symbol: str, years_ago: int = 0, sector: str = "Technology", **values) -> StockSnapshot:
    """Snapshot record; metric values are camelCase keyword arguments"""
    return StockSnapshot.from_dict(
        {"symbol": symbol, "name": f"{symbol} Corp", "sector": sector, **values},
        years_ago=years_ago,
    )


def _daily_prices(
    start_price: float = 100.0,
    annual_growth: float = 0.10,
    start: str = "2015-01-01",
    end: str = "2024-12-31",
) -> pd.Series:
    """Smooth daily closes growing at a constant annual rate from `start`"""
    index = pd.date_range(start, end, freq="D")
    elapsed = (index - pd.Timestamp("2015-01-01")).days / 365.0
    return pd.Series(start_price * (1 + annual_growth) ** elapsed, index=index)


def _ranked_universe(count: int, years_ago: int) -> list[StockSnapshot]:
    """S01..Snn with ADTV strictly decreasing, so ADTV ranking is S01 first"""
    return [
        _make_stock(f"S{i:02d}", years_ago=years_ago, adtv=100 - i, marketCap=1000 - i)
        for i in range(1, count + 1)
    ]


@pytest.fixture
def make_stock():
    return _make_stock


@pytest.fixture
def daily_prices():
    return _daily_prices


@pytest.fixture
def ranked_universe():
    return _ranked_universe


@pytest.fixture
def settings() -> BacktestSettings:
    return BacktestSettings(duplicate_symbols={})


@pytest.fixture
def universe_provider() -> InMemorySnapshotProvider:
    """20 symbols at offsets 0..5, every symbol priced every day at +10%/year"""
    snapshots = {k: _ranked_universe(20, k) for k in range(6)}
    prices = {f"S{i:02d}": _daily_prices() for i in range(1, 21)}
    return InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)


@pytest.fixture
def config():
    """Project settings loaded fresh"""
    Config.reset()
    yield Config()
    Config.reset()
