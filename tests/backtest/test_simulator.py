"""
PortfolioSimulator tests
- AnnualFullRebalance: SellAll + Buy each period
- HoldWinners: keep threshold, refill, Hold vs Rebalance
- degraded data: under-fill, unpriced holdings, failed horizons
"""
from datetime import date

import pytest

from rankfolio.backtest.ledger import Hold, Rebalance, SellAll
from rankfolio.backtest.simulator import AnnualFullRebalance, HoldWinners, PortfolioSimulator
from rankfolio.core.exceptions import ConfigurationError, InsufficientDataError
from rankfolio.core.interfaces import StockSnapshot, TransactionType
from rankfolio.providers.memory import InMemorySnapshotProvider
from rankfolio.ranking.weights import MetricWeightVector

AS_OF = date(2024, 12, 31)
ADTV = MetricWeightVector(adtv=100)


def _kinds(result) -> list[TransactionType]:
    return [tx.kind for tx in result.ledger]


def _growth(start: date, end: date, rate: float = 0.10) -> float:
    """Price ratio of the fixture series between two dates"""
    return (1 + rate) ** ((end - start).days / 365.0)


class TestAnnualFullRebalance:

    def test_three_year_ledger(self, universe_provider, settings):
        simulator = PortfolioSimulator(universe_provider, settings=settings)
        result = simulator.run(ADTV, 3, AnnualFullRebalance(10))

        assert len(result.ledger) == 6
        assert _kinds(result) == [
            TransactionType.BUY, TransactionType.SELL_ALL,
            TransactionType.BUY, TransactionType.SELL_ALL,
            TransactionType.BUY, TransactionType.SELL_ALL,
        ]
        assert result.ledger[0].bought == tuple(f"S{i:02d}" for i in range(1, 11))
        assert result.ledger[0].date == date(2021, 12, 31)
        assert result.ledger[-1].date == AS_OF

    def test_returns_follow_prices(self, universe_provider, settings):
        simulator = PortfolioSimulator(universe_provider, settings=settings)
        result = simulator.run(ADTV, 3, AnnualFullRebalance(10))

        expected = 10_000 * _growth(date(2021, 12, 31), AS_OF)
        assert result.final_value == pytest.approx(expected)
        assert result.total_return == pytest.approx((expected / 10_000 - 1) * 100)
        assert len(result.period_returns) == 3
        assert result.period_returns[0] == pytest.approx(_growth(date(2021, 12, 31), date(2022, 12, 31)) - 1)

    def test_every_transaction_records_value(self, universe_provider, settings):
        result = PortfolioSimulator(universe_provider, settings=settings).run(
            ADTV, 2, AnnualFullRebalance(10)
        )
        sell, buy = result.ledger[1], result.ledger[2]
        assert sell.portfolio_value == pytest.approx(buy.portfolio_value)
        assert sell.portfolio_value == pytest.approx(10_000 * _growth(date(2022, 12, 31), date(2023, 12, 31)))

    def test_round_trip_trades(self, universe_provider, settings):
        result = PortfolioSimulator(universe_provider, settings=settings).run(
            ADTV, 1, AnnualFullRebalance(10)
        )
        trades = result.ledger[-1].trades
        assert len(trades) == 10
        assert trades[0].return_pct == pytest.approx((_growth(date(2023, 12, 31), AS_OF) - 1) * 100)


class TestHoldWinners:

    def _rank_drop_provider(self, ranked_universe, daily_prices) -> InMemorySnapshotProvider:
        """S01 is best two years ago, then falls to overall rank 15"""
        one_year_ago = [
            stock if stock.symbol != "S01" else StockSnapshot.from_dict({"symbol": "S01", "adtv": 84.5}, 1)
            for stock in ranked_universe(20, 1)
        ]
        snapshots = {2: ranked_universe(20, 2), 1: one_year_ago, 0: ranked_universe(20, 0)}
        prices = {f"S{i:02d}": daily_prices() for i in range(1, 21)}
        return InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)

    def test_three_year_ledger_shape(self, universe_provider, settings):
        result = PortfolioSimulator(universe_provider, settings=settings).run(
            ADTV, 3, HoldWinners(10, 20)
        )
        kinds = _kinds(result)

        assert len(kinds) == 4
        assert kinds[0] is TransactionType.BUY
        assert kinds[-1] is TransactionType.SELL_ALL
        assert set(kinds[1:3]) <= {TransactionType.REBALANCE, TransactionType.HOLD}

    def test_unchanged_ranking_holds(self, universe_provider, settings):
        result = PortfolioSimulator(universe_provider, settings=settings).run(
            ADTV, 3, HoldWinners(10, 20)
        )
        assert all(isinstance(tx, Hold) for tx in result.ledger[1:3])
        assert len(result.ledger[-1].trades) == 10

    def test_rank_15_kept_at_threshold_20(self, ranked_universe, daily_prices, settings):
        provider = self._rank_drop_provider(ranked_universe, daily_prices)
        result = PortfolioSimulator(provider, settings=settings).run(ADTV, 2, HoldWinners(10, 20))

        middle = result.ledger[1]
        assert isinstance(middle, Hold)
        assert "S01" in middle.kept

    def test_rank_15_sold_at_threshold_10(self, ranked_universe, daily_prices, settings):
        provider = self._rank_drop_provider(ranked_universe, daily_prices)
        result = PortfolioSimulator(provider, settings=settings).run(ADTV, 2, HoldWinners(10, 10))

        middle = result.ledger[1]
        assert isinstance(middle, Rebalance)
        assert middle.sold == ("S01",)
        assert middle.bought == ("S11",)
        assert "S01" not in middle.kept
        assert len(middle.kept) == 9
        assert [t.symbol for t in middle.trades] == ["S01"]

    def test_threshold_above_size(self, ranked_universe, daily_prices, settings):
        """Threshold and size are independent"""
        provider = self._rank_drop_provider(ranked_universe, daily_prices)
        result = PortfolioSimulator(provider, settings=settings).run(ADTV, 2, HoldWinners(5, 20))
        assert isinstance(result.ledger[1], Hold)

    def test_threshold_one_matches_annual(self, make_stock, daily_prices, settings):
        """Full turnover: same ledger and returns as annual rebalancing"""
        # ranking flips every year so full turnover actually trades
        snapshots = {
            k: [make_stock(f"S{i:02d}", years_ago=k, adtv=(i if k % 2 else 100 - i)) for i in range(1, 16)]
            for k in range(4)
        }
        prices = {f"S{i:02d}": daily_prices(annual_growth=0.02 * i) for i in range(1, 16)}
        provider = InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)
        simulator = PortfolioSimulator(provider, settings=settings)

        annual = simulator.run(ADTV, 3, AnnualFullRebalance(10))
        winners = simulator.run(ADTV, 3, HoldWinners(10, 1))

        assert winners.ledger == annual.ledger
        assert winners.final_value == annual.final_value
        assert winners.period_returns == annual.period_returns

    def test_invalid_threshold(self):
        with pytest.raises(ConfigurationError):
            HoldWinners(10, 0)

    def test_invalid_size(self):
        with pytest.raises(ConfigurationError):
            AnnualFullRebalance(0)


class TestDegradedData:

    def test_under_fill_keeps_cash(self, ranked_universe, daily_prices, settings):
        snapshots = {1: ranked_universe(12, 1), 0: ranked_universe(12, 0)}
        prices = {f"S{i:02d}": daily_prices() for i in range(1, 7)}
        provider = InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)

        result = PortfolioSimulator(provider, settings=settings).run(ADTV, 1, AnnualFullRebalance(10))
        buy = result.ledger[0]

        assert len(buy.bought) == 6
        assert buy.shortfall == 4
        assert result.shortfall == 4
        expected = 4_000 + 6_000 * _growth(date(2023, 12, 31), AS_OF)
        assert result.final_value == pytest.approx(expected)

    def test_unpriced_holding_uses_last_mark(self, ranked_universe, daily_prices, settings):
        prices = {f"S{i:02d}": daily_prices() for i in range(1, 21)}
        prices["S02"] = daily_prices(end="2023-06-30")
        snapshots = {k: ranked_universe(20, k) for k in range(3)}
        provider = InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)

        result = PortfolioSimulator(provider, settings=settings).run(ADTV, 2, HoldWinners(10, 20))
        middle, final = result.ledger[1], result.ledger[-1]

        assert middle.unpriced == ("S02",)
        assert "S02" in middle.kept
        assert isinstance(final, SellAll)
        assert final.unpriced == ("S02",)
        s02 = next(t for t in final.trades if t.symbol == "S02")
        assert s02.sell_price == s02.buy_price

    def test_no_priced_candidates(self, ranked_universe, settings):
        provider = InMemorySnapshotProvider({1: ranked_universe(5, 1)}, {}, as_of=AS_OF)
        with pytest.raises(InsufficientDataError):
            PortfolioSimulator(provider, settings=settings).run(ADTV, 1, AnnualFullRebalance(10))

    def test_zero_horizon_rejected(self, universe_provider, settings):
        with pytest.raises(ConfigurationError):
            PortfolioSimulator(universe_provider, settings=settings).run(ADTV, 0, AnnualFullRebalance(10))


class TestRunHorizons:

    def test_all_horizons(self, universe_provider, settings):
        results = PortfolioSimulator(universe_provider, settings=settings).run_horizons(
            ADTV, AnnualFullRebalance(10)
        )
        assert set(results.results) == {1, 2, 3, 4, 5}
        assert all(result is not None for result in results.results.values())
        assert results.errors == {}
        for years, result in results.results.items():
            assert len(result.ledger) == 2 * years

    def test_missing_snapshot_gives_none(self, ranked_universe, daily_prices, settings):
        snapshots = {k: ranked_universe(12, k) for k in range(4)}
        prices = {f"S{i:02d}": daily_prices() for i in range(1, 13)}
        provider = InMemorySnapshotProvider(snapshots, prices, as_of=AS_OF)

        results = PortfolioSimulator(provider, settings=settings).run_horizons(
            ADTV, HoldWinners(10, 20)
        )

        assert results[3] is not None
        assert results[4] is None
        assert results[5] is None
        assert set(results.summary) == {1, 2, 3, 4, 5}
        assert results.summary[5] is None
        assert "4 years ago" in results.errors[4]

    def test_insufficient_data_gives_none(self, ranked_universe, settings):
        snapshots = {k: ranked_universe(12, k) for k in range(6)}
        provider = InMemorySnapshotProvider(snapshots, {}, as_of=AS_OF)

        results = PortfolioSimulator(provider, settings=settings).run_horizons(
            ADTV, AnnualFullRebalance(10), horizons=(1, 2)
        )
        assert results.results == {1: None, 2: None}
        assert set(results.errors) == {1, 2}

    def test_configuration_error_propagates(self, universe_provider, settings):
        simulator = PortfolioSimulator(universe_provider, settings=settings)
        with pytest.raises(ConfigurationError):
            simulator.run_horizons(ADTV, AnnualFullRebalance(10), horizons=(1, 0))
