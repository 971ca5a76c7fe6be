"""
ReturnAggregator and ledger record tests
"""
from datetime import date

import pytest

from rankfolio.backtest.aggregator import BacktestResult, HorizonResults, ReturnAggregator
from rankfolio.backtest.ledger import (
    Buy,
    Hold,
    Rebalance,
    SellAll,
    Trade,
    holdings_after,
    transaction_to_dict,
)
from rankfolio.core.exceptions import ComputationError


def _three_year_ledger() -> list:
    """+10%, -5%, +20% from 10,000"""
    return [
        Buy(years_ago=3, date=date(2021, 12, 31), portfolio_value=10_000.0, bought=("A",)),
        SellAll(years_ago=2, date=date(2022, 12, 31), portfolio_value=11_000.0, sold=("A",)),
        Buy(years_ago=2, date=date(2022, 12, 31), portfolio_value=11_000.0, bought=("B",), shortfall=2),
        SellAll(years_ago=1, date=date(2023, 12, 31), portfolio_value=10_450.0, sold=("B",)),
        Buy(years_ago=1, date=date(2023, 12, 31), portfolio_value=10_450.0, bought=("C",), shortfall=1),
        SellAll(years_ago=0, date=date(2024, 12, 31), portfolio_value=12_540.0, sold=("C",)),
    ]


class TestCompounding:

    def test_compound(self):
        assert ReturnAggregator.compound([0.10, -0.05, 0.20], 10_000) == pytest.approx(12_540.00)

    def test_cumulative(self):
        assert ReturnAggregator.cumulative([0.10, -0.05, 0.20]) == pytest.approx(0.254)

    def test_cumulative_empty(self):
        assert ReturnAggregator.cumulative([]) == 0.0

    def test_annualize(self):
        assert ReturnAggregator.annualize(100.0, 2) == pytest.approx(41.42135, rel=1e-5)
        assert ReturnAggregator.annualize(10.0, 1) == pytest.approx(10.0)

    def test_annualize_total_loss(self):
        assert ReturnAggregator.annualize(-100.0, 3) == pytest.approx(-100.0)

    def test_annualize_zero_years(self):
        with pytest.raises(ComputationError):
            ReturnAggregator.annualize(10.0, 0)

    def test_zero_prior_value(self):
        with pytest.raises(ComputationError):
            ReturnAggregator.period_returns([10_000.0, 0.0, 500.0])


class TestSummarize:

    def test_summary_from_ledger(self):
        result = ReturnAggregator().summarize(_three_year_ledger(), 10_000, 3, strategy="annual_rebalance")

        assert isinstance(result, BacktestResult)
        assert result.final_value == pytest.approx(12_540.0)
        assert result.total_return == pytest.approx(25.4)
        assert result.annualized_return == pytest.approx((1.254 ** (1 / 3) - 1) * 100)
        assert result.period_returns == pytest.approx([0.10, -0.05, 0.20])
        assert result.shortfall == 3
        assert len(result.ledger) == 6

    def test_missing_sell_all(self):
        ledger = _three_year_ledger()[:-1]
        with pytest.raises(ComputationError):
            ReturnAggregator().summarize(ledger, 10_000, 3)

    def test_mid_horizon_sell_all_is_not_final(self):
        ledger = _three_year_ledger()[:3]
        with pytest.raises(ComputationError):
            ReturnAggregator.final_value(ledger)
        with pytest.raises(ComputationError):
            ReturnAggregator().summarize(ledger, 10_000, 2)

    def test_empty_ledger_has_no_final_value(self):
        with pytest.raises(ComputationError):
            ReturnAggregator.final_value([])

    def test_realized_trades(self):
        ledger = [
            Buy(years_ago=2, date=date(2022, 12, 31), portfolio_value=100.0, bought=("A", "B")),
            Rebalance(
                years_ago=1, date=date(2023, 12, 31), portfolio_value=110.0,
                kept=("A",), sold=("B",), bought=("C",),
                trades=(Trade("B", 10.0, 12.0),),
            ),
            SellAll(
                years_ago=0, date=date(2024, 12, 31), portfolio_value=120.0, sold=("A", "C"),
                trades=(Trade("A", 5.0, 6.0), Trade("C", 8.0, 6.0)),
            ),
        ]
        trades = ReturnAggregator.realized_trades(ledger)

        assert [t.symbol for t in trades] == ["B", "A", "C"]
        assert trades[0].return_pct == pytest.approx(20.0)
        assert trades[2].return_pct == pytest.approx(-25.0)

    def test_to_dict(self):
        data = ReturnAggregator().summarize(_three_year_ledger(), 10_000, 3).to_dict()
        assert data["final_value"] == 12_540.0
        assert data["period_returns"] == pytest.approx([10.0, -5.0, 20.0])
        assert [tx["action"] for tx in data["transactions"]][:2] == ["BUY", "SELL_ALL"]


class TestHorizonResults:

    def test_summary_keeps_missing_horizons(self):
        result = ReturnAggregator().summarize(_three_year_ledger(), 10_000, 3)
        horizons = HorizonResults(results={3: result, 4: None}, errors={4: "No snapshot 4 years ago"})

        assert horizons.summary[3] == pytest.approx(result.annualized_return)
        assert horizons.summary[4] is None
        assert horizons[4] is None
        assert horizons.to_dict()["errors"] == {4: "No snapshot 4 years ago"}


class TestLedgerRecords:

    def test_transaction_to_dict(self):
        hold = Hold(years_ago=1, date=date(2023, 12, 31), portfolio_value=1234.56789, kept=("A",))
        data = transaction_to_dict(hold)

        assert data == {
            "action": "HOLD",
            "years_ago": 1,
            "date": "2023-12-31",
            "portfolio_value": 1234.5679,
            "kept": ["A"],
            "unpriced": [],
        }

    def test_rebalance_to_dict(self):
        tx = Rebalance(
            years_ago=1, date=date(2023, 12, 31), portfolio_value=100.0,
            kept=("A",), sold=("B",), bought=("C",),
            trades=(Trade("B", 10.0, 11.0),), buy_prices={"C": 7.0}, shortfall=1,
        )
        data = transaction_to_dict(tx)

        assert data["action"] == "REBALANCE"
        assert data["trades"][0]["return_pct"] == pytest.approx(10.0)
        assert data["buy_prices"] == {"C": 7.0}
        assert data["shortfall"] == 1

    def test_holdings_after(self):
        day = date(2023, 12, 31)
        assert holdings_after(Buy(years_ago=1, date=day, portfolio_value=1.0, bought=("A", "B"))) == ("A", "B")
        assert holdings_after(Rebalance(
            years_ago=1, date=day, portfolio_value=1.0, kept=("A",), sold=("B",), bought=("C",)
        )) == ("A", "C")
        assert holdings_after(SellAll(years_ago=0, date=day, portfolio_value=1.0, sold=("A",))) == ()

    def test_records_are_frozen(self):
        tx = SellAll(years_ago=0, date=date(2024, 12, 31), portfolio_value=1.0, sold=())
        with pytest.raises(AttributeError):
            tx.portfolio_value = 2.0
