"""
Weight vector and GARP threshold validation
"""
from dataclasses import FrozenInstanceError

import pytest

from rankfolio.core.exceptions import ConfigurationError
from rankfolio.core.interfaces import Metric
from rankfolio.ranking.weights import (
    GarpThresholds,
    MetricWeightVector,
    require_garp_weights,
    resolve_weights,
)


class TestMetricWeightVector:

    def test_keyword_construction(self):
        weights = MetricWeightVector(adtv=60, sales_growth=40)
        assert weights.get(Metric.ADTV) == 60
        assert weights.get(Metric.MARKET_CAP) == 0
        assert weights.active() == {Metric.ADTV: 60, Metric.SALES_GROWTH: 40}

    def test_sum_must_be_100(self):
        with pytest.raises(ConfigurationError):
            MetricWeightVector(adtv=60, sales_growth=30)

    def test_out_of_range(self):
        with pytest.raises(ConfigurationError):
            MetricWeightVector(adtv=120, sales_growth=-20)

    def test_fractional_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            MetricWeightVector(adtv=50.5, sales_growth=49.5)

    def test_integral_float_accepted(self):
        weights = MetricWeightVector(adtv=50.0, sales_growth=50)
        assert weights.adtv == 50
        assert isinstance(weights.adtv, int)

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError):
            MetricWeightVector.from_mapping({"adtv": 50, "pegRatio": 50})

    def test_from_mapping_mixed_case_keys(self):
        weights = MetricWeightVector.from_mapping({"marketCap": 50, "sales_growth": 50})
        assert weights.market_cap == 50
        assert weights.sales_growth == 50

    def test_duplicate_key_rejected(self):
        with pytest.raises(ConfigurationError):
            MetricWeightVector.from_mapping({"marketCap": 50, "market_cap": 50})

    def test_from_key(self):
        weights = MetricWeightVector.from_key("5-30-5-50-5-5-0-0-0-0")
        assert weights.market_cap == 5
        assert weights.adtv == 30
        assert weights.sales_growth == 50
        assert weights.pe_ratio == 5
        assert weights.to_key() == "5-30-5-50-5-5-0-0-0-0"

    def test_from_short_key(self):
        weights = MetricWeightVector.from_key("35-35-15-15-0")
        assert weights.sales_growth == 15
        assert weights.fcf_yield == 0

    @pytest.mark.parametrize("key", ["", "a-b", "10-10-10-10-10-10-10-10-10-5-5"])
    def test_invalid_key(self, key):
        with pytest.raises(ConfigurationError):
            MetricWeightVector.from_key(key)

    def test_frozen(self):
        weights = MetricWeightVector(adtv=100)
        with pytest.raises(FrozenInstanceError):
            weights.adtv = 50


class TestResolveWeights:

    def test_preset_name(self):
        weights = resolve_weights("liquidity", {"liquidity": "0-100"})
        assert weights.adtv == 100

    def test_passthrough(self):
        weights = MetricWeightVector(adtv=100)
        assert resolve_weights(weights) is weights

    def test_unsupported(self):
        with pytest.raises(ConfigurationError):
            resolve_weights(42)


class TestGarpWeights:

    def test_garp_only(self):
        weights = MetricWeightVector(pe_ratio=50, roic=50)
        assert require_garp_weights(weights) is weights

    def test_non_garp_metric_rejected(self):
        with pytest.raises(ConfigurationError):
            require_garp_weights(MetricWeightVector(pe_ratio=50, adtv=50))


class TestGarpThresholds:

    def test_defaults(self):
        thresholds = GarpThresholds()
        assert thresholds.max_pe == 30
        assert thresholds.max_debt_to_equity == 2
        assert thresholds.min_fcf_yield == 2

    def test_camel_case_keys(self):
        thresholds = GarpThresholds.from_mapping({"maxPE": 40, "minROIC": 12})
        assert thresholds.max_pe == 40
        assert thresholds.min_roic == 12
        assert thresholds.to_dict()["maxPE"] == 40

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            GarpThresholds.from_mapping({"maxPEG": 2})

    @pytest.mark.parametrize("kwargs", [
        {"max_pe": 0},
        {"max_pe": float("inf")},
        {"max_debt_to_equity": -1},
        {"min_roic": float("nan")},
    ])
    def test_out_of_range(self, kwargs):
        with pytest.raises(ConfigurationError):
            GarpThresholds(**kwargs)
