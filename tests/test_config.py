"""
Unit tests for configuration and boundary helpers
"""
import pytest

from engine import config as config_module
from engine.config import DealConfig, ValuationConfig, get_valuation_config
from engine.validation import FieldErrors, InputValidationError, pct_sum_matches


class TestValuationConfig:

    def test_defaults(self):
        config = ValuationConfig()
        assert config.dlom == 0.30
        assert config.peer_proxy_multiplier == 1.2
        assert config.validate()

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ValuationConfig(weight_industry=0.8, weight_peer=0.3).validate()

    def test_dlom_out_of_range(self):
        with pytest.raises(ValueError):
            ValuationConfig(dlom=1.0).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EXIT_ENGINE_DLOM", "0.25")
        monkeypatch.setenv("EXIT_ENGINE_WEIGHT_INDUSTRY", "0.6")
        monkeypatch.setenv("EXIT_ENGINE_WEIGHT_PEER", "0.4")
        config = ValuationConfig.from_env()
        assert config.dlom == 0.25
        assert config.weight_peer == 0.4
        assert config.peer_proxy_multiplier == 1.2

    def test_from_env_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("EXIT_ENGINE_DLOM", "thirty")
        with pytest.raises(ValueError):
            ValuationConfig.from_env()

    def test_process_config_is_cached(self, monkeypatch):
        monkeypatch.setattr(config_module, "_valuation_config", None)
        first = get_valuation_config()
        assert get_valuation_config() is first


class TestDealConfig:

    def test_defaults(self):
        config = DealConfig()
        assert config.default_fee_rate_pct == 3.0
        assert config.default_earnout_probability_pct == 50.0
        assert config.ineligible_penalty == 0.0

    def test_penalty_cannot_be_positive(self):
        with pytest.raises(ValueError):
            DealConfig(ineligible_penalty=5).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EXIT_ENGINE_FEE_RATE_PCT", "2.5")
        monkeypatch.setenv("EXIT_ENGINE_INELIGIBLE_PENALTY", "-10")
        config = DealConfig.from_env()
        assert config.default_fee_rate_pct == 2.5
        assert config.ineligible_penalty == -10


class TestFieldErrors:

    def test_collects_and_raises(self):
        errors = FieldErrors()
        assert errors.check_range("a", 5, 0, 10)
        assert not errors.check_range("b", -1, 0, None)
        errors.add("c", "bad")
        with pytest.raises(InputValidationError) as exc_info:
            errors.raise_if_any()
        assert [e["field"] for e in exc_info.value.errors] == ["b", "c"]
        assert isinstance(exc_info.value, ValueError)

    def test_no_errors_no_raise(self):
        FieldErrors().raise_if_any()

    @pytest.mark.parametrize("values,ok", [
        ([50, 30, 20], True),
        ([49.99, 30, 20], True),
        ([50.01, 30, 20], True),
        ([49.98, 30, 20], False),
        ([45, 30, 20], False),
    ])
    def test_pct_sum_tolerance(self, values, ok):
        assert pct_sum_matches(values, 100, 0.01) is ok
