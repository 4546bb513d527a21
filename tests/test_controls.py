"""Tests for the regime dilution policies."""
from __future__ import annotations

import numpy as np
import pytest

from culture.controls import (
    REGIMES,
    Batch,
    Chemostat,
    SemiContinuousBatch,
    Turbidostat,
    canonical_regime_name,
    make_regime,
)
from culture.errors import ConfigurationError, DegenerateDilutionError


def _state(X: float) -> np.ndarray:
    return np.array([1.0, 1.0, X])


class TestContinuousRegimes:
    def test_batch_never_dilutes(self, params):
        for t in (0.0, 3.0, 100.0):
            assert Batch().dilution_rate(t, _state(5.0), params) == 0.0

    def test_chemostat_uses_parameter(self, params):
        assert Chemostat().dilution_rate(0.0, _state(1.0), params) == 0.5
        assert Chemostat().dilution_rate(0.0, _state(1.0), params.with_dilution(0.2)) == 0.2


class TestTurbidostat:
    def test_off_below_band(self, params):
        turb = Turbidostat(X_star=1.0)
        assert turb.dilution_rate(0.0, _state(0.9), params) == 0.0
        assert turb.dilution_rate(0.0, _state(0.95 - 1e-9), params) == 0.0

    def test_full_above_band(self, params):
        turb = Turbidostat(X_star=1.0)
        assert turb.dilution_rate(0.0, _state(1.05), params) == pytest.approx(2.0)
        assert turb.dilution_rate(0.0, _state(3.0), params) == pytest.approx(2.0)

    def test_linear_ramp_inside_band(self, params):
        turb = Turbidostat(X_star=1.0)
        assert turb.dilution_rate(0.0, _state(1.0), params) == pytest.approx(1.0)
        assert turb.dilution_rate(0.0, _state(0.975), params) == pytest.approx(0.5)

    def test_ramp_is_continuous_at_band_edges(self, params):
        turb = Turbidostat(X_star=2.0)
        eps = 1e-9
        assert turb.dilution_rate(0.0, _state(turb.lower + eps), params) == pytest.approx(0.0, abs=1e-6)
        assert turb.dilution_rate(0.0, _state(turb.upper - eps), params) == pytest.approx(2.0, abs=1e-6)

    def test_band_is_tunable(self, params):
        turb = Turbidostat(X_star=1.0, band=0.2)
        assert turb.lower == pytest.approx(0.8)
        assert turb.upper == pytest.approx(1.2)
        assert turb.dilution_rate(0.0, _state(0.9), params) == pytest.approx(0.5)

    def test_zero_band_is_hard_switch(self, params):
        turb = Turbidostat(X_star=1.0, band=0.0)
        assert turb.dilution_rate(0.0, _state(0.999), params) == 0.0
        assert turb.dilution_rate(0.0, _state(1.0), params) == pytest.approx(2.0)

    def test_scales_with_mu_max(self):
        from culture.model import CultureParameters

        turb = Turbidostat(X_star=1.0)
        assert turb.dilution_rate(0.0, _state(2.0), CultureParameters(mu_max=0.3)) == pytest.approx(0.6)

    @pytest.mark.parametrize("kwargs", [
        {"X_star": 0.0},
        {"X_star": -1.0},
        {"X_star": 1.0, "band": 1.0},
        {"X_star": 1.0, "band": -0.1},
        {"X_star": 1.0, "d_max_factor": -1.0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            Turbidostat(**kwargs)


class TestSemiContinuousBatch:
    def test_no_dilution_inside_segment(self, params):
        scb = SemiContinuousBatch(period=5.0, dilution_fraction=0.5)
        assert scb.dilution_rate(1.0, _state(3.0), params) == 0.0

    def test_fixed_fraction_transition(self, params):
        scb = SemiContinuousBatch(period=5.0, dilution_fraction=0.25)
        Df, x_new = scb.transition(5.0, np.array([1.0, 0.5, 4.0]), params)
        assert Df == 0.25
        np.testing.assert_allclose(x_new, [0.25 * 1.0 + 0.75 * 2.0, 0.5, 1.0])

    def test_target_density_transition(self, params):
        scb = SemiContinuousBatch(period=5.0, target_density=1.0)
        Df, x_new = scb.transition(5.0, np.array([0.2, 0.3, 4.0]), params)
        assert Df == pytest.approx(0.25)
        assert x_new[2] == pytest.approx(1.0)

    def test_target_above_density_keeps_culture(self, params):
        scb = SemiContinuousBatch(period=5.0, target_density=1.0)
        x = np.array([0.2, 0.3, 0.5])
        Df, x_new = scb.transition(5.0, x, params)
        assert Df == 1.0
        np.testing.assert_allclose(x_new, x)

    @pytest.mark.parametrize("scb", [
        SemiContinuousBatch(period=5.0, target_density=1.0),
        SemiContinuousBatch(period=5.0, dilution_fraction=0.5),
    ])
    def test_zero_density_is_degenerate(self, scb, params):
        with pytest.raises(DegenerateDilutionError):
            scb.transition(5.0, np.array([1.0, 1.0, 0.0]), params)

    @pytest.mark.parametrize("kwargs", [
        {"period": 5.0},
        {"period": 5.0, "dilution_fraction": 0.5, "target_density": 1.0},
        {"period": 0.0, "dilution_fraction": 0.5},
        {"period": 5.0, "dilution_fraction": 0.0},
        {"period": 5.0, "dilution_fraction": 1.5},
        {"period": 5.0, "target_density": -1.0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            SemiContinuousBatch(**kwargs)


class TestRegistry:
    def test_four_regimes(self):
        assert set(REGIMES) == {"batch", "chemostat", "turbidostat", "semicontinuous"}

    @pytest.mark.parametrize("name,expected", [
        ("Batch", "batch"),
        ("CHEMOSTAT", "chemostat"),
        ("SemiContinuousBatch", "semicontinuous"),
        ("semi-continuous", "semicontinuous"),
        ("semi_continuous_batch", "semicontinuous"),
    ])
    def test_canonical_names(self, name, expected):
        assert canonical_regime_name(name) == expected

    def test_unknown_regime(self):
        with pytest.raises(ConfigurationError):
            canonical_regime_name("fedbatch")

    def test_make_turbidostat_from_log10(self):
        turb = make_regime("turbidostat", log10_X_star=0.0)
        assert turb.X_star == pytest.approx(1.0)

    def test_make_turbidostat_requires_target(self):
        with pytest.raises(ConfigurationError):
            make_regime("turbidostat")

    def test_make_turbidostat_rejects_two_targets(self):
        with pytest.raises(ConfigurationError):
            make_regime("turbidostat", X_star=1.0, log10_X_star=0.0)

    def test_make_semicontinuous_with_df_alias(self):
        scb = make_regime("SemiContinuousBatch", period=5.0, Df=0.5)
        assert scb.dilution_fraction == 0.5
        assert scb.target_density is None

    def test_make_semicontinuous_with_target(self):
        scb = make_regime("semicontinuous", {"period": 5.0, "X_star": 2.0, "d": 0.3})
        assert scb.target_density == 2.0

    def test_irrelevant_options_ignored(self):
        assert make_regime("chemostat", {"X_star": 1.0, "period": 3.0}) == Chemostat()
