"""Tests for the simulation request."""
from __future__ import annotations

import json

import numpy as np
import pytest

from culture.config import SimulationRequest, default_request, load_request
from culture.controls import Chemostat, SemiContinuousBatch, Turbidostat
from culture.errors import ConfigurationError


class TestDefaults:
    def test_default_values(self):
        req = default_request()
        assert req.regime == "chemostat"
        assert req.t_final == 25.0
        assert req.n_samples == 100
        np.testing.assert_array_equal(req.initial_state(), [1.0, 1.0, 1.0])
        p = req.parameters()
        assert (p.mu_max, p.V_max, p.K_m, p.Q_min, p.R_s, p.d) == (1.0, 2.0, 1.0, 0.1, 2.0, 0.5)

    def test_regime_policy(self):
        assert default_request().regime_policy() == Chemostat()


class TestRegimeFields:
    def test_regime_name_normalised(self):
        req = SimulationRequest(regime="Turbidostat", X_star=2.0)
        assert req.regime == "turbidostat"
        assert req.regime_policy() == Turbidostat(X_star=2.0)

    def test_turbidostat_from_log10(self):
        req = SimulationRequest(regime="turbidostat", log10_X_star=1.0, band=0.1)
        turb = req.regime_policy()
        assert turb.X_star == pytest.approx(10.0)
        assert turb.band == 0.1

    def test_turbidostat_needs_target(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest(regime="turbidostat")

    def test_semicontinuous(self):
        req = SimulationRequest(regime="SemiContinuousBatch", period=5.0, dilution_fraction=0.5)
        assert req.regime_policy() == SemiContinuousBatch(period=5.0, dilution_fraction=0.5)

    def test_semicontinuous_needs_period(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest(regime="semicontinuous", dilution_fraction=0.5)

    def test_semicontinuous_zero_period(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest(regime="semicontinuous", period=0.0, dilution_fraction=0.5)

    def test_unknown_regime(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest(regime="perfusion")


class TestValidation:
    @pytest.mark.parametrize("kwargs", [
        {"t_final": 0.0},
        {"t_final": -5.0},
        {"n_samples": 1},
        {"K_m": -1.0},
        {"K_m": 0.0},
        {"mu_max": -0.1},
        {"X": -1.0},
        {"Q": 0.0},
        {"timeout": 0.0},
        {"rtol": 0.0},
        {"max_segments": 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            SimulationRequest(**kwargs)

    def test_immutable(self):
        req = default_request()
        with pytest.raises(AttributeError):
            req.d = 0.1


class TestFromMapping:
    def test_aliases(self):
        req = SimulationRequest.from_mapping(
            {"regime": "semicontinuous", "R0": 3.0, "Df": 0.4, "period": 2.0, "samples": 10}
        )
        assert req.R_s == 3.0
        assert req.dilution_fraction == 0.4
        assert req.n_samples == 10
        assert req.parameters().R_s == 3.0

    def test_none_values_use_defaults(self):
        req = SimulationRequest.from_mapping({"d": None, "mu_max": 0.8})
        assert req.d == 0.5
        assert req.mu_max == 0.8

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest.from_mapping({"temperature": 20.0})

    def test_duplicate_field(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest.from_mapping({"R0": 1.0, "R_s": 2.0})

    def test_wrong_type(self):
        with pytest.raises(ConfigurationError):
            SimulationRequest.from_mapping({"t_final": "long"})

    @pytest.mark.parametrize("values, field", [
        ({"mu_max": "fast"}, "mu_max"),
        ({"K_m": [1.0]}, "K_m"),
        ({"n_samples": "many"}, "n_samples"),
        ({"max_segments": "lots"}, "max_segments"),
        ({"X": "dense"}, "X"),
        ({"regime": "turbidostat", "log10_X_star": 400.0}, "log10_X_star"),
    ])
    def test_malformed_value_names_field(self, values, field):
        with pytest.raises(ConfigurationError, match=field):
            SimulationRequest.from_mapping(values)

    def test_as_dict_round_trip(self):
        req = SimulationRequest(regime="turbidostat", X_star=1.5, t_final=40.0)
        assert SimulationRequest.from_mapping(req.as_dict()) == req


class TestLoadRequest:
    def test_json_file(self, tmp_path):
        path = tmp_path / "request.json"
        path.write_text(json.dumps({"regime": "batch", "t_final": 10.0, "R0": 1.0}))
        req = load_request(path)
        assert req.regime == "batch"
        assert req.t_final == 10.0
        assert req.R_s == 1.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_request(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{regime: batch")
        with pytest.raises(ConfigurationError):
            load_request(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            load_request(path)
