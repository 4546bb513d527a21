"""
Simulation request: the configuration surface of the simulator.

One :class:`SimulationRequest` describes a whole run (regime, model
constants, initial state, horizon and solver options). Requests are
immutable; every change of input produces a new request, which is then
passed to :func:`culture.service.run_simulation`.

Requests can be built from keyword arguments, from a loose mapping
(:meth:`SimulationRequest.from_mapping`), from a JSON file
(:func:`load_request`) or from the command line (:mod:`culture.__main__`).

JSON request contract
---------------------
A single object whose keys are the field names below. ``R0``/``Rs`` are
accepted for ``R_s``, ``Df`` for ``dilution_fraction`` and
``samples``/``n`` for ``n_samples``. Unknown keys are rejected.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

import numpy as np

from .controls import TURBIDOSTAT_BAND, canonical_regime_name, make_regime
from .errors import ConfigurationError
from .integrator import DEFAULT_ATOL, DEFAULT_METHOD, DEFAULT_RTOL
from .model import CultureParameters, as_float
from .simulator import DEFAULT_N_SAMPLES, DEFAULT_T_FINAL, MAX_SEGMENTS

_KEY_ALIASES = {
    "R0": "R_s",
    "Rs": "R_s",
    "Df": "dilution_fraction",
    "samples": "n_samples",
    "n": "n_samples",
    "mumax": "mu_max",
    "Vmax": "V_max",
    "Km": "K_m",
    "Qmin": "Q_min",
    "log10X_star": "log10_X_star",
}

# Fields coerced to float when a request is built
_NUMERIC_FIELDS = ("R", "Q", "X", "t_final", "rtol", "atol", "timeout")


@dataclass(frozen=True)
class SimulationRequest:
    # --- Regime ---
    regime: str = "chemostat"

    # --- Model constants (defaults match CultureParameters) ---
    mu_max: float = 1.0
    V_max: float = 2.0
    K_m: float = 1.0
    Q_min: float = 0.1
    R_s: float = 2.0
    d: float = 0.5           # chemostat only
    clamp_growth: bool = False

    # --- Regime parameters ---
    X_star: Optional[float] = None        # turbidostat / semi-continuous target density
    log10_X_star: Optional[float] = None  # alternative to X_star
    band: float = TURBIDOSTAT_BAND        # turbidostat relative half-width
    period: Optional[float] = None        # semi-continuous segment length
    dilution_fraction: Optional[float] = None

    # --- Initial state ---
    R: float = 1.0
    Q: float = 1.0
    X: float = 1.0

    # --- Horizon and solver ---
    t_final: float = DEFAULT_T_FINAL
    n_samples: int = DEFAULT_N_SAMPLES
    method: str = DEFAULT_METHOD
    rtol: float = DEFAULT_RTOL
    atol: float = DEFAULT_ATOL
    max_segments: int = MAX_SEGMENTS
    timeout: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "regime", canonical_regime_name(self.regime))
        for name in _NUMERIC_FIELDS:
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, as_float(name, value))

        if not (math.isfinite(self.t_final) and self.t_final > 0.0):
            raise ConfigurationError(f"t_final must be positive, got {self.t_final!r}")
        n_samples = as_float("n_samples", self.n_samples)
        if not n_samples.is_integer() or n_samples < 2:
            raise ConfigurationError(f"n_samples must be an integer >= 2, got {self.n_samples!r}")
        object.__setattr__(self, "n_samples", int(n_samples))
        max_segments = as_float("max_segments", self.max_segments)
        if not max_segments.is_integer() or max_segments < 1:
            raise ConfigurationError(f"max_segments must be an integer >= 1, got {self.max_segments!r}")
        object.__setattr__(self, "max_segments", int(max_segments))
        if self.timeout is not None and not self.timeout > 0.0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout!r}")
        if not (self.rtol > 0.0 and self.atol > 0.0):
            raise ConfigurationError("rtol and atol must be positive")

        x0 = self.initial_state()
        if not np.all(np.isfinite(x0)) or np.any(x0 < 0.0):
            raise ConfigurationError(f"initial state must be finite and non-negative, got {x0}")
        if self.Q == 0.0:
            raise ConfigurationError("initial quota Q must be positive")

        # Building these validates the model and regime fields
        self.parameters()
        self.regime_policy()

    # --- derived objects ---

    def parameters(self) -> CultureParameters:
        return CultureParameters.from_mapping(self.as_dict())

    def initial_state(self) -> np.ndarray:
        return np.array([self.R, self.Q, self.X], dtype=float)

    def regime_policy(self):
        return make_regime(self.regime, self.as_dict())

    def as_dict(self) -> dict:
        return asdict(self)

    # --- constructors ---

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "SimulationRequest":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = _KEY_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown request field {key!r}")
            if name in kwargs:
                raise ConfigurationError(f"Request field {name!r} given more than once")
            if value is not None:
                kwargs[name] = value
        try:
            return cls(**kwargs)
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(str(exc)) from exc


def default_request() -> SimulationRequest:
    return SimulationRequest()


def load_request(path: str | Path) -> SimulationRequest:
    """Read a request from a JSON file (see the module docstring)."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Request file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return SimulationRequest.from_mapping(data)
