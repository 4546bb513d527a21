"""
Dilution policies for the four culture regimes.

The only manipulated input of the culture vessel is the dilution rate
d(t, x). Each regime below is a small immutable object exposing

    dilution_rate(t, x, params) -> float

so that it can be plugged into :func:`culture.model.f`. The
semi-continuous batch regime never dilutes inside the ODE; instead it
exposes ``transition`` which the simulator applies between fixed-length
integration segments.

Regimes hold no iteration state, the segment loop lives in
:mod:`culture.simulator`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple, Type

import numpy as np

from .errors import ConfigurationError, DegenerateDilutionError
from .model import CultureParameters, as_float

# Default relative half-width of the turbidostat control band
TURBIDOSTAT_BAND: float = 0.05

# Turbidostat dilution at the top of the band, in units of mu_max
TURBIDOSTAT_D_MAX_FACTOR: float = 2.0


def _require_positive(name: str, value: float) -> float:
    value = as_float(name, value)
    if not math.isfinite(value) or value <= 0.0:
        raise ConfigurationError(f"{name} must be a positive number, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Continuous regimes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Batch:
    """Closed vessel: d(t) = 0."""

    name = "batch"

    def dilution_rate(self, t: float, x, params: CultureParameters) -> float:
        return 0.0

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> "Batch":
        return cls()


@dataclass(frozen=True)
class Chemostat:
    """Constant dilution set by the experimenter: d(t) = params.d."""

    name = "chemostat"

    def dilution_rate(self, t: float, x, params: CultureParameters) -> float:
        return params.d

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> "Chemostat":
        return cls()


@dataclass(frozen=True)
class Turbidostat:
    """
    Density feedback: dilute hard once X passes the target density.

    A hard switch (d = d_max iff X > X_star) makes the right-hand side
    discontinuous and stalls adaptive step control, so the switch is
    spread over the band [(1 - band) X_star, (1 + band) X_star]:

        d = 0                                  X <  lo
        d = d_max (X - lo) / (hi - lo)         lo <= X < hi
        d = d_max                              X >= hi

    with d_max = d_max_factor * mu_max. ``band = 0`` restores the hard
    switch at X_star.
    """

    X_star: float
    band: float = TURBIDOSTAT_BAND
    d_max_factor: float = TURBIDOSTAT_D_MAX_FACTOR

    name = "turbidostat"

    def __post_init__(self):
        _require_positive("X_star", self.X_star)
        if not (0.0 <= self.band < 1.0):
            raise ConfigurationError(f"band must lie in [0, 1), got {self.band!r}")
        if not math.isfinite(self.d_max_factor) or self.d_max_factor < 0.0:
            raise ConfigurationError(
                f"d_max_factor must be non-negative, got {self.d_max_factor!r}"
            )

    @property
    def lower(self) -> float:
        return (1.0 - self.band) * self.X_star

    @property
    def upper(self) -> float:
        return (1.0 + self.band) * self.X_star

    def d_max(self, params: CultureParameters) -> float:
        return self.d_max_factor * params.mu_max

    def dilution_rate(self, t: float, x, params: CultureParameters) -> float:
        X = float(x[2])
        d_max = self.d_max(params)
        if self.band == 0.0:
            return d_max if X >= self.X_star else 0.0
        if X < self.lower:
            return 0.0
        if X >= self.upper:
            return d_max
        return d_max * (X - self.lower) / (self.upper - self.lower)

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> "Turbidostat":
        X_star = _target_density(options)
        if X_star is None:
            raise ConfigurationError("turbidostat requires X_star or log10_X_star")
        kwargs = {"X_star": X_star}
        if options.get("band") is not None:
            kwargs["band"] = as_float("band", options["band"])
        if options.get("d_max_factor") is not None:
            kwargs["d_max_factor"] = as_float("d_max_factor", options["d_max_factor"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Semi-continuous batch
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SemiContinuousBatch:
    """
    Batch growth for ``period`` time units, then an instantaneous dilution.

    At the end of each period a fraction Df of the culture is kept and the
    rest is replaced by fresh medium at R_s:

        R' = Df R + (1 - Df) R_s,   Q' = Q,   X' = Df X

    Df is either fixed (``dilution_fraction``) or chosen to bring the
    density back to ``target_density``, Df = min(1, target / X).
    """

    period: float
    dilution_fraction: Optional[float] = None
    target_density: Optional[float] = None

    name = "semicontinuous"

    def __post_init__(self):
        _require_positive("period", self.period)
        if (self.dilution_fraction is None) == (self.target_density is None):
            raise ConfigurationError(
                "semi-continuous batch needs exactly one of dilution_fraction or target_density"
            )
        if self.dilution_fraction is not None:
            Df = float(self.dilution_fraction)
            if not (0.0 < Df <= 1.0):
                raise ConfigurationError(f"dilution_fraction must lie in (0, 1], got {Df!r}")
        if self.target_density is not None:
            _require_positive("target_density", self.target_density)

    def dilution_rate(self, t: float, x, params: CultureParameters) -> float:
        return 0.0

    def dilution_fraction_for(self, X: float) -> float:
        """Fraction of culture kept when the segment ends at density ``X``."""
        if not X > 0.0:
            raise DegenerateDilutionError(
                f"cannot dilute a culture with density X={X!r} at a segment boundary"
            )
        if self.dilution_fraction is not None:
            return float(self.dilution_fraction)
        return min(1.0, self.target_density / X)

    def transition(self, t: float, x, params: CultureParameters) -> Tuple[float, np.ndarray]:
        """
        Apply the instantaneous dilution to the end-of-segment state ``x``.

        Returns
        -------
        Df : float
            Fraction of the culture kept.
        x_new : ndarray, shape (3,)
            State right after dilution.
        """
        R, Q, X = (float(v) for v in x)
        Df = self.dilution_fraction_for(X)
        x_new = np.array([Df * R + (1.0 - Df) * params.R_s, Q, Df * X], dtype=float)
        return Df, x_new

    @classmethod
    def from_options(cls, options: Mapping[str, object]) -> "SemiContinuousBatch":
        if options.get("period") is None:
            raise ConfigurationError("semi-continuous batch requires a period")
        Df = options.get("dilution_fraction")
        if Df is None:
            Df = options.get("Df")
        return cls(
            period=as_float("period", options["period"]),
            dilution_fraction=None if Df is None else as_float("dilution_fraction", Df),
            target_density=_target_density(options),
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

REGIMES: Dict[str, Type] = {
    "batch": Batch,
    "chemostat": Chemostat,
    "turbidostat": Turbidostat,
    "semicontinuous": SemiContinuousBatch,
}

_ALIASES = {
    "semicontinuousbatch": "semicontinuous",
    "semibatch": "semicontinuous",
    "scb": "semicontinuous",
}


def _target_density(options: Mapping[str, object]) -> Optional[float]:
    """Target density from ``X_star``/``target_density`` or ``log10_X_star``."""
    direct = [key for key in ("X_star", "target_density") if options.get(key) is not None]
    log_value = options.get("log10_X_star")
    if len(direct) + (log_value is not None) > 1:
        raise ConfigurationError("give the target density only once (X_star or log10_X_star)")
    if direct:
        return as_float(direct[0], options[direct[0]])
    if log_value is not None:
        exponent = as_float("log10_X_star", log_value)
        try:
            return float(10.0 ** exponent)
        except OverflowError as exc:
            raise ConfigurationError(
                f"log10_X_star is too large, got {exponent!r}"
            ) from exc
    return None


def canonical_regime_name(name: str) -> str:
    key = str(name).strip().lower().replace("-", "").replace("_", "").replace(" ", "")
    key = _ALIASES.get(key, key)
    if key not in REGIMES:
        raise ConfigurationError(
            f"Unknown regime {name!r}. Choose one of: {', '.join(REGIMES)}"
        )
    return key


def make_regime(name: str, options: Mapping[str, object] | None = None, **kwargs):
    """
    Build a regime policy by name.

    Options irrelevant to the chosen regime are ignored, so a whole request
    mapping can be passed::

        make_regime("turbidostat", X_star=1.0)
        make_regime("SemiContinuousBatch", period=5.0, Df=0.5)
    """
    merged = dict(options or {})
    merged.update(kwargs)
    cls = REGIMES[canonical_regime_name(name)]
    return cls.from_options(merged)
