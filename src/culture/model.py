"""
Droop model of phytoplankton growth in a well-mixed culture vessel.

This module defines the parameter set and the continuous-time dynamics
shared by every culture regime. The state vector is

    x = [R, Q, X]

where
    R : extracellular resource concentration
    Q : internal cell quota (stored resource per cell)
    X : cell density

Uptake follows Michaelis-Menten kinetics and growth follows the Droop
quota model:

    rho(R) = V_max R / (K_m + R)
    mu(Q)  = mu_max (1 - Q_min / Q)

    dR/dt = d (R_s - R) - rho X
    dQ/dt = rho - mu Q
    dX/dt = X (mu - d)

The dilution rate ``d`` is supplied by a regime policy from
:mod:`culture.controls`. With ``d = 0`` the total mass ``R + Q X`` is
conserved.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from typing import Callable, Mapping, Sequence

import numpy as np

from .errors import ConfigurationError, DomainError

# Names of the three states, in vector order
STATE_NAMES = ("R", "Q", "X")

# Accepted spellings of the resource supply concentration
_SUPPLY_ALIASES = ("R_s", "Rs", "R0")


def as_float(name: str, value: object) -> float:
    """Convert a user-supplied field to float, naming the field on failure."""
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class CultureParameters:
    # Growth and uptake kinetics
    mu_max: float = 1.0   # maximum specific growth rate
    V_max: float = 2.0    # maximum uptake rate per cell
    K_m: float = 1.0      # uptake half-saturation constant
    Q_min: float = 0.1    # subsistence quota

    # Vessel
    R_s: float = 2.0      # resource concentration in the inflow
    d: float = 0.5        # dilution rate (chemostat only)

    # Floor mu(Q) at zero when Q < Q_min instead of extrapolating
    clamp_growth: bool = False

    def validate(self) -> "CultureParameters":
        for name in ("mu_max", "V_max", "K_m", "Q_min", "R_s", "d"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigurationError(f"{name} must be finite, got {value!r}")
            if value < 0.0:
                raise ConfigurationError(f"{name} must be non-negative, got {value!r}")
        if self.K_m <= 0.0:
            raise ConfigurationError(f"K_m must be positive, got {self.K_m!r}")
        return self

    def with_dilution(self, d: float) -> "CultureParameters":
        return replace(self, d=float(d))

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "CultureParameters":
        """
        Build a parameter set from a loose mapping.

        Unknown keys are ignored, so a full request dictionary can be
        passed directly. ``R0`` and ``Rs`` are accepted for ``R_s``.
        """
        kwargs = {}
        for name in ("mu_max", "V_max", "K_m", "Q_min", "d"):
            if values.get(name) is not None:
                kwargs[name] = as_float(name, values[name])
        supplied = [key for key in _SUPPLY_ALIASES if values.get(key) is not None]
        if len(supplied) > 1:
            raise ConfigurationError(
                f"Resource supply given more than once: {', '.join(supplied)}"
            )
        if supplied:
            kwargs["R_s"] = as_float(supplied[0], values[supplied[0]])
        if values.get("clamp_growth") is not None:
            kwargs["clamp_growth"] = bool(values["clamp_growth"])
        return cls(**kwargs).validate()


def uptake(R: float, V_max: float, K_m: float) -> float:
    """
    Michaelis-Menten uptake rate rho(R) = V_max R / (K_m + R).

    Raises
    ------
    DomainError
        If ``K_m + R`` is zero or the result is not finite.
    """
    denom = K_m + R
    if denom == 0.0:
        raise DomainError(f"uptake undefined for K_m + R = 0 (R={R!r}, K_m={K_m!r})")
    rho = V_max * R / denom
    if not math.isfinite(rho):
        raise DomainError(f"uptake is not finite (R={R!r}, V_max={V_max!r}, K_m={K_m!r})")
    return rho


def growth(Q: float, mu_max: float, Q_min: float, clamp: bool = False) -> float:
    """
    Droop growth rate mu(Q) = mu_max (1 - Q_min / Q).

    Negative for ``Q < Q_min`` unless ``clamp`` is set, in which case the
    rate is floored at zero.

    Raises
    ------
    DomainError
        If ``Q`` is zero or the result is not finite.
    """
    if Q == 0.0:
        raise DomainError("growth undefined for Q = 0")
    mu = mu_max * (1.0 - Q_min / Q)
    if not math.isfinite(mu):
        raise DomainError(f"growth is not finite (Q={Q!r}, mu_max={mu_max!r}, Q_min={Q_min!r})")
    if clamp and mu < 0.0:
        return 0.0
    return mu


def mass(R: float, Q: float, X: float) -> float:
    """Total resource in the vessel, free plus stored: R + Q X."""
    return R + Q * X


def _dilution(t: float, x, params: CultureParameters, regime) -> float:
    if regime is None:
        return 0.0
    return float(regime.dilution_rate(t, x, params))


def f(
    t: float,
    x_vec: Sequence[float] | np.ndarray,
    params: CultureParameters,
    regime=None,
) -> np.ndarray:
    """
    Continuous-time dynamics x_dot = f(t, x; params, regime).

    Parameters
    ----------
    t
        Current time.
    x_vec
        State vector [R, Q, X].
    params
        Model constants.
    regime
        Object with a ``dilution_rate(t, x, params)`` method. If None the
        vessel is closed (batch).

    Returns
    -------
    x_dot : ndarray, shape (3,)
    """
    R, Q, X = x_vec
    rho = uptake(R, params.V_max, params.K_m)
    mu = growth(Q, params.mu_max, params.Q_min, clamp=params.clamp_growth)
    d_eff = _dilution(t, x_vec, params, regime)

    return np.array(
        [
            d_eff * (params.R_s - R) - rho * X,   # R
            rho - mu * Q,                         # Q
            X * (mu - d_eff),                     # X
        ],
        dtype=float,
    )


def diagnostics(
    t: float,
    x_vec: Sequence[float] | np.ndarray,
    params: CultureParameters,
    regime=None,
) -> np.ndarray:
    """
    Auxiliary quantities at one state: [rho, mu, mass, d_eff].
    """
    R, Q, X = x_vec
    return np.array(
        [
            uptake(R, params.V_max, params.K_m),
            growth(Q, params.mu_max, params.Q_min, clamp=params.clamp_growth),
            mass(R, Q, X),
            _dilution(t, x_vec, params, regime),
        ],
        dtype=float,
    )


DIAGNOSTIC_NAMES = ("rho", "mu", "mass", "dilution")


def make_rhs(params: CultureParameters, regime=None) -> Callable[[float, np.ndarray], np.ndarray]:
    """Close over ``params`` and ``regime`` to get the ``rhs(t, y)`` form used by solvers."""

    def rhs(t, y):
        return f(t, y, params, regime)

    return rhs


def make_diagnostics(params: CultureParameters, regime=None) -> Callable[[float, np.ndarray], np.ndarray]:
    def diag(t, y):
        return diagnostics(t, y, params, regime)

    return diag


def default_initial_state() -> np.ndarray:
    """
    Default initial condition:
    R = Q = X = 1.
    """
    return np.array([1.0, 1.0, 1.0], dtype=float)


# ---------------------------------------------------------------------------
# Closed-form chemostat results
# ---------------------------------------------------------------------------

def washout_dilution(params: CultureParameters) -> float:
    """
    Largest dilution rate at which a chemostat still holds a culture.

    At equilibrium mu(Q*) = d and rho(R*) = d Q*. A culture persists only
    while the uptake needed to sustain growth is available at the inflow
    concentration, rho(R_s) > d Q*(d), which gives

        d_c = rho(R_s) mu_max / (Q_min mu_max + rho(R_s))
    """
    rho_s = uptake(params.R_s, params.V_max, params.K_m)
    denom = params.Q_min * params.mu_max + rho_s
    if denom == 0.0:
        return 0.0
    return rho_s * params.mu_max / denom


def chemostat_equilibrium(params: CultureParameters, d: float | None = None) -> np.ndarray:
    """
    Steady state [R*, Q*, X*] of a chemostat with dilution rate ``d``.

    With quota-limited growth the equilibrium is

        Q* = Q_min / (1 - d / mu_max)
        R* = K_m d Q* / (V_max - d Q*)
        X* = (R_s - R*) / Q*

    If the dilution rate is above the washout rate, the washout state
    [R_s, Q_w, 0] is returned, with Q_w the quota that balances uptake
    at R_s.
    """
    if d is None:
        d = params.d
    if d <= 0.0:
        raise ConfigurationError("chemostat equilibrium requires a positive dilution rate")

    rho_s = uptake(params.R_s, params.V_max, params.K_m)
    if params.mu_max > 0.0:
        washout = np.array([params.R_s, params.Q_min + rho_s / params.mu_max, 0.0])
    else:
        washout = np.array([params.R_s, np.inf, 0.0])

    if d >= params.mu_max:
        return washout

    Q_star = params.Q_min / (1.0 - d / params.mu_max)
    if Q_star == 0.0:
        raise DomainError("chemostat equilibrium undefined for Q_min = 0")
    demand = d * Q_star
    if demand >= params.V_max:
        return washout

    R_star = params.K_m * demand / (params.V_max - demand)
    if R_star >= params.R_s:
        return washout

    X_star = (params.R_s - R_star) / Q_star
    return np.array([R_star, Q_star, X_star], dtype=float)
