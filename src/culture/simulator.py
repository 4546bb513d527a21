"""
Simulation utilities for the culture model.

:func:`simulate_culture` turns a parameter set, an initial state and a
regime policy into a single :class:`culture.trajectory.Trajectory`.

Continuous regimes (batch, chemostat, turbidostat) need one integrator
call over ``[0, t_final]``. The semi-continuous batch regime is a fold
over fixed-length segments: integrate with no dilution for one period,
append the samples, dilute instantaneously, and continue from the diluted
state at the time the previous segment ended. Each segment depends on the
previous one, so the loop is strictly sequential.
"""

from __future__ import annotations

import logging
import math
import time
from typing import List, Optional, Sequence

import numpy as np

from .controls import Batch, SemiContinuousBatch
from .errors import ConfigurationError, SimulationCancelled
from .integrator import (
    DEFAULT_ATOL,
    DEFAULT_METHOD,
    DEFAULT_RTOL,
    integrate,
    raise_for_failure,
    time_grid,
)
from .model import CultureParameters, STATE_NAMES, default_initial_state, make_diagnostics, make_rhs
from .trajectory import DilutionEvent, Segment, Trajectory

logger = logging.getLogger(__name__)

# Default horizon and resolution
DEFAULT_T_FINAL: float = 25.0
DEFAULT_N_SAMPLES: int = 100

# Upper bound on semi-continuous segments per run
MAX_SEGMENTS: int = 10_000

# Relative tolerance (in periods) for snapping the last segment end to t_final
_SNAP = 1e-9


def default_time_grid(T: float = DEFAULT_T_FINAL, n_samples: int = DEFAULT_N_SAMPLES) -> np.ndarray:
    """Uniform time grid from 0 to ``T`` (inclusive) with ``n_samples`` points."""
    return time_grid(0.0, T, n_samples)


def count_segments(t_final: float, period: float) -> int:
    """Number of semi-continuous segments needed to reach ``t_final``."""
    return max(1, int(math.ceil(t_final / period - _SNAP)))


def _regime_name(regime) -> str:
    return getattr(regime, "name", type(regime).__name__)


class _Budget:
    """Deadline and cancellation flag shared by one run."""

    def __init__(self, timeout: Optional[float] = None, cancel=None):
        self.deadline = None if timeout is None else time.monotonic() + float(timeout)
        self.cancel = cancel

    def check(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise SimulationCancelled("simulation cancelled")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise SimulationCancelled("simulation exceeded its time budget")

    def wrap(self, rhs):
        if self.deadline is None and self.cancel is None:
            return rhs

        def guarded(t, y):
            self.check()
            return rhs(t, y)

        return guarded


def _check_inputs(x0: np.ndarray, t_final: float, n_samples: int) -> None:
    if x0.shape != (len(STATE_NAMES),):
        raise ConfigurationError(f"initial state must have 3 entries [R, Q, X], got {x0.shape}")
    if not np.all(np.isfinite(x0)):
        raise ConfigurationError(f"initial state must be finite, got {x0}")
    if not (math.isfinite(t_final) and t_final > 0.0):
        raise ConfigurationError(f"t_final must be positive, got {t_final!r}")
    if int(n_samples) < 2:
        raise ConfigurationError(f"n_samples must be at least 2, got {n_samples!r}")


def _run_segment(
    params: CultureParameters,
    regime,
    t0: float,
    t1: float,
    x0: np.ndarray,
    n_samples: int,
    budget: _Budget,
    method: str,
    rtol: float,
    atol: float,
) -> Segment:
    result = integrate(
        budget.wrap(make_rhs(params, regime)),
        (t0, t1),
        x0,
        time_grid(t0, t1, n_samples),
        diagnostics=make_diagnostics(params, regime),
        method=method,
        rtol=rtol,
        atol=atol,
    )
    raise_for_failure(result)
    return Segment(t=result.t, states=result.y, diagnostics=result.diagnostics)


def simulate_culture(
    params: CultureParameters | None = None,
    x0: Sequence[float] | np.ndarray | None = None,
    regime=None,
    t_final: float = DEFAULT_T_FINAL,
    n_samples: int = DEFAULT_N_SAMPLES,
    method: str = DEFAULT_METHOD,
    rtol: float = DEFAULT_RTOL,
    atol: float = DEFAULT_ATOL,
    max_segments: int = MAX_SEGMENTS,
    timeout: Optional[float] = None,
    cancel=None,
) -> Trajectory:
    """
    Simulate one culture run.

    Parameters
    ----------
    params
        Model constants. If None, :class:`CultureParameters` defaults are used.
    x0
        Initial state [R, Q, X]. If None, :func:`default_initial_state` is used.
    regime
        Regime policy from :mod:`culture.controls`. If None, batch.
    t_final
        End of the simulated horizon.
    n_samples
        Samples over ``[0, t_final]`` for continuous regimes, and per segment
        for semi-continuous batch.
    method, rtol, atol
        Solver options, see :func:`culture.integrator.integrate`.
    max_segments
        Refuse semi-continuous runs that would need more segments.
    timeout
        Wall-clock budget in seconds.
    cancel
        Object with ``is_set()`` (e.g. :class:`threading.Event`); the run
        stops with :class:`SimulationCancelled` once it is set.

    Returns
    -------
    Trajectory
    """
    if params is None:
        params = CultureParameters()
    params.validate()
    if x0 is None:
        x0 = default_initial_state()
    x0 = np.asarray(x0, dtype=float).reshape(-1)
    if regime is None:
        regime = Batch()
    t_final = float(t_final)
    _check_inputs(x0, t_final, n_samples)

    budget = _Budget(timeout, cancel)
    options = dict(n_samples=int(n_samples), budget=budget, method=method, rtol=rtol, atol=atol)
    started = time.perf_counter()

    if isinstance(regime, SemiContinuousBatch):
        n_segments = count_segments(t_final, regime.period)
        if n_segments > max_segments:
            raise ConfigurationError(
                f"period={regime.period} over t_final={t_final} needs {n_segments} "
                f"segments (limit {max_segments})"
            )
        trajectory = _simulate_semicontinuous(params, x0, regime, t_final, **options)
    else:
        budget.check()
        segment = _run_segment(params, regime, 0.0, t_final, x0, **options)
        trajectory = Trajectory.from_segments([segment], regime=_regime_name(regime))

    logger.info(
        "%s run to t=%g: %d samples, %d dilution events, %.3f s",
        _regime_name(regime), t_final, len(trajectory), len(trajectory.events),
        time.perf_counter() - started,
    )
    return trajectory


def _simulate_semicontinuous(
    params: CultureParameters,
    x0: np.ndarray,
    regime: SemiContinuousBatch,
    t_final: float,
    **options,
) -> Trajectory:
    budget: _Budget = options["budget"]
    segments: List[Segment] = []
    events: List[DilutionEvent] = []

    t0, x = 0.0, x0
    k = 0
    while t0 < t_final:
        budget.check()
        k += 1
        t1 = k * regime.period
        if t1 >= t_final - _SNAP * regime.period:
            t1 = t_final

        segment = _run_segment(params, regime, t0, t1, x, **options)
        segments.append(segment)

        before = segment.states[-1]
        Df, after = regime.transition(t1, before, params)
        logger.debug(
            "segment %d [%g, %g]: X=%.6g, keep fraction %.4f", k, t0, t1, before[2], Df
        )
        if t1 < t_final:
            events.append(DilutionEvent(t=t1, fraction=Df, before=before.copy(), after=after))

        t0, x = t1, after

    return Trajectory.from_segments(segments, events, regime=_regime_name(regime))
