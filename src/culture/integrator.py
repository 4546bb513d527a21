"""
Thin wrapper around :func:`scipy.integrate.solve_ivp`.

The simulator only relies on the contract below, never on solver
internals:

- ``rhs(t, y)`` is integrated from ``t_span[0]`` to ``t_span[1]`` starting
  at ``y0`` and sampled at the strictly increasing times ``t_eval``;
- the result carries a ``success`` flag and a message; a failed solve
  (solver status < 0, or any non-finite sample) is reported through that
  flag, never handed back as if it were valid;
- exceptions raised by ``rhs`` itself (e.g. :class:`culture.errors.DomainError`)
  propagate unchanged.

The default method is the adaptive explicit Runge-Kutta pair ``RK45``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from .errors import ConfigurationError, IntegrationFailure

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "RK45"
DEFAULT_RTOL = 1e-8
DEFAULT_ATOL = 1e-10

RhsFunction = Callable[[float, np.ndarray], np.ndarray]


@dataclass
class IntegrationResult:
    """
    Output of :func:`integrate`.

    Attributes
    ----------
    success
        False if the solver gave up or produced non-finite values.
    t : ndarray, shape (T,)
        Sample times (equal to ``t_eval`` on success).
    y : ndarray, shape (T, n)
        States at the sample times, one row per sample.
    diagnostics : ndarray, shape (T, k) or None
        Rows from the optional ``diagnostics(t, y)`` callable.
    message
        Solver message.
    nfev
        Number of right-hand-side evaluations.
    """

    success: bool
    t: np.ndarray
    y: np.ndarray
    diagnostics: Optional[np.ndarray] = None
    message: str = ""
    nfev: int = 0


def time_grid(t0: float, t1: float, n_samples: int) -> np.ndarray:
    """
    ``n_samples`` evenly spaced times from ``t0`` to ``t1`` (both included).
    """
    if n_samples < 2:
        raise ConfigurationError(f"need at least 2 samples, got {n_samples}")
    t = np.linspace(float(t0), float(t1), int(n_samples))
    # linspace may round the end point; solve_ivp requires t_eval inside t_span
    t[-1] = float(t1)
    return t


def _check_eval_times(t_span: Tuple[float, float], t_eval: np.ndarray) -> None:
    t0, t1 = t_span
    if not t1 > t0:
        raise ConfigurationError(f"t_span must be increasing, got {t_span!r}")
    if t_eval.ndim != 1 or t_eval.size == 0:
        raise ConfigurationError("t_eval must be a non-empty 1D array")
    if np.any(np.diff(t_eval) <= 0.0):
        raise ConfigurationError("t_eval must be strictly increasing")
    if t_eval[0] < t0 or t_eval[-1] > t1:
        raise ConfigurationError(
            f"t_eval [{t_eval[0]}, {t_eval[-1]}] lies outside t_span [{t0}, {t1}]"
        )


def integrate(
    rhs: RhsFunction,
    t_span: Tuple[float, float],
    y0: Sequence[float] | np.ndarray,
    t_eval: Sequence[float] | np.ndarray,
    diagnostics: Optional[Callable[[float, np.ndarray], np.ndarray]] = None,
    method: str = DEFAULT_METHOD,
    rtol: float = DEFAULT_RTOL,
    atol: float = DEFAULT_ATOL,
) -> IntegrationResult:
    """
    Integrate ``rhs`` and sample the solution at ``t_eval``.

    Parameters
    ----------
    rhs
        Right-hand side ``rhs(t, y) -> dy/dt``.
    t_span
        Integration interval ``(t0, t1)``.
    y0
        Initial state at ``t0``.
    t_eval
        Strictly increasing output times inside ``t_span``.
    diagnostics
        Optional ``diagnostics(t, y) -> row`` evaluated at every sample of a
        successful solve.
    method, rtol, atol
        Passed to :func:`scipy.integrate.solve_ivp`.

    Returns
    -------
    IntegrationResult
    """
    t_span = (float(t_span[0]), float(t_span[1]))
    t_eval = np.asarray(t_eval, dtype=float)
    y0 = np.asarray(y0, dtype=float).reshape(-1)
    _check_eval_times(t_span, t_eval)

    try:
        sol = solve_ivp(
            fun=rhs,
            t_span=t_span,
            y0=y0,
            method=method,
            t_eval=t_eval,
            rtol=rtol,
            atol=atol,
            dense_output=False,
        )
    except ValueError as exc:
        # solve_ivp rejects unknown methods and bad tolerances with ValueError
        raise ConfigurationError(f"solver rejected its options: {exc}") from exc

    y = np.asarray(sol.y, dtype=float).T
    t = np.asarray(sol.t, dtype=float)
    message = str(sol.message)

    success = bool(sol.success) and sol.status == 0 and t.size == t_eval.size
    if success and not np.all(np.isfinite(y)):
        success = False
        message = "solver produced non-finite state"

    if not success:
        logger.warning(
            "integration over [%g, %g] failed after %d evaluations: %s",
            t_span[0], t_span[1], sol.nfev, message,
        )
        return IntegrationResult(False, t, y, None, message, int(sol.nfev))

    diag = None
    if diagnostics is not None:
        diag = np.vstack([np.asarray(diagnostics(ti, yi), dtype=float) for ti, yi in zip(t, y)])

    return IntegrationResult(True, t, y, diag, message, int(sol.nfev))


def raise_for_failure(result: IntegrationResult) -> IntegrationResult:
    """Return ``result`` unchanged, or raise :class:`IntegrationFailure` if it failed."""
    if not result.success:
        raise IntegrationFailure(result.message or "integration failed")
    return result
