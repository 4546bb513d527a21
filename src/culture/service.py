"""
Request boundary of the simulator.

:func:`run_simulation` executes one :class:`culture.config.SimulationRequest`
and always returns a :class:`SimulationResult`. Failures of the run
(bad configuration, domain errors, solver failures, degenerate dilution,
cancellation) are turned into an error result with a readable message so
the caller can show it in place of a plot. Each call builds its own
parameter set, regime and state; nothing is shared between requests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from .config import SimulationRequest
from .errors import CultureError
from .simulator import simulate_culture
from .trajectory import Trajectory

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    request: Optional[SimulationRequest]
    trajectory: Optional[Trajectory] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    elapsed: float = 0.0
    exception: Optional[CultureError] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> Trajectory:
        if not self.ok:
            if self.exception is not None:
                raise self.exception
            raise CultureError(f"{self.error_kind}: {self.error}")
        return self.trajectory


def simulate_request(request: SimulationRequest, cancel=None) -> Trajectory:
    """Run ``request`` and return its trajectory; simulation errors propagate."""
    return simulate_culture(
        params=request.parameters(),
        x0=request.initial_state(),
        regime=request.regime_policy(),
        t_final=request.t_final,
        n_samples=request.n_samples,
        method=request.method,
        rtol=request.rtol,
        atol=request.atol,
        max_segments=request.max_segments,
        timeout=request.timeout,
        cancel=cancel,
    )


def run_simulation(
    request: Union[SimulationRequest, Mapping[str, object], None] = None,
    cancel=None,
) -> SimulationResult:
    """
    Run one request and report success or failure as a value.

    ``request`` may also be a plain mapping of request fields, or None for
    the default request.
    """
    started = time.perf_counter()
    parsed = request if isinstance(request, SimulationRequest) else None
    try:
        if parsed is None:
            parsed = SimulationRequest.from_mapping(request or {})
        trajectory = simulate_request(parsed, cancel=cancel)
    except CultureError as exc:
        kind = type(exc).__name__
        logger.error("simulation request failed (%s): %s", kind, exc)
        return SimulationResult(
            request=parsed,
            error=str(exc),
            error_kind=kind,
            elapsed=time.perf_counter() - started,
            exception=exc,
        )

    return SimulationResult(
        request=parsed,
        trajectory=trajectory,
        elapsed=time.perf_counter() - started,
    )
