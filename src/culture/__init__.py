"""
Droop phytoplankton culture simulator.

This package bundles the continuous-time dynamics, the dilution policies
of the four culture regimes (batch, chemostat, turbidostat and
semi-continuous batch), the simulation loop and plotting helpers.

Typical usage in a notebook::

    from culture import model, controls, simulator

    params = model.CultureParameters(d=0.3)
    traj = simulator.simulate_culture(
        params=params,
        x0=model.default_initial_state(),
        regime=controls.Chemostat(),
        t_final=50.0,
    )
    df = traj.to_frame()

or, going through the request boundary::

    from culture import SimulationRequest, run_simulation

    result = run_simulation(SimulationRequest(regime="turbidostat", X_star=1.0))
"""

__version__ = "0.1.0"

from .errors import (
    CultureError,
    ConfigurationError,
    DomainError,
    IntegrationFailure,
    DegenerateDilutionError,
    SimulationCancelled,
)
from .model import (
    STATE_NAMES,
    CultureParameters,
    uptake,
    growth,
    mass,
    f,
    diagnostics,
    make_rhs,
    default_initial_state,
    chemostat_equilibrium,
    washout_dilution,
)
from .controls import (
    Batch,
    Chemostat,
    Turbidostat,
    SemiContinuousBatch,
    REGIMES,
    make_regime,
)
from .integrator import IntegrationResult, integrate
from .trajectory import Trajectory, TrajectoryPoint, DilutionEvent
from .simulator import default_time_grid, simulate_culture
from .config import SimulationRequest, default_request, load_request
from .service import SimulationResult, run_simulation, simulate_request

__all__ = [
    "__version__",
    # errors
    "CultureError",
    "ConfigurationError",
    "DomainError",
    "IntegrationFailure",
    "DegenerateDilutionError",
    "SimulationCancelled",
    # model
    "STATE_NAMES",
    "CultureParameters",
    "uptake",
    "growth",
    "mass",
    "f",
    "diagnostics",
    "make_rhs",
    "default_initial_state",
    "chemostat_equilibrium",
    "washout_dilution",
    # controls
    "Batch",
    "Chemostat",
    "Turbidostat",
    "SemiContinuousBatch",
    "REGIMES",
    "make_regime",
    # integrator
    "IntegrationResult",
    "integrate",
    # trajectory
    "Trajectory",
    "TrajectoryPoint",
    "DilutionEvent",
    # simulator
    "default_time_grid",
    "simulate_culture",
    # config / service
    "SimulationRequest",
    "default_request",
    "load_request",
    "SimulationResult",
    "run_simulation",
    "simulate_request",
]
