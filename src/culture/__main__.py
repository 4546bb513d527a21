"""
Command line entry point: ``culture`` or ``python -m culture``.

Examples::

    culture --regime chemostat --d 0.3 --plot results/chemostat.png
    culture --regime turbidostat --X-star 1.0 --t-final 60 --csv results/turb.csv
    culture --regime semicontinuous --period 5 --Df 0.5 --t-final 100
    culture --config request.json --npz results/run.npz

Flags override values read from ``--config``. Exit status is 0 on
success, 1 when the simulation fails and 2 for invalid arguments.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from .config import SimulationRequest, load_request
from .controls import REGIMES
from .errors import ConfigurationError
from .service import run_simulation

# (flag, request field, type, help)
_FIELD_FLAGS = (
    ("--regime", "regime", str, f"Culture regime: {', '.join(REGIMES)}."),
    ("--mu-max", "mu_max", float, "Maximum specific growth rate."),
    ("--V-max", "V_max", float, "Maximum uptake rate."),
    ("--K-m", "K_m", float, "Uptake half-saturation constant (> 0)."),
    ("--Q-min", "Q_min", float, "Subsistence quota."),
    ("--R-s", "R_s", float, "Resource concentration of the inflow (alias --R0)."),
    ("--d", "d", float, "Chemostat dilution rate."),
    ("--X-star", "X_star", float, "Target density (turbidostat, semi-continuous)."),
    ("--log10-X-star", "log10_X_star", float, "Target density as log10(X_star)."),
    ("--band", "band", float, "Turbidostat relative band half-width."),
    ("--period", "period", float, "Semi-continuous segment length."),
    ("--Df", "dilution_fraction", float, "Semi-continuous fraction of culture kept."),
    ("--R", "R", float, "Initial resource concentration."),
    ("--Q", "Q", float, "Initial cell quota."),
    ("--X", "X", float, "Initial cell density."),
    ("--t-final", "t_final", float, "End of the simulated horizon."),
    ("--n-samples", "n_samples", int, "Samples over the horizon (per segment for semi-continuous)."),
    ("--method", "method", str, "solve_ivp method (RK45, DOP853, LSODA, ...)."),
    ("--rtol", "rtol", float, "Solver relative tolerance."),
    ("--atol", "atol", float, "Solver absolute tolerance."),
    ("--max-segments", "max_segments", int, "Upper bound on semi-continuous segments."),
    ("--timeout", "timeout", float, "Wall-clock budget in seconds."),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="culture",
        description="Simulate a Droop phytoplankton culture under a batch, chemostat, "
                    "turbidostat or semi-continuous batch regime.",
        allow_abbrev=False,
    )
    parser.add_argument("--config", type=str, default=None, help="JSON request file.")
    for flag, dest, kind, text in _FIELD_FLAGS:
        names = [flag, "--R0"] if dest == "R_s" else [flag]
        parser.add_argument(*names, dest=dest, type=kind, default=None, help=text)
    parser.add_argument("--clamp-growth", action="store_true", default=None,
                        help="Floor the growth rate at zero when Q < Q_min.")
    parser.add_argument("--csv", type=str, default=None, help="Write the trajectory table here.")
    parser.add_argument("--npz", type=str, default=None, help="Write the trajectory arrays here.")
    parser.add_argument("--plot", type=str, default=None, help="Write the time-series figure here.")
    parser.add_argument("--list-regimes", action="store_true", help="List regimes and exit.")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More logging (-v info, -vv debug).")
    return parser


def request_from_args(args: argparse.Namespace) -> SimulationRequest:
    values = load_request(args.config).as_dict() if args.config else {}
    for _, dest, _, _ in _FIELD_FLAGS:
        value = getattr(args, dest)
        if value is not None:
            values[dest] = value
    if args.clamp_growth:
        values["clamp_growth"] = True
    return SimulationRequest.from_mapping(values)


def _print_summary(result, outputs) -> None:
    traj = result.trajectory
    R, Q, X = traj.final_state
    print("=" * 80)
    print(f"{traj.regime} run complete ({result.elapsed:.3f} s)")
    print(f"samples        : {len(traj)}")
    print(f"dilution events: {len(traj.events)}")
    print("-" * 80)
    print(f"t = {traj.t[-1]:.6g}")
    print(f"R = {R:.6g}   Q = {Q:.6g}   X = {X:.6g}")
    print(f"mu = {traj.mu[-1]:.6g}   rho = {traj.rho[-1]:.6g}   mass = {traj.mass[-1]:.6g}")
    for label, path in outputs:
        print(f"{label:<7}: {path}")
    print("=" * 80)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level={0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.list_regimes:
        for name, cls in REGIMES.items():
            doc = (cls.__doc__ or "").strip().splitlines()[0]
            print(f"{name:<15} {doc}")
        return 0

    try:
        request = request_from_args(args)
    except ConfigurationError as exc:
        parser.error(str(exc))

    result = run_simulation(request)

    outputs = []
    if args.plot:
        import matplotlib

        matplotlib.use("Agg")
        from .plotting import plot_result, save_figure

        outputs.append(("figure", save_figure(plot_result(result), args.plot)))

    if not result.ok:
        print(f"Simulation failed ({result.error_kind}): {result.error}", file=sys.stderr)
        return 1

    from .io import save_trajectory_csv, save_trajectory_npz

    if args.csv:
        outputs.append(("csv", save_trajectory_csv(result.trajectory, args.csv)))
    if args.npz:
        outputs.append(("npz", save_trajectory_npz(result.trajectory, args.npz, request)))

    _print_summary(result, outputs)
    return 0


if __name__ == "__main__":
    sys.exit(main())
