"""
Phase 1 - Culture regimes
A_culture_regimes.py

Simulates the same culture under the four regimes and compares the
density, quota and resource trajectories on a single figure.

Outputs:
  results/phase1/culture_regimes.png
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import matplotlib.pyplot as plt

# ---------------------------------------------------------------------
# Robust imports (package source on path)
# ---------------------------------------------------------------------
CURRENT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = CURRENT_DIR.parent
if str(PROJECT_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "src"))

from culture import SimulationRequest, run_simulation


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--t_final", type=float, default=60.0, help="Simulated horizon.")
    parser.add_argument("--X_star", type=float, default=1.0, help="Turbidostat / semi-continuous target density.")
    parser.add_argument("--period", type=float, default=5.0, help="Semi-continuous period.")
    parser.add_argument("--d", type=float, default=0.5, help="Chemostat dilution rate.")
    args = parser.parse_args()

    requests = {
        "batch": SimulationRequest(regime="batch", t_final=args.t_final, n_samples=300),
        "chemostat": SimulationRequest(regime="chemostat", d=args.d, t_final=args.t_final, n_samples=300),
        "turbidostat": SimulationRequest(
            regime="turbidostat", X=0.1, X_star=args.X_star, t_final=args.t_final, n_samples=300
        ),
        "semicontinuous": SimulationRequest(
            regime="semicontinuous", period=args.period, X_star=args.X_star,
            t_final=args.t_final, n_samples=50,
        ),
    }

    fig, axes = plt.subplots(3, 1, figsize=(9, 9), sharex=True)
    for name, req in requests.items():
        result = run_simulation(req)
        if not result.ok:
            print(f"{name:<15} failed: {result.error_kind}: {result.error}")
            continue
        traj = result.trajectory
        axes[0].plot(traj.t, traj.log10_density(strict=False), label=name)
        axes[1].plot(traj.t, traj.Q, label=name)
        axes[2].plot(traj.t, traj.R, label=name)
        print(f"{name:<15} X(t_final) = {traj.X[-1]:.4g}   mu = {traj.mu[-1]:.4g}")

    axes[0].set_ylabel("log10 X")
    axes[1].set_ylabel("Q")
    axes[2].set_ylabel("R")
    axes[2].set_xlabel("t")
    for ax in axes:
        ax.grid(True)
    axes[0].legend()
    fig.tight_layout()

    out_dir = PROJECT_ROOT / "results" / "phase1"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_fig = out_dir / "culture_regimes.png"
    fig.savefig(out_fig, dpi=200)
    plt.close(fig)
    print(f"figure : {out_fig}")


if __name__ == "__main__":
    main()
