"""
Plotting helpers for culture trajectories.

:func:`plot_timeseries` draws a faceted view with one row per quantity
against time and the density shown as log10(X). Samples with X <= 0 are left as gaps and flagged on the panel
instead of being drawn at -inf. :func:`plot_failure` draws the error
message of a failed run in place of the plot.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

font = {"size": 10}
matplotlib.rc("font", **font)

# Rows of the faceted figure: (label, trajectory attribute)
PANELS = (
    ("R", "R"),
    ("Q", "Q"),
    ("rho", "rho"),
    ("mu", "mu"),
    ("mass", "mass"),
    ("log10X", None),
)


def plot_timeseries(trajectory, fig=None, title: str | None = None):
    """
    Plot R, Q, rho, mu, mass and log10(X) against time.

    Parameters
    ----------
    trajectory
        :class:`culture.trajectory.Trajectory` to draw.
    fig
        Optional :class:`matplotlib.figure.Figure`. If None, a new one is
        created.
    title
        Figure title. Defaults to the regime name.

    Returns
    -------
    fig
        The figure with one axis per panel.
    """
    if fig is None:
        fig = plt.figure(figsize=(7, 11))

    axes = fig.subplots(len(PANELS), 1, sharex=True)
    t = trajectory.t
    log10X = trajectory.log10_density(strict=False)

    for ax, (label, attr) in zip(axes, PANELS):
        values = log10X if attr is None else getattr(trajectory, attr)
        ax.plot(t, values, lw=1.2)
        ax.set_ylabel(label)
        ax.grid(True, alpha=0.3)
        for event in trajectory.events:
            ax.axvline(event.t, color="0.7", ls=":", lw=0.8)

    n_bad = int(np.count_nonzero(np.isnan(log10X)))
    if n_bad:
        axes[-1].text(
            0.02, 0.85, f"X <= 0 at {n_bad} samples (not shown)",
            transform=axes[-1].transAxes, color="tab:red",
        )

    axes[-1].set_xlabel("time")
    fig.suptitle(title if title is not None else trajectory.regime)
    fig.tight_layout()
    return fig


def plot_failure(message: str, fig=None, title: str = "simulation failed"):
    """Draw ``message`` where the time series would otherwise go."""
    if fig is None:
        fig = plt.figure(figsize=(7, 3))
    ax = fig.add_subplot(111)
    ax.set_axis_off()
    ax.text(0.5, 0.6, title, ha="center", va="center", fontsize=14, color="tab:red")
    ax.text(0.5, 0.35, message, ha="center", va="center", wrap=True)
    return fig


def plot_result(result, fig=None):
    """Dispatch on a :class:`culture.service.SimulationResult`."""
    if result.ok:
        return plot_timeseries(result.trajectory, fig=fig)
    return plot_failure(f"{result.error_kind}: {result.error}", fig=fig)


def save_figure(fig, path: str | Path, dpi: int = 200) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
