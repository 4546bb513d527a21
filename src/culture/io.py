"""
Export helpers for simulated trajectories.

NPZ file convention
-------------------
Required keys:
  t              : (T,)    sample times
  states         : (T,3)   [R, Q, X]
  diagnostics    : (T,4)   [rho, mu, mass, dilution]
  segment        : (T,)    segment index of each sample
  regime         : str
Dilution events (possibly empty):
  event_t        : (E,)
  event_fraction : (E,)
  event_before   : (E,3)
  event_after    : (E,3)
Optional:
  request_json   : str     the request that produced the run

CSV files hold :meth:`Trajectory.to_frame`, one row per sample.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import numpy as np

from .trajectory import DilutionEvent, Trajectory


def ensure_dir(path: str | Path) -> Path:
    path = Path(path)
    os.makedirs(path, exist_ok=True)
    return path


def save_trajectory_csv(trajectory: Trajectory, path: str | Path) -> Path:
    path = Path(path)
    ensure_dir(path.parent)
    trajectory.to_frame().to_csv(path, index=False)
    return path


def save_trajectory_npz(trajectory: Trajectory, path: str | Path, request=None) -> Path:
    path = Path(path)
    ensure_dir(path.parent)
    events = trajectory.events
    extra = {}
    if request is not None:
        extra["request_json"] = json.dumps(request.as_dict())
    np.savez(
        path,
        t=trajectory.t,
        states=trajectory.states,
        diagnostics=trajectory.diagnostics,
        segment=trajectory.segment,
        regime=str(trajectory.regime),
        event_t=np.array([e.t for e in events], dtype=float),
        event_fraction=np.array([e.fraction for e in events], dtype=float),
        event_before=np.array([e.before for e in events], dtype=float).reshape(-1, 3),
        event_after=np.array([e.after for e in events], dtype=float).reshape(-1, 3),
        **extra,
    )
    return path


def load_trajectory_npz(path: str | Path) -> Trajectory:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trajectory file not found: {path}")

    with np.load(path) as data:
        missing = [k for k in ("t", "states", "diagnostics", "segment") if k not in data]
        if missing:
            raise KeyError(f"{path} missing keys {missing}. Keys: {list(data.keys())}")

        events = []
        if "event_t" in data:
            for t, Df, before, after in zip(
                data["event_t"], data["event_fraction"], data["event_before"], data["event_after"]
            ):
                events.append(DilutionEvent(float(t), float(Df), np.array(before), np.array(after)))

        return Trajectory(
            t=np.asarray(data["t"], dtype=float).reshape(-1),
            states=np.asarray(data["states"], dtype=float),
            diagnostics=np.asarray(data["diagnostics"], dtype=float),
            segment=np.asarray(data["segment"], dtype=int).reshape(-1),
            events=events,
            regime=str(data["regime"]) if "regime" in data else "",
        )
