"""
Trajectory container returned by the simulator.

A trajectory is an ordered table of samples

    t, R, Q, X, rho, mu, mass, dilution, segment

Times never decrease. For semi-continuous batch runs the table is the
concatenation of the per-segment tables; each segment boundary shows up as
two consecutive rows with the same ``t``: the state just before and just
after the dilution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Sequence

import numpy as np
import pandas as pd

from .errors import DomainError
from .model import DIAGNOSTIC_NAMES, STATE_NAMES

COLUMNS = ("time",) + STATE_NAMES + DIAGNOSTIC_NAMES + ("segment",)


class TrajectoryPoint(NamedTuple):
    t: float
    R: float
    Q: float
    X: float
    rho: float
    mu: float
    mass: float


class DilutionEvent(NamedTuple):
    """Instantaneous dilution applied at a segment boundary."""

    t: float
    fraction: float
    before: np.ndarray
    after: np.ndarray


@dataclass
class Segment:
    """Samples of one integrator call."""

    t: np.ndarray            # (T,)
    states: np.ndarray       # (T, 3)
    diagnostics: np.ndarray  # (T, 4)


@dataclass
class Trajectory:
    t: np.ndarray
    states: np.ndarray
    diagnostics: np.ndarray
    segment: np.ndarray
    events: List[DilutionEvent] = field(default_factory=list)
    regime: str = ""

    def __post_init__(self):
        n = self.t.shape[0]
        if self.states.shape != (n, len(STATE_NAMES)):
            raise ValueError(f"states must be ({n}, 3), got {self.states.shape}")
        if self.diagnostics.shape != (n, len(DIAGNOSTIC_NAMES)):
            raise ValueError(f"diagnostics must be ({n}, 4), got {self.diagnostics.shape}")
        if self.segment.shape != (n,):
            raise ValueError(f"segment must be ({n},), got {self.segment.shape}")

    @classmethod
    def from_segments(
        cls,
        segments: Sequence[Segment],
        events: Sequence[DilutionEvent] = (),
        regime: str = "",
    ) -> "Trajectory":
        """Concatenate per-segment samples, keeping boundary duplicates."""
        if not segments:
            raise ValueError("a trajectory needs at least one segment")
        return cls(
            t=np.concatenate([s.t for s in segments]),
            states=np.vstack([s.states for s in segments]),
            diagnostics=np.vstack([s.diagnostics for s in segments]),
            segment=np.concatenate(
                [np.full(s.t.shape[0], i, dtype=int) for i, s in enumerate(segments)]
            ),
            events=list(events),
            regime=regime,
        )

    def __len__(self) -> int:
        return int(self.t.shape[0])

    # --- columns ---

    @property
    def R(self) -> np.ndarray:
        return self.states[:, 0]

    @property
    def Q(self) -> np.ndarray:
        return self.states[:, 1]

    @property
    def X(self) -> np.ndarray:
        return self.states[:, 2]

    @property
    def rho(self) -> np.ndarray:
        return self.diagnostics[:, 0]

    @property
    def mu(self) -> np.ndarray:
        return self.diagnostics[:, 1]

    @property
    def mass(self) -> np.ndarray:
        return self.diagnostics[:, 2]

    @property
    def dilution(self) -> np.ndarray:
        return self.diagnostics[:, 3]

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1].copy()

    def points(self) -> Iterator[TrajectoryPoint]:
        for ti, (R, Q, X), (rho, mu, m, _) in zip(self.t, self.states, self.diagnostics):
            yield TrajectoryPoint(float(ti), float(R), float(Q), float(X),
                                  float(rho), float(mu), float(m))

    def boundary_indices(self) -> np.ndarray:
        """Indices of the first row of every segment after the first one."""
        return np.flatnonzero(np.diff(self.segment) != 0) + 1

    def post_dilution_states(self) -> np.ndarray:
        """States right after each dilution event, shape (n_events, 3)."""
        if not self.events:
            return np.empty((0, len(STATE_NAMES)))
        return np.vstack([e.after for e in self.events])

    def log10_density(self, strict: bool = True) -> np.ndarray:
        """
        log10(X) for plotting.

        Parameters
        ----------
        strict
            If True, raise :class:`DomainError` when any X <= 0. Otherwise
            those samples are returned as NaN.
        """
        X = self.X
        valid = X > 0.0
        if strict and not np.all(valid):
            first = int(np.flatnonzero(~valid)[0])
            raise DomainError(
                f"log10(X) undefined: X={X[first]!r} at t={self.t[first]!r}"
            )
        out = np.full_like(X, np.nan)
        out[valid] = np.log10(X[valid])
        return out

    def to_frame(self) -> pd.DataFrame:
        """
        Table for the presentation layer. Samples with X <= 0 get
        ``log10X = NaN`` and ``log10X_valid = False``.
        """
        df = pd.DataFrame(
            {
                "time": self.t,
                "R": self.R,
                "Q": self.Q,
                "X": self.X,
                "rho": self.rho,
                "mu": self.mu,
                "mass": self.mass,
                "dilution": self.dilution,
                "segment": self.segment,
            }
        )
        df["log10X"] = self.log10_density(strict=False)
        df["log10X_valid"] = self.X > 0.0
        return df
