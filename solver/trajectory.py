"""Trajectory container returned by every solve."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd


@dataclass
class Trajectory:
    """Time-ordered samples of the state vector produced by one solve.

    Attributes
    ----------
    t : np.ndarray, shape (n,)
        Sample times, strictly increasing. ``t[0]`` is the start of the span and
        ``t[-1]`` its end.
    y : np.ndarray, shape (n, n_states)
        State vector at each sample time. ``y[0]`` is the initial condition.
    nfev : int
        Number of right-hand-side evaluations.
    n_accepted : int
        Number of accepted steps.
    n_rejected : int
        Number of rejected steps.
    """
    t: np.ndarray
    y: np.ndarray
    nfev: int = 0
    n_accepted: int = 0
    n_rejected: int = 0

    def __len__(self) -> int:
        return len(self.t)

    @property
    def n_states(self) -> int:
        return self.y.shape[1]

    @property
    def final_state(self) -> np.ndarray:
        return self.y[-1]

    def component(self, index: int) -> np.ndarray:
        """Time course of one state component."""
        return self.y[:, index]

    def to_frame(self, state_names: list[str] | None = None) -> pd.DataFrame:
        """Tabular (time, x_0, ..., x_n) view of the samples."""
        if state_names is None:
            state_names = [f'x{i}' for i in range(self.n_states)]
        if len(state_names) != self.n_states:
            raise ValueError(
                f"Expected {self.n_states} state names, got {len(state_names)}"
            )
        frame = pd.DataFrame(self.y, columns=state_names)
        frame.insert(0, 'time', self.t)
        return frame
