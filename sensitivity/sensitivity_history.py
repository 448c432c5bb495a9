from dataclasses import dataclass

import numpy as np


@dataclass
class SensitivityHistory:
    """Trajectory of the states and their forward parameter sensitivities.

    Attributes
    ----------
    t : np.ndarray, shape (N+1,)
        Uniform time grid (months).
    states : np.ndarray, shape (N+1, 4)
        Compartments [S, D, T, R] at each time step.
    S_states : np.ndarray, shape (N+1, 4, 9)
        Jacobian ∂x/∂p at each time step  (S_states[:, i, j] = ∂x_i/∂p_j).
    """
    t: np.ndarray
    states: np.ndarray
    S_states: np.ndarray
