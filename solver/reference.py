"""High-precision reference solve used to check the adaptive integrator."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from solver.dormand_prince import RHS, validate_t_span
from solver.errors import InvalidConfigurationError, NonConvergenceError
from solver.trajectory import Trajectory


def reference_solve(
    fun: RHS,
    t_span: Sequence[float],
    y0: Sequence[float],
    rtol: float = 1e-10,
    atol: float = 1e-8,
    method: str = 'DOP853',
    t_eval: Optional[np.ndarray] = None,
) -> Trajectory:
    """Solve with SciPy at tight tolerances and wrap the result as a Trajectory.

    Parameters
    ----------
    fun : callable
        Right-hand side ``fun(t, y) -> dy/dt``.
    t_span : (float, float)
        Integration interval.
    y0 : array-like
        Initial state.
    rtol, atol : float
        Tolerances handed to ``scipy.integrate.solve_ivp``.
    method : str
        SciPy method name. DOP853 (8th order) by default.
    t_eval : np.ndarray, optional
        Times at which to report the solution. Solver steps when omitted.

    Returns
    -------
    Trajectory
    """
    t0, tf = validate_t_span(t_span)
    y0 = np.asarray(y0, dtype=float)
    if y0.ndim != 1 or y0.size == 0:
        raise InvalidConfigurationError(
            f"Initial state must be a non-empty 1-D vector, got shape {y0.shape}"
        )

    sol = solve_ivp(fun, (t0, tf), y0, method=method, rtol=rtol, atol=atol, t_eval=t_eval)
    if not sol.success:
        raise NonConvergenceError(f"Reference solve failed: {sol.message}")

    return Trajectory(
        t=sol.t,
        y=sol.y.T,
        nfev=int(sol.nfev),
        n_accepted=len(sol.t) - 1 if t_eval is None else 0,
    )
