"""Summary metrics and sensitivity measures for the alcoholism model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List

import numpy as np
import pandas as pd

from alcoholism import D_INDEX, R_INDEX
from sensitivity.sensitivity_history import SensitivityHistory
from solver.trajectory import Trajectory

if TYPE_CHECKING:
    from sensitivity.sweep import SensitivityResult


# =============================================================================
# RUN METRICS
# =============================================================================

def extract_metrics(trajectory: Trajectory) -> tuple[float, float]:
    """Peak heavy drinkers and final recovered count of one run.

    Non-finite samples are not filtered: a trajectory carrying NaN yields NaN,
    so degenerate runs are visible in the sweep output instead of raising.

    Returns
    -------
    (float, float)
        ``(Dmax, Rend)``.
    """
    d_max = float(np.max(trajectory.component(D_INDEX)))
    r_end = float(trajectory.y[-1, R_INDEX])
    return d_max, r_end


# =============================================================================
# FORWARD-SENSITIVITY METRICS
# =============================================================================

def compute_normalized_sensitivity(
    history: SensitivityHistory,
    p_val: np.ndarray,
) -> np.ndarray:
    """Compute dimensionless normalized sensitivity for all states and parameters.

    Formula:  norm_sens[t, i, j] = (p_j / scale_i) * (∂x_i/∂p_j)(t)

    where scale_i = max|x_i(t)| over the trajectory.
    Entries where scale_i < 1e-12 are left as NaN.

    Parameters
    ----------
    history : SensitivityHistory
    p_val : np.ndarray, shape (9,)
        Nominal parameter values in canonical PARAM_NAMES order.

    Returns
    -------
    np.ndarray, shape (N+1, 4, 9)
        Normalized sensitivity for outputs [S, D, T, R].
    """
    n_t, n_states, n_params = history.S_states.shape

    norm_sens = np.full((n_t, n_states, n_params), np.nan)
    for i in range(n_states):
        scale = np.max(np.abs(history.states[:, i]))
        if scale < 1e-12:
            continue
        norm_sens[:, i, :] = history.S_states[:, i, :] * (p_val / scale)

    return norm_sens


def compute_l2_norms(history: SensitivityHistory) -> np.ndarray:
    """L2-integrated sensitivity norms for all (state, parameter) pairs.

    Formula:  L2[i, j] = sqrt( ∫₀ᵀ (∂x_i/∂p_j)² dt )

    Uses raw Jacobians, units are preserved.

    Returns
    -------
    np.ndarray, shape (4, 9)
    """
    return np.sqrt(np.trapezoid(history.S_states ** 2, history.t, axis=0))


def compute_metric_elasticities(
    history: SensitivityHistory,
    p_val: np.ndarray,
    param_names: List[str],
) -> pd.DataFrame:
    """Local elasticities (p / M) · ∂M/∂p of Dmax and Rend.

    ∂Rend/∂p is the R row of the Jacobian at the final time. For Dmax the
    Jacobian of D is read at the grid point where D peaks (dD/dt = 0 there, so
    the peak time does not contribute to first order).

    Returns
    -------
    pd.DataFrame
        Index: parameter names. Columns: ``D_max``, ``R_end``. NaN where the
        metric is zero.
    """
    D = history.states[:, D_INDEX]
    k_peak = int(np.argmax(D))
    metrics = {
        'D_max': (D[k_peak], history.S_states[k_peak, D_INDEX, :]),
        'R_end': (history.states[-1, R_INDEX], history.S_states[-1, R_INDEX, :]),
    }

    columns = {}
    for label, (value, grad) in metrics.items():
        if abs(value) < 1e-12:
            columns[label] = np.full(len(p_val), np.nan)
        else:
            columns[label] = p_val * grad / value

    return pd.DataFrame(columns, index=pd.Index(param_names, name='parameter'))


# =============================================================================
# SWEEP METRICS
# =============================================================================

def compute_sweep_elasticities(results: Dict[str, SensitivityResult]) -> pd.DataFrame:
    """Finite-difference elasticities of Dmax and Rend from a sweep.

    Uses the converged points nearest to zero on each side of the unperturbed
    run (central difference when both exist, one-sided otherwise):

        E = (ΔM / M(0)) / Δv

    Parameters with no converged zero-variation point, or with no neighbour,
    get NaN.

    Returns
    -------
    pd.DataFrame
        Index: swept parameter names. Columns: ``D_max``, ``R_end``.
    """
    rows = {}
    for name, result in results.items():
        converged = {pt.variation: pt for pt in result.points if not pt.failed}
        row = {'D_max': np.nan, 'R_end': np.nan}

        zero = converged.get(0.0)
        lower = [v for v in converged if v < 0]
        upper = [v for v in converged if v > 0]
        if zero is not None and (lower or upper):
            v_lo = max(lower) if lower else 0.0
            v_hi = min(upper) if upper else 0.0
            lo, hi = converged[v_lo], converged[v_hi]
            for label, attr in (('D_max', 'd_max'), ('R_end', 'r_end')):
                base = getattr(zero, attr)
                if abs(base) > 1e-12:
                    row[label] = (getattr(hi, attr) - getattr(lo, attr)) / base / (v_hi - v_lo)

        rows[name] = row

    frame = pd.DataFrame.from_dict(rows, orient='index', columns=['D_max', 'R_end'])
    frame.index.name = 'parameter'
    return frame
