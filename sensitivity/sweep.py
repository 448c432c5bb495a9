"""One-factor-at-a-time parameter sweep over the alcoholism model."""

from __future__ import annotations

import multiprocessing
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from alcoholism import AlcoholismParameters, make_rhs
from sensitivity.config import SweepConfig
from sensitivity.metrics import extract_metrics
from solver.dormand_prince import DormandPrinceIntegrator
from solver.errors import NonConvergenceError


# =============================================================================
# DATA CONTAINERS
# =============================================================================

@dataclass(frozen=True)
class SweepPoint:
    """Outcome of one perturbed run.

    Attributes
    ----------
    variation : float
        Relative offset applied to the baseline value.
    value : float
        Perturbed parameter value, baseline * (1 + variation).
    d_max : float
        Peak heavy-drinker count over the run. NaN when the run failed.
    r_end : float
        Recovered count at the end of the run. NaN when the run failed.
    error : str, optional
        Solver message when the run did not converge.
    """
    variation: float
    value: float
    d_max: float
    r_end: float
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_triple(self) -> tuple[float, float, float]:
        return (self.variation, self.d_max, self.r_end)


@dataclass
class SensitivityResult:
    """Ordered sweep outcomes for one parameter, in variation-list order."""
    parameter: str
    baseline_value: float
    points: List[SweepPoint] = field(default_factory=list)

    @property
    def variations(self) -> np.ndarray:
        return np.array([pt.variation for pt in self.points])

    @property
    def d_max(self) -> np.ndarray:
        return np.array([pt.d_max for pt in self.points])

    @property
    def r_end(self) -> np.ndarray:
        return np.array([pt.r_end for pt in self.points])

    @property
    def failures(self) -> List[SweepPoint]:
        return [pt for pt in self.points if pt.failed]

    def triples(self) -> List[tuple[float, float, float]]:
        return [pt.as_triple() for pt in self.points]


# =============================================================================
# SWEEP
# =============================================================================

def _run_combination(args: dict) -> SweepPoint:
    """Solve one (parameter, variation) pair on its own parameter snapshot.

    Module-level so it can be shipped to worker processes.
    """
    baseline: AlcoholismParameters = args['baseline']
    name: str = args['parameter']
    variation: float = args['variation']

    value = baseline.get(name) * (1.0 + variation)
    snapshot = baseline.with_value(name, value)

    try:
        trajectory = args['integrator'].solve(make_rhs(snapshot), args['t_span'], args['y0'])
    except NonConvergenceError as e:
        return SweepPoint(variation=variation, value=value, d_max=np.nan, r_end=np.nan, error=str(e))

    d_max, r_end = extract_metrics(trajectory)
    return SweepPoint(variation=variation, value=value, d_max=d_max, r_end=r_end)


def run_sweep(
    baseline: AlcoholismParameters,
    y0: Sequence[float],
    config: Optional[SweepConfig] = None,
    integrator: Optional[DormandPrinceIntegrator] = None,
    verbose: bool = False,
) -> Dict[str, SensitivityResult]:
    """Perturb each configured parameter in turn and record (Dmax, Rend).

    Every run starts from ``y0`` with the baseline set, except for the one
    perturbed parameter; perturbations never compound across parameters.
    A run that fails to converge is recorded as a failed point (NaN metrics)
    and the sweep carries on.

    Parameters
    ----------
    baseline : AlcoholismParameters
        Baseline parameter set. Never modified.
    y0 : array-like, shape (4,)
        Initial condition shared by every run.
    config : SweepConfig, optional
        Parameters, variations, time span and solver settings. Defaults apply when omitted.
    integrator : optional
        Object with a ``solve(fun, t_span, y0)`` method. Built from ``config`` when omitted.
    verbose : bool
        Print a warning line for each failed combination.

    Returns
    -------
    dict[str, SensitivityResult]
        One entry per swept parameter, in configuration order.
    """
    if config is None:
        config = SweepConfig()
    if integrator is None:
        integrator = config.make_integrator()
    y0 = [float(v) for v in y0]

    jobs = [
        {
            'baseline': baseline,
            'parameter': name,
            'variation': variation,
            't_span': config.t_span,
            'y0': y0,
            'integrator': integrator,
        }
        for name in config.parameter_names
        for variation in config.variations
    ]

    if config.n_workers == 1:
        points = [_run_combination(job) for job in jobs]
    else:
        with multiprocessing.Pool(config.n_workers) as pool:
            points = pool.map(_run_combination, jobs)

    n_var = len(config.variations)
    results: Dict[str, SensitivityResult] = {}
    for i, name in enumerate(config.parameter_names):
        result = SensitivityResult(
            parameter=name,
            baseline_value=baseline.get(name),
            points=points[i * n_var:(i + 1) * n_var],
        )
        if verbose:
            for pt in result.failures:
                print(f"  ⚠ Warning: {name} {pt.variation:+.0%} did not converge: {pt.error}")
        results[name] = result

    return results


def sensitivity_table(results: Dict[str, SensitivityResult]) -> pd.DataFrame:
    """Long-format table: one row per (parameter, variation)."""
    rows = []
    for name, result in results.items():
        for pt in result.points:
            rows.append({
                'parameter': name,
                'variation': pt.variation,
                'value': pt.value,
                'D_max': pt.d_max,
                'R_end': pt.r_end,
                'failed': pt.failed,
            })
    return pd.DataFrame(rows, columns=['parameter', 'variation', 'value', 'D_max', 'R_end', 'failed'])
