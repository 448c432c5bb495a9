"""Sensitivity analysis package for the alcoholism model."""

from .config import SweepConfig
from .sweep import SweepPoint, SensitivityResult, run_sweep, sensitivity_table
from .metrics import (
    extract_metrics,
    compute_normalized_sensitivity,
    compute_l2_norms,
    compute_metric_elasticities,
    compute_sweep_elasticities,
)
from .sensitivity_history import SensitivityHistory
from .variational_integrator import AlcoholismVariationalIntegrator

__all__ = [
    'SweepConfig',
    'SweepPoint',
    'SensitivityResult',
    'run_sweep',
    'sensitivity_table',
    'extract_metrics',
    'compute_normalized_sensitivity',
    'compute_l2_norms',
    'compute_metric_elasticities',
    'compute_sweep_elasticities',
    'SensitivityHistory',
    'AlcoholismVariationalIntegrator',
]
