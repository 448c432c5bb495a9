"""Adaptive ODE solver package."""

from .errors import InvalidConfigurationError, NonConvergenceError
from .trajectory import Trajectory
from .dormand_prince import DormandPrinceIntegrator, solve_ode, validate_t_span
from .reference import reference_solve

__all__ = [
    'InvalidConfigurationError',
    'NonConvergenceError',
    'Trajectory',
    'DormandPrinceIntegrator',
    'solve_ode',
    'validate_t_span',
    'reference_solve',
]
