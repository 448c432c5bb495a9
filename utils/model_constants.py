"""Baseline rates and simulation settings for the alcoholism model."""
from typing import List, Tuple


class ModelConstants:
    """Default parameter values, initial conditions and simulation settings."""

    # Baseline rates
    LAMBDA = 2.44e6  # recruitment into the population (population/month)
    MU = 0.005  # natural death rate (1/month)
    DELTA1 = 0.01  # alcohol-related death rate, heavy drinkers (1/month)
    DELTA2 = 0.008  # alcohol-related death rate, in treatment (1/month)
    BETA1 = 0.148  # moderate -> heavy drinking transition (1/month)
    ALPHA = 0.25  # social influence strength (dimensionless)
    GAMMA = 93.4  # heavy drinking -> treatment (1/month)
    SIGMA = 0.02  # treatment -> recovered (1/month)
    ETA = 0.015  # relapse, recovered -> moderate drinking (1/month)

    # Initial conditions: heavy drinkers seeded into the disease-free equilibrium
    INITIAL_D = 1.0
    INITIAL_T = 0.0
    INITIAL_R = 0.0

    # Simulation span (months)
    T_START = 0.0
    T_END = 200.0

    # Adaptive solver defaults
    RTOL = 1e-3
    ATOL = 1e-6

    # One-factor-at-a-time sweep
    SWEEP_PARAMETERS: Tuple[str, ...] = ('beta1', 'gamma', 'sigma', 'alpha')
    SWEEP_VARIATIONS: Tuple[float, ...] = (-0.3, -0.2, -0.1, 0.0, 0.1, 0.2, 0.3)

    # Fixed RK4 step of the variational integrator (months).
    # Explicit RK4 is stable for gamma * dt < 2.78
    VARIATIONAL_DT = 0.005

    @staticmethod
    def disease_free_equilibrium(Lambda: float, mu: float) -> List[float]:
        """[S, D, T, R] with no heavy drinkers: S* = Lambda / mu."""
        return [Lambda / mu, 0.0, 0.0, 0.0]

    @classmethod
    def baseline_initial_conditions(cls) -> List[float]:
        """Small perturbation of the disease-free equilibrium used by every run."""
        S0, _, _, _ = cls.disease_free_equilibrium(cls.LAMBDA, cls.MU)
        return [S0, cls.INITIAL_D, cls.INITIAL_T, cls.INITIAL_R]

    @classmethod
    def t_span(cls) -> Tuple[float, float]:
        return (cls.T_START, cls.T_END)
