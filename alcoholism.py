"""Four-compartment alcoholism model with social-influence feedback.

Compartments: moderate drinkers S, heavy drinkers D, treatment T, recovered R.
The moderate -> heavy transition rate beta1 is amplified by (1 + alpha * D / N),
where N = S + D + T + R is the current (non-conserved) total population.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Callable, Dict, Sequence, Tuple

import numpy as np

from solver.errors import InvalidConfigurationError
from utils.model_constants import ModelConstants

PARAM_NAMES: list[str] = [
    'Lambda', 'mu', 'delta1', 'delta2', 'beta1', 'alpha', 'gamma', 'sigma', 'eta',
]
STATE_NAMES: list[str] = ['S', 'D', 'T', 'R']
STATE_LABELS: list[str] = [
    'Moderate Drinkers (S)', 'Heavy Drinkers (D)', 'Treatment (T)', 'Recovered (R)',
]
D_INDEX = 1
R_INDEX = 3


# =============================================================================
# PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class AlcoholismParameters:
    """Immutable parameter set. Every run gets its own snapshot."""

    Lambda: float = ModelConstants.LAMBDA
    mu: float = ModelConstants.MU
    delta1: float = ModelConstants.DELTA1
    delta2: float = ModelConstants.DELTA2
    beta1: float = ModelConstants.BETA1
    alpha: float = ModelConstants.ALPHA
    gamma: float = ModelConstants.GAMMA
    sigma: float = ModelConstants.SIGMA
    eta: float = ModelConstants.ETA

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not np.isfinite(value) or value < 0:
                raise InvalidConfigurationError(
                    f"Parameter '{f.name}' must be a finite non-negative rate, got {value}"
                )

    def as_array(self) -> np.ndarray:
        """Values in canonical PARAM_NAMES order."""
        return np.array([get(self) for get, _ in PARAMETER_ACCESSORS.values()])

    @classmethod
    def from_array(cls, values: Sequence[float]) -> AlcoholismParameters:
        if len(values) != len(PARAM_NAMES):
            raise InvalidConfigurationError(
                f"Expected {len(PARAM_NAMES)} parameter values, got {len(values)}"
            )
        return cls(**{name: float(v) for name, v in zip(PARAM_NAMES, values)})

    def get(self, name: str) -> float:
        return accessor_for(name)[0](self)

    def with_value(self, name: str, value: float) -> AlcoholismParameters:
        """Copy of this set with one parameter overridden."""
        return accessor_for(name)[1](self, value)


Getter = Callable[[AlcoholismParameters], float]
Setter = Callable[[AlcoholismParameters, float], AlcoholismParameters]

# Explicit name -> (getter, setter) table; setters return a new snapshot.
PARAMETER_ACCESSORS: Dict[str, Tuple[Getter, Setter]] = {
    'Lambda': (lambda p: p.Lambda, lambda p, v: replace(p, Lambda=v)),
    'mu': (lambda p: p.mu, lambda p, v: replace(p, mu=v)),
    'delta1': (lambda p: p.delta1, lambda p, v: replace(p, delta1=v)),
    'delta2': (lambda p: p.delta2, lambda p, v: replace(p, delta2=v)),
    'beta1': (lambda p: p.beta1, lambda p, v: replace(p, beta1=v)),
    'alpha': (lambda p: p.alpha, lambda p, v: replace(p, alpha=v)),
    'gamma': (lambda p: p.gamma, lambda p, v: replace(p, gamma=v)),
    'sigma': (lambda p: p.sigma, lambda p, v: replace(p, sigma=v)),
    'eta': (lambda p: p.eta, lambda p, v: replace(p, eta=v)),
}


def accessor_for(name: str) -> Tuple[Getter, Setter]:
    try:
        return PARAMETER_ACCESSORS[name]
    except KeyError:
        raise InvalidConfigurationError(
            f"Unknown parameter '{name}'. Must be one of: {PARAM_NAMES}"
        ) from None


# =============================================================================
# VECTOR FIELD
# =============================================================================

def alcoholism_rhs(t: float, y: Sequence[float], params: AlcoholismParameters) -> np.ndarray:
    """Right-hand side dy/dt of the (S, D, T, R) system.

    ``t`` is unused (the system is autonomous). Negative components are not
    guarded against. When the total population N is exactly zero the social
    influence term is 0/0 or x/0 and the result is non-finite (NaN/Inf); this is
    returned as-is, the function never raises on finite input.
    """
    S, D, T, R = np.asarray(y, dtype=float)
    N = S + D + T + R
    p = params

    with np.errstate(divide='ignore', invalid='ignore'):
        beta_eff = p.beta1 * (1.0 + p.alpha * D / N)
        infection = beta_eff * S

    dS = p.Lambda - infection - p.mu * S + p.eta * R
    dD = infection - (p.mu + p.delta1 + p.gamma) * D
    dT = p.gamma * D - (p.mu + p.delta2 + p.sigma) * T
    dR = p.sigma * T - (p.mu + p.eta) * R
    return np.array([dS, dD, dT, dR])


def make_rhs(params: AlcoholismParameters) -> Callable[[float, np.ndarray], np.ndarray]:
    """Close the vector field over one parameter snapshot for the solver."""
    def rhs(t, y):
        return alcoholism_rhs(t, y, params)
    return rhs


def total_population(y: np.ndarray) -> np.ndarray:
    """N = S + D + T + R for a single state or a (n, 4) array of states."""
    return np.sum(y, axis=-1)
