"""Configuration of the one-factor-at-a-time sensitivity sweep."""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from alcoholism import PARAM_NAMES
from solver.dormand_prince import DormandPrinceIntegrator, validate_t_span
from solver.errors import InvalidConfigurationError
from utils.model_constants import ModelConstants


@dataclass
class SweepConfig:
    """Configuration for the parameter-sensitivity sweep.

    Attributes:
        parameter_names: Parameters varied one at a time, in report order.
        variations: Relative offsets applied as baseline * (1 + v), in report order.
            Offsets below -1 would make a rate negative and are rejected.
        t_span: Integration interval (months) shared by every run.
        rtol: Relative tolerance of the adaptive solver.
        atol: Absolute tolerance of the adaptive solver.
        max_step: Upper bound on the solver step (months).
        n_workers: Number of worker processes. 1 runs the sweep in-process.
    """

    parameter_names: List[str] = field(default_factory=lambda: list(ModelConstants.SWEEP_PARAMETERS))
    variations: List[float] = field(default_factory=lambda: list(ModelConstants.SWEEP_VARIATIONS))
    t_span: Tuple[float, float] = field(default_factory=ModelConstants.t_span)

    # Solver settings
    rtol: float = ModelConstants.RTOL
    atol: float = ModelConstants.ATOL
    max_step: float = np.inf

    n_workers: int = 1

    def __post_init__(self):
        """Validate and normalize the sweep configuration."""
        self.parameter_names = list(self.parameter_names)
        self.variations = [float(v) for v in self.variations]
        self.t_span = validate_t_span(self.t_span)

        if not self.parameter_names:
            raise InvalidConfigurationError("At least one parameter must be swept")
        unknown = [name for name in self.parameter_names if name not in PARAM_NAMES]
        if unknown:
            raise InvalidConfigurationError(
                f"Unknown parameter(s) {unknown}. Must be among: {PARAM_NAMES}"
            )
        if len(set(self.parameter_names)) != len(self.parameter_names):
            raise InvalidConfigurationError(
                f"Duplicate parameter names in sweep: {self.parameter_names}"
            )

        if not self.variations:
            raise InvalidConfigurationError("Variation list must not be empty")
        bad = [v for v in self.variations if not np.isfinite(v) or v < -1.0]
        if bad:
            raise InvalidConfigurationError(
                f"Variations must be finite and >= -1 (rates stay non-negative), got {bad}"
            )

        if self.n_workers < 1:
            raise InvalidConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")

        # Fails fast on bad tolerances
        self.make_integrator()

    def make_integrator(self) -> DormandPrinceIntegrator:
        return DormandPrinceIntegrator(rtol=self.rtol, atol=self.atol, max_step=self.max_step)

    @property
    def n_runs(self) -> int:
        return len(self.parameter_names) * len(self.variations)
