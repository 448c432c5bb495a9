"""Exception types raised by the solver and the sensitivity sweep."""

from __future__ import annotations


class InvalidConfigurationError(ValueError):
    """Raised immediately when a time span, parameter set or sweep setup is unusable."""


class NonConvergenceError(RuntimeError):
    """Raised when the adaptive step size collapses below the resolvable spacing."""

    def __init__(self, message: str, t: float | None = None) -> None:
        super().__init__(message)
        self.t = t
