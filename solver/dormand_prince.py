"""Adaptive Dormand–Prince 5(4) integrator with embedded error control."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

import numpy as np

from solver.errors import InvalidConfigurationError, NonConvergenceError
from solver.trajectory import Trajectory

RHS = Callable[[float, np.ndarray], np.ndarray]


# =============================================================================
# BUTCHER TABLEAU (Dormand & Prince, 1980)
# =============================================================================

C = np.array([0, 1 / 5, 3 / 10, 4 / 5, 8 / 9, 1])
A = np.array([
    [0, 0, 0, 0, 0],
    [1 / 5, 0, 0, 0, 0],
    [3 / 40, 9 / 40, 0, 0, 0],
    [44 / 45, -56 / 15, 32 / 9, 0, 0],
    [19372 / 6561, -25360 / 2187, 64448 / 6561, -212 / 729, 0],
    [9017 / 3168, -355 / 33, 46732 / 5247, 49 / 176, -5103 / 18656],
])
B = np.array([35 / 384, 0, 500 / 1113, 125 / 192, -2187 / 6784, 11 / 84])
# 4th-order minus 5th-order weights; last entry multiplies the FSAL stage f(t+h, y_new)
E = np.array([-71 / 57600, 0, 71 / 16695, -71 / 1920, 17253 / 339200, -22 / 525, 1 / 40])

N_STAGES = 6
ERROR_ESTIMATOR_ORDER = 4
ERROR_EXPONENT = -1 / (ERROR_ESTIMATOR_ORDER + 1)

# Step-size controller
SAFETY = 0.9
MIN_FACTOR = 0.2
MAX_FACTOR = 10.0


# =============================================================================
# HELPERS
# =============================================================================

def validate_t_span(t_span: Sequence[float]) -> tuple[float, float]:
    """Return ``(t0, tf)`` as floats, rejecting non-finite or non-increasing spans."""
    try:
        t0, tf = (float(v) for v in t_span)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(
            f"Time span must be a pair of numbers, got {t_span!r}"
        ) from e
    if not (np.isfinite(t0) and np.isfinite(tf)):
        raise InvalidConfigurationError(f"Time span must be finite, got [{t0}, {tf}]")
    if tf <= t0:
        raise InvalidConfigurationError(
            f"Time span must be strictly increasing, got [{t0}, {tf}]"
        )
    return t0, tf


def rms_norm(x: np.ndarray) -> float:
    return np.linalg.norm(x) / x.size ** 0.5


# =============================================================================
# INTEGRATOR
# =============================================================================

class DormandPrinceIntegrator:
    """Explicit Runge–Kutta 5(4) integrator with automatic step-size control.

    A step of size h is accepted when the RMS norm of the embedded error
    estimate, scaled component-wise by ``atol + rtol * max(|y|, |y_new|)``,
    is below one. The next step is ``h * clip(0.9 * err^(-1/5), 0.2, 10)``,
    with growth suppressed right after a rejection.

    The integrator knows nothing about the meaning of the state vector; any
    ``fun(t, y) -> dy/dt`` over a fixed-size real vector is accepted.

    Parameters
    ----------
    rtol : float
        Relative tolerance (> 0).
    atol : float
        Absolute tolerance (> 0).
    max_step : float
        Upper bound on the step size. Unbounded by default.
    first_step : float, optional
        Initial step size. Selected automatically when omitted.
    """

    def __init__(
        self,
        rtol: float = 1e-3,
        atol: float = 1e-6,
        max_step: float = np.inf,
        first_step: Optional[float] = None,
    ) -> None:
        if not (np.isfinite(rtol) and rtol > 0):
            raise InvalidConfigurationError(f"rtol must be positive and finite, got {rtol}")
        if not (np.isfinite(atol) and atol > 0):
            raise InvalidConfigurationError(f"atol must be positive and finite, got {atol}")
        if not max_step > 0:
            raise InvalidConfigurationError(f"max_step must be positive, got {max_step}")
        if first_step is not None and not (np.isfinite(first_step) and first_step > 0):
            raise InvalidConfigurationError(f"first_step must be positive, got {first_step}")

        self.rtol = float(rtol)
        self.atol = float(atol)
        self.max_step = float(max_step)
        self.first_step = first_step

    def __repr__(self) -> str:
        return (
            f"DormandPrinceIntegrator(rtol={self.rtol:g}, atol={self.atol:g}, "
            f"max_step={self.max_step:g})"
        )

    # -------------------------------------------------------------------------
    # Step machinery
    # -------------------------------------------------------------------------

    def _initial_step(self, fun: RHS, t0: float, y0: np.ndarray, f0: np.ndarray, t_bound: float) -> float:
        """Starting step size from the Hairer–Nørsett–Wanner heuristic."""
        interval = t_bound - t0
        scale = self.atol + np.abs(y0) * self.rtol
        d0 = rms_norm(y0 / scale)
        d1 = rms_norm(f0 / scale)
        if not (np.isfinite(d0) and np.isfinite(d1)):
            # Degenerate start: no error control is possible, march forward
            return min(1e-6, interval, self.max_step)

        if d0 < 1e-5 or d1 < 1e-5:
            h0 = 1e-6
        else:
            h0 = 0.01 * d0 / d1
        h0 = min(h0, interval, self.max_step)

        f1 = fun(t0 + h0, y0 + h0 * f0)
        d2 = rms_norm((f1 - f0) / scale) / h0
        if not np.isfinite(d2):
            return h0

        if d1 <= 1e-15 and d2 <= 1e-15:
            h1 = max(1e-6, h0 * 1e-3)
        else:
            h1 = (0.01 / max(d1, d2)) ** (1 / (ERROR_ESTIMATOR_ORDER + 1))

        return min(100 * h0, h1, interval, self.max_step)

    @staticmethod
    def _rk_step(fun: RHS, t: float, y: np.ndarray, f: np.ndarray, h: float, K: np.ndarray):
        """One Dormand–Prince step. Fills the stage buffer K (7 rows, FSAL last)."""
        K[0] = f
        for s, (a, c) in enumerate(zip(A[1:], C[1:]), start=1):
            dy = np.dot(K[:s].T, a[:s]) * h
            K[s] = fun(t + c * h, y + dy)

        y_new = y + h * np.dot(K[:-1].T, B)
        f_new = fun(t + h, y_new)
        K[-1] = f_new
        return y_new, f_new

    def _error_norm(self, K: np.ndarray, h: float, y: np.ndarray, y_new: np.ndarray) -> float:
        scale = self.atol + np.maximum(np.abs(y), np.abs(y_new)) * self.rtol
        return rms_norm(np.dot(K.T, E) * h / scale)

    # -------------------------------------------------------------------------
    # Solve
    # -------------------------------------------------------------------------

    def solve(self, fun: RHS, t_span: Sequence[float], y0: Sequence[float]) -> Trajectory:
        """Integrate ``fun`` over ``t_span`` starting from ``y0``.

        Parameters
        ----------
        fun : callable
            Right-hand side ``fun(t, y) -> dy/dt``.
        t_span : (float, float)
            Integration interval ``[t0, tf]`` with ``t0 < tf``.
        y0 : array-like, shape (n,)
            Initial state.

        Returns
        -------
        Trajectory
            Adaptive samples; the first is ``(t0, y0)``, the last time is ``tf`` exactly.

        Raises
        ------
        InvalidConfigurationError
            If the span or the initial state is malformed.
        NonConvergenceError
            If the required step size falls below the floating-point spacing at t
            while the state is still finite. A step that turns the state
            non-finite is accepted at that floor and the values flow on to tf.
        """
        t0, tf = validate_t_span(t_span)
        y = np.array(y0, dtype=float)
        if y.ndim != 1 or y.size == 0:
            raise InvalidConfigurationError(
                f"Initial state must be a non-empty 1-D vector, got shape {y.shape}"
            )

        nfev = 0

        def rhs(t: float, x: np.ndarray) -> np.ndarray:
            nonlocal nfev
            nfev += 1
            return np.asarray(fun(t, x), dtype=float)

        t = t0
        f = rhs(t, y)
        if self.first_step is not None:
            h_abs = min(float(self.first_step), tf - t0)
        else:
            h_abs = self._initial_step(rhs, t, y, f, tf)

        K = np.empty((N_STAGES + 1, y.size))
        times = [t]
        states = [y]
        n_accepted = 0
        n_rejected = 0

        while t < tf:
            min_step = 10 * np.abs(np.nextafter(t, np.inf) - t)
            if h_abs > self.max_step:
                h_abs = self.max_step
            elif h_abs < min_step:
                h_abs = min_step

            # A non-finite derivative at an accepted state cannot be error-controlled:
            # the values are carried through to tf instead.
            degenerate = not np.all(np.isfinite(f))
            step_rejected = False

            while True:
                if h_abs < min_step:
                    raise NonConvergenceError(
                        f"Required step size {h_abs:.3e} is below the resolvable "
                        f"spacing {min_step:.3e} at t={t:.10g}",
                        t=t,
                    )

                t_new = t + h_abs
                if t_new >= tf:
                    t_new = tf
                h = t_new - t
                h_abs = h

                y_new, f_new = self._rk_step(rhs, t, y, f, h, K)

                if degenerate:
                    next_h_abs = h_abs * MAX_FACTOR
                    break

                error_norm = self._error_norm(K, h, y, y_new)
                if error_norm < 1:
                    if error_norm == 0:
                        factor = MAX_FACTOR
                    else:
                        factor = min(MAX_FACTOR, SAFETY * error_norm ** ERROR_EXPONENT)
                    if step_rejected:
                        factor = min(1.0, factor)
                    next_h_abs = h_abs * factor
                    break

                if np.isfinite(error_norm):
                    h_abs *= max(MIN_FACTOR, SAFETY * error_norm ** ERROR_EXPONENT)
                else:
                    h_abs *= MIN_FACTOR
                    if h_abs < min_step:
                        # The state leaves the finite range within a resolvable step:
                        # accept it and carry the non-finite values through to tf.
                        next_h_abs = h * MAX_FACTOR
                        break
                step_rejected = True
                n_rejected += 1

            t, y, f = t_new, y_new, f_new
            h_abs = next_h_abs
            times.append(t)
            states.append(y)
            n_accepted += 1

        return Trajectory(
            t=np.array(times),
            y=np.vstack(states),
            nfev=nfev,
            n_accepted=n_accepted,
            n_rejected=n_rejected,
        )


def solve_ode(
    fun: RHS,
    t_span: Sequence[float],
    y0: Sequence[float],
    rtol: float = 1e-3,
    atol: float = 1e-6,
    max_step: float = np.inf,
) -> Trajectory:
    """Functional shortcut for ``DormandPrinceIntegrator(...).solve(...)``."""
    integrator = DormandPrinceIntegrator(rtol=rtol, atol=atol, max_step=max_step)
    return integrator.solve(fun, t_span, y0)
