"""CasADi symbolic integrator with variational equations for local sensitivity."""

from __future__ import annotations

import casadi as ca
import numpy as np

from alcoholism import PARAM_NAMES
from sensitivity.sensitivity_history import SensitivityHistory
from solver.dormand_prince import validate_t_span
from solver.errors import InvalidConfigurationError


class AlcoholismVariationalIntegrator:
    """Symbolic S-D-T-R integrator with forward parameter sensitivity.

    Augments the model ODE with variational equations to propagate
    S = ∂x/∂p alongside the states on a uniform grid (fixed-step RK4).

    States  x = [S, D, T, R]                                            (N_STATES = 4)
    Params  p = [Lambda, mu, delta1, delta2, beta1, alpha, gamma, sigma, eta]  (N_PARAMS = 9)
    """

    PARAM_NAMES: list[str] = PARAM_NAMES
    N_STATES: int = 4
    N_PARAMS: int = 9
    N_S_FLAT: int = 36  # N_STATES × N_PARAMS

    def __init__(self) -> None:
        self._F_rk4 = self._build_rk4_step()

    # -------------------------------------------------------------------------
    # Symbolic builder (called once at construction)
    # -------------------------------------------------------------------------

    @classmethod
    def rhs_expression(cls, x: ca.SX, p: ca.SX) -> ca.SX:
        """Model right-hand side as a CasADi expression (same algebra as alcoholism_rhs)."""
        Lambda, mu, delta1, delta2, beta1, alpha, gamma, sigma, eta = [p[i] for i in range(cls.N_PARAMS)]
        S, D, T, R = [x[i] for i in range(cls.N_STATES)]

        N = S + D + T + R
        infection = beta1 * (1 + alpha * D / N) * S

        return ca.vertcat(
            Lambda - infection - mu * S + eta * R,
            infection - (mu + delta1 + gamma) * D,
            gamma * D - (mu + delta2 + sigma) * T,
            sigma * T - (mu + eta) * R,
        )

    def _build_rk4_step(self) -> ca.Function:
        """RK4 step for the augmented system [x(4); vec(S)(36)].

        Returns
        -------
        ca.Function
            Signature: (z[40], p[9], dt) -> z_next[40]
        """
        x = ca.SX.sym('x', self.N_STATES)
        p = ca.SX.sym('p', self.N_PARAMS)
        S_flat = ca.SX.sym('s', self.N_S_FLAT)
        dt = ca.SX.sym('dt')

        z = ca.vertcat(x, S_flat)

        f = self.rhs_expression(x, p)

        # Symbolic Jacobians of f
        dfdx = ca.jacobian(f, x)    # (4, 4)
        dfdp = ca.jacobian(f, p)    # (4, 9)

        # Variational equation:  dS/dt = (∂f/∂x) S + (∂f/∂p)
        S = ca.reshape(S_flat, self.N_STATES, self.N_PARAMS)  # column-major
        dSdt = dfdx @ S + dfdp

        rhs = ca.vertcat(f, ca.vec(dSdt))

        # RK4 via symbolic substitution (p stays fixed across all stages)
        k1 = rhs
        k2 = ca.substitute(rhs, z, z + dt / 2 * k1)
        k3 = ca.substitute(rhs, z, z + dt / 2 * k2)
        k4 = ca.substitute(rhs, z, z + dt * k3)
        z_next = z + (dt / 6) * (k1 + 2 * k2 + 2 * k3 + k4)

        return ca.Function(
            'rk4',
            [z, p, dt], [z_next],
            ['z', 'p', 'dt'], ['z_next'],
        )

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    @staticmethod
    def uniform_grid(t_span: tuple[float, float], dt: float) -> np.ndarray:
        """Grid from t0 to tf with spacing close to dt, hitting tf exactly."""
        t0, tf = validate_t_span(t_span)
        if not dt > 0:
            raise InvalidConfigurationError(f"dt must be positive, got {dt}")
        n_steps = max(1, int(np.ceil((tf - t0) / dt - 1e-9)))
        return np.linspace(t0, tf, n_steps + 1)

    def simulate(
        self,
        x0: np.ndarray,
        p_val: np.ndarray,
        t: np.ndarray,
    ) -> SensitivityHistory:
        """Simulate augmented system [x; vec(S)].

        Parameters
        ----------
        x0 : np.ndarray, shape (4,)
            Initial state [S_0, D_0, T_0, R_0].
        p_val : np.ndarray, shape (9,)
            Parameter values in canonical PARAM_NAMES order.
        t : np.ndarray, shape (N+1,)
            Time grid. Explicit RK4 is only stable for steps well below 2.78 / gamma.

        Returns
        -------
        SensitivityHistory
        """
        x0 = np.asarray(x0, dtype=float)
        p_val = np.asarray(p_val, dtype=float)
        N = len(t) - 1
        states = np.empty((N + 1, self.N_STATES))
        s_flat = np.empty((N + 1, self.N_S_FLAT))

        # Initial conditions: x = x0, S = 0
        z_cur = np.concatenate([x0, np.zeros(self.N_S_FLAT)])
        states[0] = x0
        s_flat[0] = 0.0

        for k in range(N):
            dt_k = t[k + 1] - t[k]
            z_cur = self._F_rk4(z_cur, p_val, dt_k).full().flatten()
            states[k + 1] = z_cur[:self.N_STATES]
            s_flat[k + 1] = z_cur[self.N_STATES:]

        # ca.vec() uses column-major order: v[4*j + i] = S[i, j].
        # reshape(N+1, N_PARAMS, N_STATES) then transpose(0, 2, 1) gives S_states[t, i, j].
        S_states = s_flat.reshape(N + 1, self.N_PARAMS, self.N_STATES).transpose(0, 2, 1)

        return SensitivityHistory(t=np.asarray(t, dtype=float), states=states, S_states=S_states)
