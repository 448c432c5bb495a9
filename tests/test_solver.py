"""Tests for the adaptive Dormand–Prince solver and the reference solve."""

import numpy as np
import pytest
from scipy.linalg import expm

from alcoholism import AlcoholismParameters, make_rhs
from solver import (
    DormandPrinceIntegrator,
    InvalidConfigurationError,
    NonConvergenceError,
    Trajectory,
    reference_solve,
    solve_ode,
)


def linear_closed_form(p: AlcoholismParameters, y0, t: np.ndarray) -> np.ndarray:
    """Exact solution of the alpha = 0 model, y' = M y + b."""
    M = np.array([
        [-(p.beta1 + p.mu), 0.0, 0.0, p.eta],
        [p.beta1, -(p.mu + p.delta1 + p.gamma), 0.0, 0.0],
        [0.0, p.gamma, -(p.mu + p.delta2 + p.sigma), 0.0],
        [0.0, 0.0, p.sigma, -(p.mu + p.eta)],
    ])
    b = np.array([p.Lambda, 0.0, 0.0, 0.0])
    y_star = -np.linalg.solve(M, b)
    return np.array([y_star + expm(M * tk) @ (np.asarray(y0) - y_star) for tk in t])


def assert_close_to(traj: Trajectory, expected: np.ndarray, rel: float) -> None:
    """Component-wise deviation relative to each component's peak magnitude."""
    scale = np.max(np.abs(expected), axis=0)
    scale[scale == 0] = 1.0
    assert np.max(np.abs(traj.y - expected) / scale) < rel


# ═══════════════════════════════════════════════════════════════════════
# GENERIC INTEGRATION
# ═══════════════════════════════════════════════════════════════════════

class TestGenericSolve:

    def test_exponential_decay(self, decay_rhs):
        traj = solve_ode(decay_rhs, (0.0, 5.0), [1.0, 3.0], rtol=1e-8, atol=1e-10)
        expected = np.column_stack([np.exp(-traj.t), 3.0 * np.exp(-2.0 * traj.t)])
        np.testing.assert_allclose(traj.y, expected, rtol=1e-6, atol=1e-9)

    def test_first_sample_is_initial_condition(self, decay_rhs):
        traj = solve_ode(decay_rhs, (2.0, 4.0), [1.0, 3.0])
        assert traj.t[0] == 2.0
        np.testing.assert_array_equal(traj.y[0], [1.0, 3.0])

    @pytest.mark.parametrize("t_span", [(0.0, 1.0), (0.0, 7.3), (-3.0, 0.1), (1.0, 1e3)])
    def test_times_strictly_increasing_and_end_exact(self, decay_rhs, t_span):
        traj = solve_ode(decay_rhs, t_span, [1.0, 1.0])
        assert np.all(np.diff(traj.t) > 0)
        assert traj.t[-1] == t_span[1]
        assert traj.y.shape == (len(traj.t), 2)

    def test_adaptive_steps_are_not_uniform(self, decay_rhs):
        traj = solve_ode(decay_rhs, (0.0, 10.0), [1.0, 1.0])
        steps = np.diff(traj.t)
        assert steps.max() > 2 * steps.min()

    def test_tighter_tolerance_is_more_accurate(self, decay_rhs):
        loose = solve_ode(decay_rhs, (0.0, 3.0), [1.0, 1.0], rtol=1e-3)
        tight = solve_ode(decay_rhs, (0.0, 3.0), [1.0, 1.0], rtol=1e-9, atol=1e-12)
        exact = np.array([np.exp(-3.0), np.exp(-6.0)])
        assert np.max(np.abs(tight.final_state - exact)) < np.max(np.abs(loose.final_state - exact))
        assert tight.n_accepted > loose.n_accepted

    def test_max_step_respected(self, decay_rhs):
        traj = solve_ode(decay_rhs, (0.0, 10.0), [1.0, 1.0], max_step=0.25)
        assert np.max(np.diff(traj.t)) <= 0.25 + 1e-12

    def test_first_step_option(self, decay_rhs):
        traj = DormandPrinceIntegrator(first_step=1e-3).solve(decay_rhs, (0.0, 1.0), [1.0, 1.0])
        assert traj.t[1] == pytest.approx(1e-3)

    def test_statistics(self, decay_rhs):
        traj = solve_ode(decay_rhs, (0.0, 1.0), [1.0, 1.0])
        assert traj.n_accepted == len(traj) - 1
        # 6 evaluations per attempted step, plus the start and step selection
        assert traj.nfev >= 6 * (traj.n_accepted + traj.n_rejected)

    def test_deterministic(self, decay_rhs):
        a = solve_ode(decay_rhs, (0.0, 4.0), [1.0, 2.0])
        b = solve_ode(decay_rhs, (0.0, 4.0), [1.0, 2.0])
        np.testing.assert_array_equal(a.t, b.t)
        np.testing.assert_array_equal(a.y, b.y)

    def test_to_frame(self, decay_rhs):
        frame = solve_ode(decay_rhs, (0.0, 1.0), [1.0, 1.0]).to_frame(['u', 'v'])
        assert list(frame.columns) == ['time', 'u', 'v']
        assert frame['time'].iloc[-1] == 1.0

    def test_to_frame_wrong_names(self, decay_rhs):
        with pytest.raises(ValueError):
            solve_ode(decay_rhs, (0.0, 1.0), [1.0, 1.0]).to_frame(['u'])


# ═══════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════

class TestErrors:

    @pytest.mark.parametrize("t_span", [(1.0, 1.0), (2.0, 1.0), (0.0, np.inf), (np.nan, 1.0), (0.0,), "ab"])
    def test_invalid_time_span(self, decay_rhs, t_span):
        with pytest.raises(InvalidConfigurationError):
            solve_ode(decay_rhs, t_span, [1.0, 1.0])

    @pytest.mark.parametrize("kwargs", [
        {"rtol": 0.0}, {"rtol": -1e-3}, {"atol": 0.0}, {"max_step": 0.0},
        {"max_step": float("nan")}, {"first_step": -1.0},
    ])
    def test_invalid_tolerances(self, kwargs):
        with pytest.raises(InvalidConfigurationError):
            DormandPrinceIntegrator(**kwargs)

    def test_invalid_initial_state(self, decay_rhs):
        with pytest.raises(InvalidConfigurationError):
            solve_ode(decay_rhs, (0.0, 1.0), [[1.0, 1.0]])

    def test_finite_time_blow_up_raises_non_convergence(self):
        # y' = y^2, y(0) = 1 blows up at t = 1
        with pytest.raises(NonConvergenceError) as excinfo:
            solve_ode(lambda t, y: y ** 2, (0.0, 2.0), [1.0])
        assert excinfo.value.t == pytest.approx(1.0, abs=1e-3)
        assert isinstance(excinfo.value, RuntimeError)

    def test_zero_population_flows_through_as_nan(self, params):
        traj = solve_ode(make_rhs(params), (0.0, 200.0), [0.0, 0.0, 0.0, 0.0])
        assert traj.t[-1] == 200.0
        assert np.all(np.diff(traj.t) > 0)
        assert np.all(np.isnan(traj.y[-1]))

    def test_nan_appearing_mid_run_flows_through(self):
        def rhs(t, y):
            return -y if t < 1.0 else np.full_like(y, np.nan)

        traj = solve_ode(rhs, (0.0, 3.0), [1.0])
        assert traj.t[-1] == 3.0
        assert np.all(np.diff(traj.t) > 0)
        assert np.isnan(traj.y[-1, 0])

        finite = np.isfinite(traj.y[:, 0])
        assert traj.t[finite].max() == pytest.approx(1.0, abs=1e-6)
        np.testing.assert_allclose(traj.y[finite, 0], np.exp(-traj.t[finite]), rtol=1e-2)


# ═══════════════════════════════════════════════════════════════════════
# MODEL SCENARIOS
# ═══════════════════════════════════════════════════════════════════════

class TestModelScenarios:

    def test_alpha_zero_matches_closed_form(self, y0):
        p = AlcoholismParameters(alpha=0.0)
        traj = solve_ode(make_rhs(p), (0.0, 50.0), y0, rtol=1e-8, atol=1e-6)
        assert_close_to(traj, linear_closed_form(p, y0, traj.t), rel=1e-5)

    def test_alpha_zero_default_tolerance(self, y0):
        p = AlcoholismParameters(alpha=0.0)
        traj = solve_ode(make_rhs(p), (0.0, 50.0), y0)
        assert_close_to(traj, linear_closed_form(p, y0, traj.t), rel=1e-2)

    def test_reference_solve_matches_closed_form(self, y0):
        p = AlcoholismParameters(alpha=0.0)
        ref = reference_solve(make_rhs(p), (0.0, 20.0), y0)
        assert_close_to(ref, linear_closed_form(p, y0, ref.t), rel=1e-7)

    def test_baseline_scenario_against_reference(self, params, y0):
        traj = solve_ode(make_rhs(params), (0.0, 200.0), y0)
        ref = reference_solve(make_rhs(params), (0.0, 200.0), y0, t_eval=traj.t)
        assert traj.t[-1] == 200.0
        assert_close_to(traj, ref.y, rel=1e-2)

    def test_baseline_scenario_shape(self, params, y0):
        traj = solve_ode(make_rhs(params), (0.0, 200.0), y0)
        D = traj.y[:, 1]
        T = traj.y[:, 2]
        R = traj.y[:, 3]

        # D jumps from a single heavy drinker by orders of magnitude, early on
        k_peak = np.argmax(D)
        assert D[k_peak] > 1e4 * D[0]
        assert traj.t[k_peak] < 20.0
        # ...then gamma drives it down to a much smaller quasi-steady level
        assert D[-1] < 0.5 * D[k_peak]
        assert abs(D[-1] - D[-2]) < 1e-2 * D[-1]

        # T and R start empty and fill up
        assert T[0] == 0.0 and R[0] == 0.0
        assert T[-1] > 0 and R[-1] > 0

    def test_reference_t_eval(self, decay_rhs):
        t_eval = np.linspace(0.0, 1.0, 11)
        ref = reference_solve(decay_rhs, (0.0, 1.0), [1.0, 1.0], t_eval=t_eval)
        np.testing.assert_array_equal(ref.t, t_eval)
        np.testing.assert_allclose(ref.y[:, 0], np.exp(-t_eval), rtol=1e-9)

    def test_reference_invalid_span(self, decay_rhs):
        with pytest.raises(InvalidConfigurationError):
            reference_solve(decay_rhs, (1.0, 0.0), [1.0, 1.0])
