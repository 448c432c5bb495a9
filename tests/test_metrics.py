"""Tests for sensitivity.metrics."""

import numpy as np
import pandas as pd
import pytest

from sensitivity.metrics import (
    compute_l2_norms,
    compute_metric_elasticities,
    compute_normalized_sensitivity,
    compute_sweep_elasticities,
    extract_metrics,
)
from sensitivity.sensitivity_history import SensitivityHistory
from sensitivity.sweep import SensitivityResult, SweepPoint
from solver.trajectory import Trajectory

PARAMS = ['a', 'b', 'c']


def make_result(name, points):
    return SensitivityResult(parameter=name, baseline_value=1.0, points=[
        SweepPoint(variation=v, value=1.0 + v, d_max=d, r_end=r, error=err)
        for v, d, r, err in points
    ])


@pytest.fixture
def history() -> SensitivityHistory:
    """Synthetic 3-sample history with 4 states and 3 parameters."""
    t = np.array([0.0, 1.0, 2.0])
    states = np.array([
        [10.0, 1.0, 0.0, 0.0],
        [8.0, 4.0, 1.0, 0.5],
        [6.0, 2.0, 2.0, 2.0],
    ])
    S_states = np.zeros((3, 4, 3))
    S_states[:, :, 0] = 1.0
    S_states[1, 1, :] = [2.0, -4.0, 0.0]   # D at its peak
    S_states[2, 3, :] = [1.0, 3.0, -2.0]   # R at the final time
    return SensitivityHistory(t=t, states=states, S_states=S_states)


# ═══════════════════════════════════════════════════════════════════════
# RUN METRICS
# ═══════════════════════════════════════════════════════════════════════

class TestExtractMetrics:

    def test_peak_and_final(self):
        traj = Trajectory(
            t=np.array([0.0, 1.0, 2.0]),
            y=np.array([[1.0, 5.0, 0.0, 0.0], [1.0, 9.0, 0.0, 3.0], [1.0, 7.0, 0.0, 4.0]]),
        )
        assert extract_metrics(traj) == (9.0, 4.0)

    def test_non_finite_surfaces_as_nan(self):
        traj = Trajectory(
            t=np.array([0.0, 1.0]),
            y=np.array([[1.0, 5.0, 0.0, 0.0], [np.nan, np.nan, np.nan, np.nan]]),
        )
        d_max, r_end = extract_metrics(traj)
        assert np.isnan(d_max) and np.isnan(r_end)


# ═══════════════════════════════════════════════════════════════════════
# FORWARD-SENSITIVITY METRICS
# ═══════════════════════════════════════════════════════════════════════

class TestForwardSensitivityMetrics:

    def test_normalized_sensitivity(self, history):
        p_val = np.array([2.0, 1.0, 0.5])
        norm = compute_normalized_sensitivity(history, p_val)
        assert norm.shape == (3, 4, 3)
        # S: scale 10
        assert norm[0, 0, 0] == pytest.approx(2.0 / 10.0)
        # D at its peak: scale 4
        np.testing.assert_allclose(norm[1, 1, :], [2.0 * 2.0 / 4.0, -4.0 / 4.0, 0.0])

    def test_normalized_sensitivity_zero_state_is_nan(self, history):
        history.states[:, 2] = 0.0
        norm = compute_normalized_sensitivity(history, np.ones(3))
        assert np.all(np.isnan(norm[:, 2, :]))
        assert not np.any(np.isnan(norm[:, 0, :]))

    def test_l2_norms_constant_sensitivity(self, history):
        l2 = compute_l2_norms(history)
        assert l2.shape == (4, 3)
        # ∂S/∂a = 1 over [0, 2]
        assert l2[0, 0] == pytest.approx(np.sqrt(2.0))
        assert l2[0, 1] == 0.0

    def test_metric_elasticities(self, history):
        p_val = np.array([2.0, 1.0, 0.5])
        frame = compute_metric_elasticities(history, p_val, PARAMS)
        assert list(frame.index) == PARAMS
        assert list(frame.columns) == ['D_max', 'R_end']
        np.testing.assert_allclose(frame['D_max'], [2.0 * 2.0 / 4.0, -4.0 / 4.0, 0.0])
        np.testing.assert_allclose(frame['R_end'], [2.0 * 1.0 / 2.0, 3.0 / 2.0, -1.0 / 2.0])

    def test_metric_elasticities_zero_metric(self, history):
        history.states[:, 3] = 0.0
        frame = compute_metric_elasticities(history, np.ones(3), PARAMS)
        assert frame['R_end'].isna().all()


# ═══════════════════════════════════════════════════════════════════════
# SWEEP METRICS
# ═══════════════════════════════════════════════════════════════════════

class TestSweepElasticities:

    def test_central_difference(self):
        results = {'k': make_result('k', [
            (-0.2, 80.0, 5.0, None),
            (-0.1, 90.0, 10.0, None),
            (0.0, 100.0, 10.0, None),
            (0.1, 110.0, 10.0, None),
        ])}
        frame = compute_sweep_elasticities(results)
        assert isinstance(frame, pd.DataFrame)
        assert frame.loc['k', 'D_max'] == pytest.approx(1.0)
        assert frame.loc['k', 'R_end'] == pytest.approx(0.0)

    def test_skips_failed_neighbour(self):
        results = {'k': make_result('k', [
            (-0.2, 80.0, 8.0, None),
            (-0.1, np.nan, np.nan, "failed"),
            (0.0, 100.0, 10.0, None),
        ])}
        frame = compute_sweep_elasticities(results)
        # One-sided between -0.2 and 0
        assert frame.loc['k', 'D_max'] == pytest.approx(1.0)
        assert frame.loc['k', 'R_end'] == pytest.approx(1.0)

    def test_missing_zero_gives_nan(self):
        results = {'k': make_result('k', [
            (-0.1, 90.0, 9.0, None),
            (0.1, 110.0, 11.0, None),
        ])}
        frame = compute_sweep_elasticities(results)
        assert frame.loc['k'].isna().all()
