"""Runner script for the alcoholism dynamics simulation and sensitivity analysis.

Usage:
    python -m sensitivity.run_sensitivity
"""

import numpy as np
import pandas as pd

from alcoholism import PARAM_NAMES, STATE_NAMES, AlcoholismParameters, make_rhs
from sensitivity.config import SweepConfig
from sensitivity.metrics import (
    compute_l2_norms,
    compute_metric_elasticities,
    compute_normalized_sensitivity,
    compute_sweep_elasticities,
    extract_metrics,
)
from sensitivity.plots import (
    RESULTS_DIR,
    plot_l2_norms,
    plot_normalized_sensitivity,
    plot_sweep_results,
)
from sensitivity.sweep import run_sweep, sensitivity_table
from sensitivity.variational_integrator import AlcoholismVariationalIntegrator
from solver.reference import reference_solve
from utils.model_constants import ModelConstants
from utils.plots import plot_heavy_drinker_share, plot_population_dynamics

# =============================================================================
# CONFIGURATION
# =============================================================================

SAVE_PLOTS = True
RUN_VARIATIONAL = True
N_WORKERS = 1


# =============================================================================
# HELPERS
# =============================================================================

def print_l2_ranking(l2: np.ndarray, param_names: list[str], output_names: list[str]) -> None:
    """Print L2 norm summary sorted by aggregate impact."""
    l2_agg = np.sqrt(np.sum(l2 ** 2, axis=0))
    ranking = np.argsort(l2_agg)[::-1]

    print("\n=== L2 SENSITIVITY RANKING (aggregate, all compartments) ===")
    print(f"  {'Rank':>4}  {'Parameter':>10}  {'Aggregate L2':>14}")
    print("  " + "-" * 34)
    for rank, idx in enumerate(ranking, start=1):
        print(f"  {rank:>4}  {param_names[idx]:>10}  {l2_agg[idx]:>14.4e}")

    print("\n=== L2 NORMS PER (COMPARTMENT, PARAM) ===")
    header = f"  {'State':>6} | " + " | ".join(f"{p:>10}" for p in param_names)
    print(header)
    print("  " + "-" * len(header))
    for i, out in enumerate(output_names):
        row = f"  {out:>6} | " + " | ".join(f"{l2[i, j]:>10.3e}" for j in range(len(param_names)))
        print(row)


def max_relative_deviation(values: np.ndarray, reference: np.ndarray) -> float:
    scale = np.maximum(np.abs(reference), 1.0)
    return float(np.max(np.abs(values - reference) / scale))


# =============================================================================
# MAIN
# =============================================================================

def main() -> None:
    params = AlcoholismParameters()
    y0 = ModelConstants.baseline_initial_conditions()
    config = SweepConfig(n_workers=N_WORKERS)
    baseline_values = {name: params.get(name) for name in PARAM_NAMES}

    print("=" * 60)
    print("ALCOHOLISM DYNAMICS - PARAMETER SENSITIVITY ANALYSIS")
    print("=" * 60)
    print(f"  Parameters   : {baseline_values}")
    print(f"  Initial state: {dict(zip(STATE_NAMES, y0))}")
    print(f"  Time span    : {config.t_span} months")
    print(f"  Solver       : {config.make_integrator()}")
    print(f"  Sweep        : {config.parameter_names} x {config.variations}")

    # -------------------------------------------------------------------------
    # Baseline run (a failure here is fatal)
    # -------------------------------------------------------------------------
    print("\nSolving baseline...")
    integrator = config.make_integrator()
    baseline = integrator.solve(make_rhs(params), config.t_span, y0)
    d_max, r_end = extract_metrics(baseline)
    print(f"  ✓ {len(baseline)} samples, {baseline.n_accepted} accepted / "
          f"{baseline.n_rejected} rejected steps, {baseline.nfev} evaluations")
    print(f"  Dmax = {d_max:.6e}   Rend = {r_end:.6e}")

    print("Solving high-precision reference (DOP853)...")
    reference = reference_solve(make_rhs(params), config.t_span, y0, t_eval=baseline.t)
    deviation = max_relative_deviation(baseline.y, reference.y)
    print(f"  ✓ max relative deviation from reference: {deviation:.3e}")

    # -------------------------------------------------------------------------
    # One-factor-at-a-time sweep
    # -------------------------------------------------------------------------
    print(f"\nRunning sweep ({config.n_runs} runs, {config.n_workers} worker(s))...")
    results = run_sweep(params, y0, config, verbose=True)
    n_failed = sum(len(r.failures) for r in results.values())
    print(f"  ✓ {config.n_runs - n_failed}/{config.n_runs} runs converged")

    with pd.option_context('display.width', 120, 'display.float_format', '{:.6e}'.format):
        print("\n=== SWEEP RESULTS ===")
        print(sensitivity_table(results).to_string(index=False))
        print("\n=== SWEEP ELASTICITIES (finite difference) ===")
        print(compute_sweep_elasticities(results).to_string())

    # -------------------------------------------------------------------------
    # Local derivative-based sensitivity
    # -------------------------------------------------------------------------
    history = None
    norm_sens = None
    l2 = None
    if RUN_VARIATIONAL:
        print("\nBuilding CasADi RK4 integrator (variational equations)...")
        var_integrator = AlcoholismVariationalIntegrator()
        t_grid = var_integrator.uniform_grid(config.t_span, ModelConstants.VARIATIONAL_DT)
        print(f"  N={len(t_grid) - 1} steps, dt={ModelConstants.VARIATIONAL_DT} months")

        p_val = params.as_array()
        history = var_integrator.simulate(np.array(y0), p_val, t_grid)
        print(f"  Done. states: {history.states.shape}, S_states: {history.S_states.shape}")

        norm_sens = compute_normalized_sensitivity(history, p_val)
        l2 = compute_l2_norms(history)
        print_l2_ranking(l2, PARAM_NAMES, STATE_NAMES)

        with pd.option_context('display.float_format', '{:.4f}'.format):
            print("\n=== LOCAL ELASTICITIES (p / M) · ∂M/∂p ===")
            print(compute_metric_elasticities(history, p_val, PARAM_NAMES).to_string())

    # -------------------------------------------------------------------------
    # Plots
    # -------------------------------------------------------------------------
    if SAVE_PLOTS:
        print(f"\nSaving plots to {RESULTS_DIR}/")
        plot_population_dynamics(baseline, RESULTS_DIR, reference=reference)
        print("  ✓ population_dynamics.png")
        plot_heavy_drinker_share(baseline, RESULTS_DIR)
        print("  ✓ heavy_drinker_share.png")
        plot_sweep_results(results, save_dir=RESULTS_DIR)
        print("  ✓ sweep_sensitivity.png")
        if history is not None:
            plot_normalized_sensitivity(history, norm_sens, PARAM_NAMES, save_dir=RESULTS_DIR)
            print("  ✓ normalized_sensitivity.png")
            plot_l2_norms(l2, PARAM_NAMES, save_dir=RESULTS_DIR)
            print("  ✓ l2_sensitivity.png")

    print("\nDone.")


if __name__ == "__main__":
    main()
