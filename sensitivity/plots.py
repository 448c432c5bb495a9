"""Plotting functions for the alcoholism sensitivity analysis."""

from __future__ import annotations

import os
from typing import Dict

import matplotlib.pyplot as plt
import numpy as np

from sensitivity.sensitivity_history import SensitivityHistory
from sensitivity.sweep import SensitivityResult

RESULTS_DIR = "results/sensitivity"
OUTPUT_NAMES = ['S', 'D', 'T', 'R']
OUTPUT_COLORS = ['steelblue', 'firebrick', 'seagreen', 'dimgray']


def plot_sweep_results(
    results: Dict[str, SensitivityResult],
    save_dir: str = RESULTS_DIR,
) -> str:
    """Peak heavy drinkers and final recovered count against parameter variation.

    Two stacked panels (Dmax, Rend), one line per swept parameter, x-axis in
    percent. Failed runs show up as gaps.

    Parameters
    ----------
    results : dict[str, SensitivityResult]
        From run_sweep().
    save_dir : str
        Directory to save the figure.

    Returns
    -------
    str
        Path of the saved figure.
    """
    os.makedirs(save_dir, exist_ok=True)
    fig, axes = plt.subplots(2, 1, figsize=(10, 9))

    for name, result in results.items():
        variations_percent = result.variations * 100
        axes[0].plot(variations_percent, result.d_max, '-o', linewidth=2, label=name)
        axes[1].plot(variations_percent, result.r_end, '-o', linewidth=2, label=name)

    axes[0].set_title('Sensitivity of Peak Heavy Drinkers to Parameter Variations')
    axes[0].set_ylabel('Peak Heavy Drinkers')
    axes[1].set_title('Sensitivity of Final Recovered to Parameter Variations')
    axes[1].set_ylabel('Final Recovered Population')
    for ax in axes:
        ax.set_xlabel('Parameter Variation (%)')
        ax.legend(loc='best')
        ax.grid(True)

    plt.tight_layout()
    path = os.path.join(save_dir, "sweep_sensitivity.png")
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_normalized_sensitivity(
    history: SensitivityHistory,
    norm_sens: np.ndarray,
    param_names: list[str],
    output_names: list[str] = OUTPUT_NAMES,
    save_dir: str = RESULTS_DIR,
) -> str:
    """Plot dimensionless normalized sensitivity for all compartments over time.

    One subplot per compartment (4 rows), one line per parameter (9 lines).

    Parameters
    ----------
    history : SensitivityHistory
    norm_sens : np.ndarray, shape (N+1, 4, 9)
        From compute_normalized_sensitivity().
    param_names : list[str]
        Parameter names in canonical order (length 9).
    output_names : list[str]
        Compartment names for subplot labels.
    save_dir : str
        Directory to save the figure.
    """
    os.makedirs(save_dir, exist_ok=True)
    n_outputs = len(output_names)
    n_params = len(param_names)
    t = history.t

    colors = plt.cm.tab10(np.linspace(0, 0.9, n_params))

    fig, axes = plt.subplots(n_outputs, 1, figsize=(12, 3 * n_outputs), sharex=True)

    for i, (ax, out_name) in enumerate(zip(axes, output_names)):
        for j in range(n_params):
            vals = norm_sens[:, i, j]
            if not np.all(np.isnan(vals)):
                ax.plot(t, vals, color=colors[j], linewidth=1.2, label=param_names[j])
        ax.axhline(0, color='k', alpha=0.2, linewidth=0.8)
        ax.set_ylabel(f'(p/scale)·∂{out_name}/∂p', fontsize=9)
        ax.grid(True, alpha=0.3)
        if i == 0:
            ax.legend(fontsize=7, ncols=3, loc='upper right')

    axes[-1].set_xlabel("Time (Months)")
    fig.suptitle("Normalized Sensitivity  (p / max|x|) · ∂x/∂p", fontsize=13)
    plt.tight_layout()
    path = os.path.join(save_dir, "normalized_sensitivity.png")
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_l2_norms(
    l2: np.ndarray,
    param_names: list[str],
    output_names: list[str] = OUTPUT_NAMES,
    save_dir: str = RESULTS_DIR,
) -> str:
    """Bar chart of L2-integrated sensitivity norms.

    Left panel:  grouped bars, x-axis = parameters, one bar per compartment (log scale).
    Right panel: aggregate per parameter = sqrt(Σ_i L2[i,j]²).

    Parameters
    ----------
    l2 : np.ndarray, shape (4, 9)
        From compute_l2_norms().
    param_names : list[str]
    output_names : list[str]
    save_dir : str
    """
    os.makedirs(save_dir, exist_ok=True)
    n_outputs = len(output_names)
    n_params = len(param_names)

    l2_agg = np.sqrt(np.sum(l2 ** 2, axis=0))

    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    # --- Left: per (compartment, param) breakdown ---
    ax = axes[0]
    bar_w = 0.18
    x_centers = np.arange(n_params, dtype=float)
    offsets = np.linspace(-(n_outputs - 1) / 2, (n_outputs - 1) / 2, n_outputs) * bar_w

    for i, (out_name, color, offset) in enumerate(zip(output_names, OUTPUT_COLORS, offsets)):
        ax.bar(x_centers + offset, l2[i], width=bar_w, color=color, label=out_name, alpha=0.85)

    # Rates span several orders of magnitude (Lambda vs. gamma)
    ax.set_yscale('log')
    ax.set_xticks(x_centers)
    ax.set_xticklabels(param_names, rotation=30, ha='right', fontsize=9)
    ax.set_ylabel(r'$\sqrt{\int_0^T (\partial x_i / \partial p_j)^2\, dt}$')
    ax.set_title("L2 Sensitivity by Compartment")
    ax.legend(fontsize=8)
    ax.grid(True, alpha=0.3, axis='y')

    # --- Right: aggregate per parameter ---
    ax = axes[1]
    param_colors = plt.cm.tab10(np.linspace(0, 0.9, n_params))
    ax.bar(x_centers, l2_agg, color=param_colors, width=0.6)
    ax.set_yscale('log')
    ax.set_xticks(x_centers)
    ax.set_xticklabels(param_names, rotation=30, ha='right', fontsize=9)
    ax.set_ylabel(r'$\sqrt{\sum_i L2[i,j]^2}$')
    ax.set_title("Aggregate L2 Sensitivity (all compartments)")
    ax.grid(True, alpha=0.3, axis='y')

    fig.suptitle("L2-Integrated Parameter Sensitivity", fontsize=13)
    plt.tight_layout()
    path = os.path.join(save_dir, "l2_sensitivity.png")
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path
