"""Plotting functions for the alcoholism population dynamics."""

import os
from typing import List, Optional

import matplotlib.pyplot as plt

import alcoholism
from solver.trajectory import Trajectory

STATE_STYLES = ['b-', 'r-', 'g-', 'k-']


def plot_population_dynamics(trajectory: Trajectory,
                             save_dir: str,
                             labels: Optional[List[str]] = None,
                             title: str = 'Alcoholism Population Dynamics Near DFE',
                             reference: Optional[Trajectory] = None,
                             filename: str = 'population_dynamics.png') -> str:
    """Plot the four compartments of one run against time.

    Args:
        trajectory: Baseline run from the adaptive solver.
        save_dir: Output directory (created if missing).
        labels: Legend labels, one per compartment.
        title: Figure title.
        reference: Optional high-precision run drawn as dotted overlay.
        filename: Output file name.

    Returns:
        Path of the saved figure.
    """
    if labels is None:
        labels = alcoholism.STATE_LABELS
    os.makedirs(save_dir, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 6))
    for i, (label, style) in enumerate(zip(labels, STATE_STYLES)):
        ax.plot(trajectory.t, trajectory.y[:, i], style, linewidth=2, label=label)
        if reference is not None:
            ax.plot(reference.t, reference.y[:, i], color='grey', linestyle=':', linewidth=1)

    ax.set_xlabel('Time (Months)')
    ax.set_ylabel('Population')
    ax.set_title(title)
    ax.legend()
    ax.grid(True)
    plt.tight_layout()

    path = os.path.join(save_dir, filename)
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path


def plot_heavy_drinker_share(trajectory: Trajectory,
                             save_dir: str,
                             filename: str = 'heavy_drinker_share.png') -> str:
    """Plot the social-influence driver D/N and the total population N.

    Args:
        trajectory: Baseline run.
        save_dir: Output directory (created if missing).
        filename: Output file name.

    Returns:
        Path of the saved figure.
    """
    os.makedirs(save_dir, exist_ok=True)
    N = alcoholism.total_population(trajectory.y)

    fig, axes = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    axes[0].plot(trajectory.t, trajectory.component(alcoholism.D_INDEX) / N, 'r-', linewidth=2)
    axes[0].set_ylabel('D / N')
    axes[0].set_title('Heavy-Drinker Fraction')
    axes[0].grid(True, alpha=0.3)

    axes[1].plot(trajectory.t, N, 'k-', linewidth=2)
    axes[1].set_ylabel('N = S + D + T + R')
    axes[1].set_xlabel('Time (Months)')
    axes[1].set_title('Total Population')
    axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    path = os.path.join(save_dir, filename)
    plt.savefig(path, dpi=150)
    plt.close(fig)
    return path
