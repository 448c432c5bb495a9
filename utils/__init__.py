"""Utility modules for model constants and plotting."""

from .model_constants import ModelConstants
from .plots import (
    plot_population_dynamics,
    plot_heavy_drinker_share,
)

__all__ = [
    'ModelConstants',
    'plot_population_dynamics',
    'plot_heavy_drinker_share',
]
