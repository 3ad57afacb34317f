"""Visualization utilities."""

from kernelwarp.visualization.plots import (
    plot_landmarks,
    plot_deformed_grid,
    plot_displacement_quiver,
)

__all__ = [
    'plot_landmarks',
    'plot_deformed_grid',
    'plot_displacement_quiver',
]
