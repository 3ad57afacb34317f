"""
Static visualization utilities using matplotlib.

2D plots of landmarks and of the deformation a kernel transform induces.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Tuple, Optional

from kernelwarp.core.transform import KernelTransform
from kernelwarp.deformation import compute_displacement_field, make_grid


def _require_2d(transform: KernelTransform) -> None:
    if transform.dimension != 2:
        raise ValueError(f"Only 2D transforms can be plotted, got dimension {transform.dimension}")


def _landmark_extent(transform: KernelTransform, margin: float = 0.25) -> Tuple[np.ndarray, np.ndarray]:
    points = np.concatenate([transform.source_landmarks, transform.target_landmarks])
    if len(points) == 0:
        return np.zeros(2), np.ones(2)
    lower, upper = points.min(axis=0), points.max(axis=0)
    pad = margin * np.maximum(upper - lower, 1.0)
    return lower - pad, upper + pad


def plot_landmarks(transform: KernelTransform,
                   figsize: Tuple[int, int] = (8, 8),
                   save_path: Optional[str] = None,
                   ):
    """
    Plot source landmarks, target landmarks and where the transform maps
    the source landmarks.
    
    Args:
        transform: 2D transform with landmarks
        figsize: Figure size
        save_path: Path to save figure
    """
    _require_2d(transform)
    
    source = transform.source_landmarks
    target = transform.target_landmarks
    mapped = transform.transform_points(source)
    
    fig, ax = plt.subplots(figsize=figsize)
    
    ax.scatter(source[:, 0], source[:, 1], c='tab:blue', marker='o', label='Source')
    ax.scatter(target[:, 0], target[:, 1], c='tab:red', marker='x', label='Target')
    ax.scatter(mapped[:, 0], mapped[:, 1], facecolors='none', edgecolors='tab:green',
               marker='s', label='Mapped source')
    
    for p, q in zip(source, target):
        ax.annotate('', xy=q, xytext=p, arrowprops=dict(arrowstyle='->', color='gray', alpha=0.6))
    
    ax.set_title(f'Landmarks (stiffness={transform.stiffness:g})')
    ax.set_aspect('equal')
    ax.legend()
    
    plt.tight_layout()
    
    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    
    return fig


def plot_deformed_grid(transform: KernelTransform,
                       num_lines: int = 20,
                       samples_per_line: int = 100,
                       figsize: Tuple[int, int] = (8, 8),
                       save_path: Optional[str] = None,
                       ):
    """
    Plot the image of a regular grid under the transform.
    
    Args:
        transform: 2D transform
        num_lines: Grid lines per axis
        samples_per_line: Points evaluated along each line
        figsize: Figure size
        save_path: Path to save figure
    """
    _require_2d(transform)
    
    lower, upper = _landmark_extent(transform)
    ticks = [np.linspace(lower[a], upper[a], num_lines) for a in range(2)]
    dense = [np.linspace(lower[a], upper[a], samples_per_line) for a in range(2)]
    
    fig, ax = plt.subplots(figsize=figsize)
    
    for x in ticks[0]:
        line = np.stack([np.full(samples_per_line, x), dense[1]], axis=1)
        warped = transform.transform_points(line)
        ax.plot(warped[:, 0], warped[:, 1], color='tab:blue', linewidth=0.8)
    for y in ticks[1]:
        line = np.stack([dense[0], np.full(samples_per_line, y)], axis=1)
        warped = transform.transform_points(line)
        ax.plot(warped[:, 0], warped[:, 1], color='tab:blue', linewidth=0.8)
    
    target = transform.target_landmarks
    if len(target) > 0:
        ax.scatter(target[:, 0], target[:, 1], c='tab:red', marker='x', zorder=3)
    
    ax.set_title('Deformed Grid')
    ax.set_aspect('equal')
    
    plt.tight_layout()
    
    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    
    return fig


def plot_displacement_quiver(transform: KernelTransform,
                             grid_size: int = 20,
                             figsize: Tuple[int, int] = (10, 10),
                             save_path: Optional[str] = None,
                             ):
    """
    Plot the displacement T(x) - x as a quiver plot over the landmark extent.
    
    Args:
        transform: 2D transform
        grid_size: Arrows per axis
        figsize: Figure size
        save_path: Save path
    """
    _require_2d(transform)
    
    lower, upper = _landmark_extent(transform)
    spacing = (upper - lower) / max(grid_size - 1, 1)
    shape = (grid_size, grid_size)
    
    field = compute_displacement_field(transform, shape, spacing=spacing, origin=lower)
    grid = make_grid(shape, spacing, lower).reshape(*shape, 2)
    
    fig, ax = plt.subplots(figsize=figsize)
    
    magnitude = np.linalg.norm(field, axis=-1)
    quiver = ax.quiver(grid[..., 0], grid[..., 1], field[..., 0], field[..., 1],
                       magnitude, cmap='hot', angles='xy', scale_units='xy', scale=1.0)
    plt.colorbar(quiver, ax=ax, label='Displacement magnitude')
    
    ax.set_title('Displacement Field')
    ax.set_aspect('equal')
    
    plt.tight_layout()
    
    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
    
    return fig
