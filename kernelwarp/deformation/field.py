"""
Dense displacement fields from a fitted kernel transform.

Evaluates the transform on a regular grid in physical space.
"""

import numpy as np
from tqdm import tqdm
from typing import Optional, Sequence

from kernelwarp.core.transform import KernelTransform


def make_grid(shape: Sequence[int],
              spacing: Optional[Sequence[float]] = None,
              origin: Optional[Sequence[float]] = None,
              ) -> np.ndarray:
    """
    Physical coordinates of a regular grid.
    
    Args:
        shape: Grid size per axis
        spacing: Physical spacing per axis (default 1)
        origin: Physical position of index (0, ..., 0) (default 0)
        
    Returns:
        points: (prod(shape), D) coordinates, first axis varying slowest
    """
    D = len(shape)
    spacing = np.ones(D) if spacing is None else np.asarray(spacing, dtype=np.float64)
    origin = np.zeros(D) if origin is None else np.asarray(origin, dtype=np.float64)
    
    if spacing.shape != (D,) or origin.shape != (D,):
        raise ValueError(f"spacing and origin must have {D} entries")
    
    axes = [np.arange(n) for n in shape]
    index = np.stack([g.ravel() for g in np.meshgrid(*axes, indexing='ij')], axis=1)
    
    return origin + index * spacing


def compute_displacement_field(transform: KernelTransform,
                               shape: Sequence[int],
                               spacing: Optional[Sequence[float]] = None,
                               origin: Optional[Sequence[float]] = None,
                               chunk_size: int = 4096,
                               show_progress: bool = False,
                               ) -> np.ndarray:
    """
    Evaluate T(x) - x on a regular grid.
    
    The transform is fitted once up front; chunks then only read it.
    
    Args:
        transform: Transform to sample
        shape: Grid size per axis, len(shape) == transform.dimension
        spacing: Physical spacing per axis
        origin: Physical origin
        chunk_size: Number of grid points evaluated at once
        show_progress: Show a tqdm progress bar
        
    Returns:
        field: (*shape, D) displacement vectors in physical units
    """
    if len(shape) != transform.dimension:
        raise ValueError(
            f"Grid has {len(shape)} axes, transform has dimension {transform.dimension}"
        )
    if chunk_size < 1:
        raise ValueError(f"Invalid chunk size: {chunk_size}")
    
    transform.compute_w_matrix()
    
    points = make_grid(shape, spacing, origin)
    field = np.empty_like(points)
    
    starts = range(0, len(points), chunk_size)
    for start in tqdm(starts, desc="Sampling transform", disable=not show_progress):
        chunk = points[start:start + chunk_size]
        field[start:start + chunk_size] = transform.transform_points(chunk) - chunk
    
    return field.reshape(*shape, transform.dimension)
