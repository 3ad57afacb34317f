"""
Flat parameter vector conversion.

Landmarks are flattened landmark-major, axis-minor: index i*D + a holds
axis a of landmark i.
"""

import numpy as np

from kernelwarp.landmarks.store import LandmarkMismatchError, as_points


def points_to_parameters(points: np.ndarray) -> np.ndarray:
    """
    Flatten (N, D) points into an (N*D,) parameter vector.
    
    Args:
        points: (N, D) landmark coordinates
        
    Returns:
        parameters: (N*D,) flat copy
    """
    return np.array(points, dtype=np.float64).reshape(-1)


def parameters_to_points(parameters: np.ndarray, dimension: int) -> np.ndarray:
    """
    Reinterpret a flat parameter vector as (N, D) points.
    
    Args:
        parameters: (N*D,) flat vector
        dimension: Spatial dimension D
        
    Returns:
        points: (N, D) landmark coordinates (copy)
        
    Raises:
        LandmarkMismatchError: If the length is not a multiple of D
    """
    parameters = np.asarray(parameters, dtype=np.float64)
    if parameters.ndim != 1:
        raise LandmarkMismatchError(
            f"Parameter vector must be 1-D, got shape {parameters.shape}"
        )
    if parameters.size % dimension != 0:
        raise LandmarkMismatchError(
            f"Parameter vector length {parameters.size} is not a multiple of dimension {dimension}"
        )
    return as_points(parameters.reshape(-1, dimension), dimension)
