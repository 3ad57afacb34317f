"""
Source/target landmark storage.

Landmark sets are replaced wholesale and owned by the store; displacements
are derived lazily.
"""

import numpy as np
from typing import Optional


class LandmarkMismatchError(ValueError):
    """Landmark counts, dimensions or parameter lengths are inconsistent."""


def as_points(points, dimension: int) -> np.ndarray:
    """
    Validate and copy a point collection into an (N, D) float array.
    
    Args:
        points: Array-like of shape (N, D); an empty sequence is allowed
        dimension: Expected spatial dimension D
        
    Returns:
        (N, D) float64 array owned by the caller
    """
    array = np.array(points, dtype=np.float64)
    if array.size == 0:
        return np.zeros((0, dimension))
    if array.ndim != 2 or array.shape[1] != dimension:
        raise LandmarkMismatchError(
            f"Expected points of shape (N, {dimension}), got {array.shape}"
        )
    return array


class LandmarkStore:
    """
    Ordered source and target landmarks with derived displacements.
    
    The order of the points defines the landmark indices 0..N-1 used by the
    linear system. Setters report whether anything actually changed so the
    owner can invalidate its cached matrices.
    """
    
    def __init__(self, dimension: int = 3):
        self.dimension = dimension
        self._source = np.zeros((0, dimension))
        self._target = np.zeros((0, dimension))
        self._displacements: Optional[np.ndarray] = None
    
    @property
    def source(self) -> np.ndarray:
        """Source landmarks p, shape (N, D). Read-only view."""
        view = self._source.view()
        view.flags.writeable = False
        return view
    
    @property
    def target(self) -> np.ndarray:
        """Target landmarks q, shape (N, D). Read-only view."""
        view = self._target.view()
        view.flags.writeable = False
        return view
    
    @property
    def num_landmarks(self) -> int:
        """Number of source landmarks, which defines the parameter count."""
        return len(self._source)
    
    def set_source(self, points) -> bool:
        """Replace the source landmarks. Returns True if they changed."""
        points = as_points(points, self.dimension)
        if _same(points, self._source):
            return False
        self._source = points
        self._displacements = None
        return True
    
    def set_target(self, points) -> bool:
        """Replace the target landmarks. Returns True if they changed."""
        points = as_points(points, self.dimension)
        if _same(points, self._target):
            return False
        self._target = points
        self._displacements = None
        return True
    
    def clear(self) -> bool:
        """Remove all landmarks. Returns True if there was anything to remove."""
        changed = len(self._source) > 0 or len(self._target) > 0
        self._source = np.zeros((0, self.dimension))
        self._target = np.zeros((0, self.dimension))
        self._displacements = None
        return changed
    
    def check_consistent(self) -> None:
        """Raise if source and target counts differ."""
        if len(self._source) != len(self._target):
            raise LandmarkMismatchError(
                f"Number of source landmarks ({len(self._source)}) does not match "
                f"number of target landmarks ({len(self._target)})"
            )
    
    @property
    def displacements(self) -> np.ndarray:
        """Displacements d_i = q_i - p_i, shape (N, D)."""
        if self._displacements is None:
            self.check_consistent()
            displacements = self._target - self._source
            displacements.flags.writeable = False
            self._displacements = displacements
        return self._displacements
    
    def __len__(self) -> int:
        return self.num_landmarks
    
    def __repr__(self) -> str:
        return (f"LandmarkStore(dimension={self.dimension}, "
                f"source={len(self._source)}, target={len(self._target)})")


def _same(a: np.ndarray, b: np.ndarray) -> bool:
    return a.shape == b.shape and np.array_equal(a, b)
