"""
Cached system matrices of a kernel transform.

Tracks the validity of L, L^-1 and W independently so that each can be
recomputed on demand.
"""

from enum import Enum
import numpy as np
from typing import Any, Dict, Optional

from kernelwarp.system.solver import SplineWeights


class SystemState(Enum):
    """How far the linear system has been computed."""
    STALE = 'stale'
    ASSEMBLED = 'assembled'
    FACTORED = 'factored'
    SOLVED = 'solved'


class SystemCache:
    """
    Holder for K, P, L, L^-1, Y, W and the reorganized weights.

    The three validity flags mirror the three expensive steps: assembling
    L, inverting it, and solving for W. `invalidate()` resets all of them;
    the owning transform advances them lazily.
    """

    def __init__(self):
        self.K: Optional[np.ndarray] = None
        self.P: Optional[np.ndarray] = None
        self.L: Optional[np.ndarray] = None
        self.L_inverse: Optional[np.ndarray] = None
        self.Y: Optional[np.ndarray] = None
        self.W: Optional[np.ndarray] = None
        self.weights: Optional[SplineWeights] = None
        # dW / d(source landmarks), filled on the first Jacobian request
        self.W_derivative: Optional[np.ndarray] = None

        self.l_matrix_computed = False
        self.l_inverse_computed = False
        self.w_matrix_computed = False

    def invalidate(self) -> None:
        """Drop all derived matrices."""
        self.K = None
        self.P = None
        self.L = None
        self.L_inverse = None
        self.Y = None
        self.W = None
        self.weights = None
        self.W_derivative = None

        self.l_matrix_computed = False
        self.l_inverse_computed = False
        self.w_matrix_computed = False

    @property
    def state(self) -> SystemState:
        if self.w_matrix_computed:
            return SystemState.SOLVED
        if self.l_inverse_computed:
            return SystemState.FACTORED
        if self.l_matrix_computed:
            return SystemState.ASSEMBLED
        return SystemState.STALE

    def get_cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        arrays = [self.K, self.P, self.L, self.L_inverse, self.Y, self.W, self.W_derivative]
        total_bytes = sum(a.nbytes for a in arrays if a is not None)

        return {
            'state': self.state.value,
            'l_matrix_computed': self.l_matrix_computed,
            'l_inverse_computed': self.l_inverse_computed,
            'w_matrix_computed': self.w_matrix_computed,
            'total_size_mb': total_bytes / (1024 * 1024),
        }

    def __repr__(self) -> str:
        return f"SystemCache(state={self.state.value})"
