"""
Abstract base class for spline kernels.

Defines the influence interface used to assemble and evaluate kernel transforms.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import Optional


# Step of the central differences in the default kernel gradient.
GRADIENT_STEP = 1e-6


class SplineKernel(ABC):
    """
    Abstract base class for spline kernel families.
    
    A kernel maps the displacement between two points onto a (D, D) matrix
    describing the influence of one landmark on the other. Concrete kernels
    must return finite values for every displacement they are evaluated at;
    kernels that are singular at zero are never evaluated there by the
    assembler (diagonal blocks use the reflexive influence instead).
    """
    
    def __init__(self, dimension: int = 3):
        """
        Initialize kernel.
        
        Args:
            dimension: Spatial dimension D
        """
        if dimension < 1:
            raise ValueError(f"Invalid dimension: {dimension}")
        self.dimension = dimension
        self.identity = np.eye(dimension)
    
    @abstractmethod
    def compute_influence(self, displacement: np.ndarray) -> np.ndarray:
        """
        Compute the kernel response for one displacement.
        
        Args:
            displacement: (D,) vector between two points
            
        Returns:
            G: (D, D) influence matrix
        """
        pass
    
    def compute_influences(self, displacements: np.ndarray) -> np.ndarray:
        """
        Compute kernel responses for a batch of displacements.
        
        Args:
            displacements: (M, D) displacement vectors
            
        Returns:
            G: (M, D, D) influence matrices
        """
        displacements = np.asarray(displacements, dtype=np.float64)
        out = np.empty((len(displacements), self.dimension, self.dimension))
        for m, displacement in enumerate(displacements):
            out[m] = self.compute_influence(displacement)
        return out
    
    def compute_influence_gradients(self, displacements: np.ndarray) -> np.ndarray:
        """
        Derivatives of the kernel responses with respect to the displacement.
        
        The default uses central differences of `compute_influences`;
        kernels with a closed form override it.
        
        Args:
            displacements: (M, D) displacement vectors
            
        Returns:
            dG: (M, D, D, D) array, dG[m, a] = d G(x) / d x_a at displacements[m]
        """
        displacements = np.asarray(displacements, dtype=np.float64)
        M, D = displacements.shape
        out = np.empty((M, D, D, D))
        for a in range(D):
            step = np.zeros(D)
            step[a] = GRADIENT_STEP
            forward = self.compute_influences(displacements + step)
            backward = self.compute_influences(displacements - step)
            out[:, a] = (forward - backward) / (2.0 * GRADIENT_STEP)
        return out
    
    def compute_reflexive_influence(self, index: int, stiffness: float) -> np.ndarray:
        """
        Influence of landmark `index` on itself (diagonal block of K).
        
        The default is the stiffness-scaled identity, which turns the
        interpolating spline into an approximating one for stiffness > 0.
        """
        return stiffness * self.identity
    
    @property
    def alpha(self) -> Optional[float]:
        """Elasticity constant; None for kernels that have none."""
        return None
    
    @property
    def poisson_ratio(self) -> Optional[float]:
        return None
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dimension={self.dimension})"
