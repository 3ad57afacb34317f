"""Fit quality metrics for kernel transforms."""

from kernelwarp.evaluation.metrics import (
    landmark_residuals,
    bending_energy,
    jacobian_finite_difference,
)

__all__ = [
    'landmark_residuals',
    'bending_energy',
    'jacobian_finite_difference',
]
