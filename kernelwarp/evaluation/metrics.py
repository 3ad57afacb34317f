"""
Fit quality metrics for kernel transforms.

Landmark residuals, bending energy and a finite-difference Jacobian check.
"""

import numpy as np

from kernelwarp.core.transform import KernelTransform


def landmark_residuals(transform: KernelTransform) -> dict:
    """
    Distance between mapped source landmarks and their targets.
    
    Zero (up to solver precision) for an interpolating spline; grows with
    the stiffness.
    
    Args:
        transform: Transform with source and target landmarks
        
    Returns:
        Dictionary with residual statistics
    """
    N = transform.num_landmarks
    
    if N == 0:
        return {'mean': np.nan, 'std': np.nan, 'max': np.nan, 'median': np.nan, 'num_landmarks': 0}
    
    mapped = transform.transform_points(transform.source_landmarks)
    errors = np.linalg.norm(mapped - transform.target_landmarks, axis=1)
    
    return {
        'mean': float(errors.mean()),
        'std': float(errors.std()),
        'max': float(errors.max()),
        'median': float(np.median(errors)),
        'num_landmarks': N,
    }


def bending_energy(transform: KernelTransform) -> float:
    """
    Bending energy sum_ij c_i^T G(p_i - p_j) c_j of the deformable part.
    
    The reflexive (stiffness) blocks are left out, so purely affine
    landmark data has zero energy for every stiffness.
    
    Args:
        transform: Transform to evaluate
        
    Returns:
        Bending energy (0 without landmarks)
    """
    N, D = transform.num_landmarks, transform.dimension
    if N == 0:
        return 0.0
    
    coefficients = transform.deformable.reshape(-1)
    transform.compute_l()
    K = transform.cache.K.copy()
    
    # Drop the reflexive diagonal blocks
    for i in range(N):
        K[i * D:(i + 1) * D, i * D:(i + 1) * D] = 0.0
    
    return float(coefficients @ K @ coefficients)


def jacobian_finite_difference(transform: KernelTransform,
                               point: np.ndarray,
                               epsilon: float = 1e-4,
                               fixed: bool = False,
                               ) -> np.ndarray:
    """
    Central-difference estimate of the landmark Jacobian at `point`.
    
    Each parameter (source landmark coordinate) is moved by +/- epsilon on
    a copy of the transform, which is refitted and evaluated at `point`.
    This estimates `transform.get_jacobian(point)`; with `fixed=True` the
    target landmarks are perturbed instead, estimating
    `transform.get_jacobian_of_fixed_parameters(point)`.
    
    Args:
        transform: Transform with landmarks
        point: (D,) query point
        epsilon: Perturbation size
        fixed: Perturb the fixed parameters (target landmarks)
        
    Returns:
        J: (D, N*D) numerical Jacobian
    """
    point = np.asarray(point, dtype=np.float64)
    D = transform.dimension
    
    shifted_transform = transform.copy()
    if fixed:
        base = transform.get_fixed_parameters()
        update = shifted_transform.set_fixed_parameters
    else:
        base = transform.get_parameters()
        update = shifted_transform.set_parameters
    
    jacobian = np.zeros((D, base.size))
    
    for k in range(base.size):
        shifted = base.copy()
        
        shifted[k] = base[k] + epsilon
        update(shifted)
        forward = shifted_transform.transform_point(point)
        
        shifted[k] = base[k] - epsilon
        update(shifted)
        backward = shifted_transform.transform_point(point)
        
        jacobian[:, k] = (forward - backward) / (2.0 * epsilon)
    
    return jacobian
