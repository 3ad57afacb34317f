"""
Solution of the kernel spline linear system.

Inverts L directly when it is well conditioned and falls back to an SVD
pseudo-inverse otherwise, then splits W = L^-1 Y into its deformable and
affine parts.
"""

from dataclasses import dataclass
import numpy as np
from scipy import linalg
from scipy.linalg import LinAlgError, LinAlgWarning
from typing import Tuple
import warnings


# Singular values s <= SINGULAR_VALUE_RTOL * max(s) are treated as zero by
# the pseudo-inverse. Changing it changes every fit that goes through the
# SVD path.
SINGULAR_VALUE_RTOL = 1e-8

INVERSION_METHODS = ('auto', 'direct', 'svd')


@dataclass
class SplineWeights:
    """
    Solved weights of a kernel spline.

    Attributes:
        deformable: (N, D) spline coefficient vector per landmark
        affine: (D, D) linear part A, identity included
        translation: (D,) translation part b
    """
    deformable: np.ndarray
    affine: np.ndarray
    translation: np.ndarray

    @classmethod
    def identity(cls, dimension: int) -> 'SplineWeights':
        """Weights of the identity transform (no landmarks)."""
        return cls(
            deformable=np.zeros((0, dimension)),
            affine=np.eye(dimension),
            translation=np.zeros(dimension),
        )


def pseudo_inverse(L: np.ndarray,
                   rtol: float = SINGULAR_VALUE_RTOL,
                   ) -> Tuple[np.ndarray, int]:
    """
    SVD-based pseudo-inverse with relative singular value truncation.

    Args:
        L: Square system matrix
        rtol: Singular values below rtol * max(s) are dropped

    Returns:
        L_inv: Pseudo-inverse of L
        rank: Number of singular values kept
    """
    U, s, Vt = linalg.svd(L, full_matrices=False)
    if s.size == 0 or s[0] == 0.0:
        return np.zeros_like(L.T), 0

    keep = s > rtol * s[0]
    rank = int(keep.sum())

    inv_s = np.zeros_like(s)
    inv_s[keep] = 1.0 / s[keep]

    return (Vt.T * inv_s) @ U.T, rank


def direct_inverse(L: np.ndarray) -> np.ndarray:
    """
    LU-based inverse of L.

    Raises:
        LinAlgError: If L is exactly singular
        LinAlgWarning: If L is ill-conditioned (raised, not warned)
    """
    with warnings.catch_warnings():
        warnings.simplefilter('error', LinAlgWarning)
        return linalg.solve(L, np.eye(L.shape[0]))


def invert_system(L: np.ndarray,
                  num_landmarks: int,
                  dimension: int,
                  method: str = 'auto',
                  verbose: bool = False,
                  ) -> np.ndarray:
    """
    Invert the saddle-point matrix L.

    Args:
        L: (N*D + D*(D+1)) square system matrix
        num_landmarks: Number of landmarks N
        dimension: Spatial dimension D
        method: 'auto' (direct, SVD on failure or with fewer than D+1
                landmarks), 'direct' (always tries the direct inverse
                first, SVD on failure) or 'svd'
        verbose: Print which path was taken

    Returns:
        L_inv: Inverse (or pseudo-inverse) of L
    """
    if method not in INVERSION_METHODS:
        raise ValueError(f"Unknown inversion method: {method}")

    # Fewer than D+1 landmarks cannot determine the affine part
    use_svd = method == 'svd' or (method == 'auto' and num_landmarks < dimension + 1)

    if not use_svd:
        try:
            L_inv = direct_inverse(L)
            if verbose:
                print(f"    Inverted L ({L.shape[0]}x{L.shape[1]}) directly")
            return L_inv
        except (LinAlgError, LinAlgWarning) as e:
            warnings.warn(f"Direct inversion of L failed ({e}), using SVD pseudo-inverse")

    L_inv, rank = pseudo_inverse(L)
    if rank < L.shape[0]:
        warnings.warn(
            f"L is rank deficient (rank {rank} of {L.shape[0]}), "
            f"singular values below {SINGULAR_VALUE_RTOL:g} * max were dropped",
            RuntimeWarning,
        )
    if verbose:
        print(f"    Inverted L ({L.shape[0]}x{L.shape[1]}) by SVD, rank {rank}")

    return L_inv


def reorganize_w(W: np.ndarray, num_landmarks: int, dimension: int) -> SplineWeights:
    """
    Split W into deformable coefficients, linear part A and translation b.

    The first N*D entries hold one coefficient vector per landmark. The
    following D*D entries hold the linear part column by column (entry
    N*D + j*D + i is A[i, j]), the last D the translation. The identity is
    added to A because the system is solved for displacements.

    Args:
        W: (N*D + D*(D+1),) solution of L W = Y
        num_landmarks: Number of landmarks N
        dimension: Spatial dimension D

    Returns:
        SplineWeights
    """
    N, D = num_landmarks, dimension
    expected = N * D + D * (D + 1)
    if W.shape != (expected,):
        raise ValueError(f"Expected W of shape ({expected},), got {W.shape}")

    deformable = W[:N * D].reshape(N, D)
    affine = W[N * D:N * D + D * D].reshape(D, D).T + np.eye(D)
    translation = W[N * D + D * D:].copy()

    return SplineWeights(
        deformable=deformable.copy(),
        affine=affine,
        translation=translation,
    )
