"""
Assembly of the kernel spline linear system.

Builds the block matrices

    L = [ K   P ]      Y = [ d ]
        [ P^T 0 ]          [ 0 ]

where K holds the kernel responses between landmarks, P the affine basis at
the source landmarks and d the flattened landmark displacements.
"""

import numpy as np

from kernelwarp.kernels.base import SplineKernel


def compute_k(kernel: SplineKernel,
              points: np.ndarray,
              stiffness: float = 0.0,
              ) -> np.ndarray:
    """
    Compute the (N*D, N*D) kernel matrix K.
    
    Block (i, j), i != j, is G(points[i] - points[j]); block (i, i) is the
    kernel's reflexive influence of landmark i.
    
    Args:
        kernel: Spline kernel
        points: (N, D) landmark coordinates the kernel is evaluated on
        stiffness: Non-negative regularization for the reflexive blocks
        
    Returns:
        K: (N*D, N*D) matrix
    """
    N, D = points.shape
    
    # All pairwise differences, evaluated off the diagonal only
    diff = points[:, None, :] - points[None, :, :]
    rows, cols = np.nonzero(~np.eye(N, dtype=bool))
    
    blocks = np.zeros((N, N, D, D))
    if len(rows) > 0:
        blocks[rows, cols] = kernel.compute_influences(diff[rows, cols])
    for i in range(N):
        blocks[i, i] = kernel.compute_reflexive_influence(i, stiffness)
    
    # (N, N, D, D) -> (N*D, N*D) with block (i, j) at rows i*D.., cols j*D..
    return blocks.transpose(0, 2, 1, 3).reshape(N * D, N * D)


def compute_p(points: np.ndarray) -> np.ndarray:
    """
    Compute the (N*D, D*D + D) affine basis matrix P.
    
    Block row i is [p_i[0] I, p_i[1] I, ..., p_i[D-1] I, I]: the linear
    columns come first, the translation columns last.
    
    Args:
        points: (N, D) source landmarks
        
    Returns:
        P: (N*D, D*(D+1)) matrix
    """
    N, D = points.shape
    identity = np.eye(D)
    
    # (N, D, D+1, D): block [:, :, j, :] = coordinate j times identity
    coords = np.concatenate([points, np.ones((N, 1))], axis=1)
    blocks = coords[:, None, :, None] * identity[None, :, None, :]
    return blocks.reshape(N * D, D * (D + 1))


def compute_l(K: np.ndarray, P: np.ndarray) -> np.ndarray:
    """
    Assemble the saddle-point matrix L from K and P.
    
    Args:
        K: (N*D, N*D) kernel matrix
        P: (N*D, D*(D+1)) affine basis matrix
        
    Returns:
        L: (N*D + D*(D+1)) square matrix
    """
    num_affine = P.shape[1]
    zeros = np.zeros((num_affine, num_affine))
    return np.block([[K, P],
                     [P.T, zeros]])


def compute_y(displacements: np.ndarray) -> np.ndarray:
    """
    Stack the flattened displacements on top of D*(D+1) zeros.
    
    Args:
        displacements: (N, D) landmark displacements
        
    Returns:
        Y: (N*D + D*(D+1),) right-hand side
    """
    D = displacements.shape[1]
    return np.concatenate([displacements.reshape(-1), np.zeros(D * (D + 1))])


def compute_l_derivative(kernel: SplineKernel,
                         points: np.ndarray,
                         W: np.ndarray,
                         include_k: bool = True,
                         ) -> np.ndarray:
    """
    Derivative of L W with respect to the source landmarks, for fixed W.
    
    Column k*D + a is d(L W) / d points[k, a]. K contributes through its
    off-diagonal blocks G(p_i - p_j) (the reflexive blocks are constant),
    P through the coordinate of landmark k on axis a.
    
    Args:
        kernel: Spline kernel
        points: (N, D) source landmarks
        W: (N*D + D*(D+1),) solution of L W = Y
        include_k: Whether K is evaluated on `points`; False when K is
                   built from the target landmarks and so does not move
        
    Returns:
        dLW: (N*D + D*(D+1), N*D) matrix
    """
    N, D = points.shape
    coefficients = W[:N * D].reshape(N, D)
    # linear[a] holds the weights of the coordinate-a columns of P
    linear = W[N * D:N * D + D * D].reshape(D, D)
    idx = np.arange(N)
    
    # (i, d, k, a) layout of the upper N*D rows
    upper = np.zeros((N, D, N, D))
    upper[idx, :, idx, :] = linear.T[None, :, :]
    
    if include_k and N > 1:
        diff = points[:, None, :] - points[None, :, :]
        rows, cols = np.nonzero(~np.eye(N, dtype=bool))
        grads = np.zeros((N, N, D, D, D))
        grads[rows, cols] = kernel.compute_influence_gradients(diff[rows, cols])
        
        # d(K c)_i / d p_k = delta_ik sum_j dG(p_k - p_j) c_j - dG(p_i - p_k) c_k
        upper -= np.einsum('ikade,ke->idka', grads, coefficients)
        upper[idx, :, idx, :] += np.einsum('kjade,je->kda', grads, coefficients)
    
    # P^T c: the coordinate-a rows pick up c_k
    lower = np.zeros((D + 1, D, N, D))
    lower[:D] = np.einsum('ab,kd->adkb', np.eye(D), coefficients)
    
    return np.concatenate([upper.reshape(N * D, N * D),
                           lower.reshape(D * (D + 1), N * D)], axis=0)
