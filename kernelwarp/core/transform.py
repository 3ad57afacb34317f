"""
Landmark-driven kernel spline transform.

Fits the spline mapping source landmarks onto target landmarks and evaluates
it, and its Jacobian with respect to the landmarks, at arbitrary points.
"""

import copy
import numpy as np
from typing import Optional, Union
import warnings

from kernelwarp.core.cache import SystemCache, SystemState
from kernelwarp.core.config import TransformConfig, KERNEL_SPACES
from kernelwarp.kernels import SplineKernel, create_kernel
from kernelwarp.landmarks import (
    LandmarkStore,
    LandmarkMismatchError,
    points_to_parameters,
    parameters_to_points,
)
from kernelwarp.system import (
    compute_k,
    compute_p,
    compute_l,
    compute_y,
    invert_system,
    compute_l_derivative,
    reorganize_w,
    SplineWeights,
)
from kernelwarp.system.solver import INVERSION_METHODS


class KernelTransform:
    """
    Kernel spline transform T(x) = A x + b + sum_i c_i^T G(x - p_i).

    The spline coefficients c_i and the affine part (A, b) solve

        [ K   P ] [ c ]   [ q - p ]
        [ P^T 0 ] [ a ] = [   0   ]

    for source landmarks p and target landmarks q, so that T(p_i) = q_i when
    the stiffness is zero. The parameters of the transform are the source
    landmarks (flattened landmark-major, axis-minor); the target landmarks
    are its fixed parameters.

    Matrices are computed lazily and cached. Call `fit()` once after
    configuring the landmarks; from then on `transform_point`,
    `transform_points` and `get_jacobian` only read shared state and can be
    called from many threads at once. Setters must not run concurrently with
    anything else.
    """

    def __init__(self,
                 kernel: Union[str, SplineKernel] = 'thin_plate',
                 dimension: int = 3,
                 stiffness: float = 0.0,
                 poisson_ratio: Optional[float] = None,
                 kernel_space: str = 'source',
                 inversion_method: str = 'auto',
                 verbose: bool = False,
                 ):
        """
        Initialize transform.

        Args:
            kernel: Kernel name (see kernelwarp.kernels.KERNELS) or instance
            dimension: Spatial dimension D
            stiffness: Non-negative regularization, 0 = exact interpolation
            poisson_ratio: Poisson ratio for the elastic-body kernels
            kernel_space: Landmarks the off-diagonal blocks of K are
                          evaluated on, 'source' or 'target'
            inversion_method: 'auto', 'direct' or 'svd'
            verbose: Print progress information
        """
        if isinstance(kernel, str):
            kernel = create_kernel(kernel, dimension, poisson_ratio=poisson_ratio)
        elif kernel.dimension != dimension:
            raise ValueError(
                f"Kernel dimension {kernel.dimension} does not match transform dimension {dimension}"
            )
        if kernel_space not in KERNEL_SPACES:
            raise ValueError(f"Unknown kernel space: {kernel_space}")
        if inversion_method not in INVERSION_METHODS:
            raise ValueError(f"Unknown inversion method: {inversion_method}")

        self.dimension = dimension
        self.kernel = kernel
        self.kernel_space = kernel_space
        self.inversion_method = inversion_method
        self.verbose = verbose

        self.landmarks = LandmarkStore(dimension)
        self.cache = SystemCache()

        self._stiffness = 0.0
        self.set_stiffness(stiffness)
        self.identity = np.eye(dimension)

    @classmethod
    def from_config(cls, config: TransformConfig) -> 'KernelTransform':
        """Create a transform from a TransformConfig."""
        config.validate()
        return cls(
            kernel=config.kernel,
            dimension=config.dimension,
            stiffness=config.stiffness,
            poisson_ratio=config.poisson_ratio,
            kernel_space=config.kernel_space,
            inversion_method=config.inversion_method,
            verbose=config.verbose,
        )

    @property
    def source_landmarks(self) -> np.ndarray:
        return self.landmarks.source

    @property
    def target_landmarks(self) -> np.ndarray:
        return self.landmarks.target

    @property
    def displacements(self) -> np.ndarray:
        return self.landmarks.displacements

    @property
    def num_landmarks(self) -> int:
        return self.landmarks.num_landmarks

    @property
    def number_of_parameters(self) -> int:
        """N*D: one parameter per source landmark coordinate."""
        return self.num_landmarks * self.dimension

    def set_source_landmarks(self, points) -> None:
        """Replace the source landmarks p, shape (N, D)."""
        if self.landmarks.set_source(points):
            self.cache.invalidate()

    def set_target_landmarks(self, points) -> None:
        """Replace the target landmarks q, shape (N, D)."""
        if self.landmarks.set_target(points):
            self.cache.invalidate()

    @property
    def stiffness(self) -> float:
        return self._stiffness

    def set_stiffness(self, stiffness: float) -> None:
        """Set the stiffness; negative values are clamped to zero."""
        stiffness = float(stiffness) if stiffness > 0 else 0.0
        if stiffness != self._stiffness:
            self._stiffness = stiffness
            self.cache.invalidate()

    @property
    def alpha(self) -> Optional[float]:
        """Elasticity constant of the kernel, None if it has none."""
        return self.kernel.alpha

    @property
    def poisson_ratio(self) -> Optional[float]:
        return self.kernel.poisson_ratio

    def set_poisson_ratio(self, poisson_ratio: float) -> None:
        """Set the Poisson ratio of an elastic-body kernel."""
        if self.kernel.poisson_ratio is None:
            warnings.warn(f"{self.kernel!r} has no Poisson ratio, ignoring value {poisson_ratio}")
            return
        if float(poisson_ratio) != self.kernel.poisson_ratio:
            self.kernel.poisson_ratio = poisson_ratio
            self.cache.invalidate()

    @property
    def state(self) -> SystemState:
        return self.cache.state

    def compute_k(self) -> np.ndarray:
        """Kernel matrix K, shape (N*D, N*D)."""
        if self.kernel_space == 'target':
            points = self.landmarks.target
        else:
            points = self.landmarks.source
        return compute_k(self.kernel, points, self._stiffness)

    def compute_p(self) -> np.ndarray:
        """Affine basis matrix P, shape (N*D, D*(D+1))."""
        return compute_p(self.landmarks.source)

    def compute_y(self) -> np.ndarray:
        """Right-hand side Y, shape (N*D + D*(D+1),)."""
        return compute_y(self.landmarks.displacements)

    def compute_l(self) -> np.ndarray:
        """Assemble and cache L (and the K and P it is built from)."""
        if not self.cache.l_matrix_computed:
            self.landmarks.check_consistent()
            self.cache.K = self.compute_k()
            self.cache.P = self.compute_p()
            self.cache.L = compute_l(self.cache.K, self.cache.P)
            self.cache.l_matrix_computed = True
        return self.cache.L

    def compute_l_inverse(self) -> np.ndarray:
        """Invert and cache L, assembling it first if needed."""
        if not self.cache.l_inverse_computed:
            L = self.compute_l()
            self.cache.L_inverse = invert_system(
                L,
                self.num_landmarks,
                self.dimension,
                method=self.inversion_method,
                verbose=self.verbose,
            )
            self.cache.l_inverse_computed = True
        return self.cache.L_inverse

    def compute_w_matrix(self) -> SplineWeights:
        """
        Solve for the spline weights W = L^-1 Y and reorganize them.

        Without landmarks the solve is skipped and the transform is the
        identity.

        Returns:
            SplineWeights with deformable coefficients, A and b

        Raises:
            LandmarkMismatchError: If source and target counts differ
        """
        if self.cache.w_matrix_computed:
            return self.cache.weights

        self.landmarks.check_consistent()
        N, D = self.num_landmarks, self.dimension

        if N == 0:
            self.cache.weights = SplineWeights.identity(D)
            self.cache.w_matrix_computed = True
            return self.cache.weights

        if self.verbose:
            print(f"Fitting {self.kernel!r} to {N} landmarks (stiffness={self._stiffness})")

        L_inverse = self.compute_l_inverse()
        self.cache.Y = self.compute_y()
        self.cache.W = L_inverse @ self.cache.Y
        self.cache.weights = reorganize_w(self.cache.W, N, D)
        self.cache.w_matrix_computed = True

        return self.cache.weights

    def fit(self) -> 'KernelTransform':
        """Compute all cached matrices, including the Jacobian terms; returns self."""
        self.compute_w_matrix()
        if self.num_landmarks > 0:
            self.compute_w_derivative()
        return self

    @property
    def deformable(self) -> np.ndarray:
        """(N, D) spline coefficients, one vector per landmark."""
        return self.compute_w_matrix().deformable

    @property
    def affine_matrix(self) -> np.ndarray:
        """(D, D) linear part A of the affine component."""
        return self.compute_w_matrix().affine

    @property
    def translation(self) -> np.ndarray:
        """(D,) translation part b of the affine component."""
        return self.compute_w_matrix().translation

    def _influences(self, points: np.ndarray) -> np.ndarray:
        """G(x_m - p_i) for all query points and landmarks, shape (M, N, D, D)."""
        source = self.landmarks.source
        M, N, D = len(points), len(source), self.dimension
        diff = (points[:, None, :] - source[None, :, :]).reshape(M * N, D)
        return self.kernel.compute_influences(diff).reshape(M, N, D, D)

    def _as_query(self, point) -> np.ndarray:
        point = np.asarray(point, dtype=np.float64)
        if point.shape != (self.dimension,):
            raise LandmarkMismatchError(
                f"Expected a point of shape ({self.dimension},), got {point.shape}"
            )
        return point

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """
        Map points through the transform.

        Args:
            points: (M, D) query points

        Returns:
            (M, D) transformed points
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != self.dimension:
            raise LandmarkMismatchError(
                f"Expected points of shape (M, {self.dimension}), got {points.shape}"
            )

        weights = self.compute_w_matrix()
        result = points @ weights.affine.T + weights.translation

        if len(weights.deformable) > 0 and len(points) > 0:
            G = self._influences(points)
            result += np.einsum('mijk,ij->mk', G, weights.deformable)

        return result

    def transform_point(self, point) -> np.ndarray:
        """
        Map a single point through the transform.

        Args:
            point: (D,) query point

        Returns:
            (D,) transformed point
        """
        point = self._as_query(point)
        return self.transform_points(point[None, :])[0]

    def get_jacobian_of_coefficients(self, point) -> np.ndarray:
        """
        Derivative of T(x) with respect to the spline coefficients.

        Block i of the (D, N*D) result is G(x - p_i)^T, the same kernel
        responses that weight the coefficients in `transform_point`.
        """
        point = self._as_query(point)
        N, D = self.num_landmarks, self.dimension
        if N == 0:
            return np.zeros((D, 0))
        G = self._influences(point[None, :])[0]
        # J[o, i*D + d] = G[i, d, o]
        return G.transpose(2, 0, 1).reshape(D, N * D)

    def _evaluation_operator(self, point: np.ndarray) -> np.ndarray:
        """(D, len(W)) row operator B(x) with T(x) = x + B(x) W."""
        deform = self.get_jacobian_of_coefficients(point)
        linear = np.kron(point[None, :], self.identity)
        return np.concatenate([deform, linear, self.identity], axis=1)

    def compute_w_derivative(self) -> np.ndarray:
        """
        Derivative of W with respect to the source landmarks, cached.

        Differentiating L W = Y gives dW = -L^-1 (e + dL W), where e is the
        derivative of -Y (the displacements q - p shrink as p grows).

        Returns:
            (N*D + D*(D+1), N*D) matrix, column k*D + a is dW / d p[k, a]
        """
        if self.cache.W_derivative is None:
            self.compute_w_matrix()
            N, D = self.num_landmarks, self.dimension
            R = compute_l_derivative(
                self.kernel,
                self.landmarks.source,
                self.cache.W,
                include_k=self.kernel_space == 'source',
            )
            R[:N * D] += np.eye(N * D)
            self.cache.W_derivative = -self.cache.L_inverse @ R
        return self.cache.W_derivative

    def get_jacobian(self, point) -> np.ndarray:
        """
        Jacobian of T(x) with respect to the parameters (source landmarks).

        Column i*D + a is the change of the output when source landmark i
        moves by a unit along axis a and the spline is refitted. Moving a
        landmark changes both its kernel response at x and the solved
        weights, so every column is generally non-zero.

        Args:
            point: (D,) query point

        Returns:
            J: (D, N*D) Jacobian
        """
        point = self._as_query(point)
        N, D = self.num_landmarks, self.dimension
        if N == 0:
            self.landmarks.check_consistent()
            return np.zeros((D, 0))

        dW = self.compute_w_derivative()
        coefficients = self.cache.weights.deformable

        # Direct term: G(x - p_k) moves with p_k, J[o, k*D + a] = -sum_e dG[k, a, e, o] c_k[e]
        dG = self.kernel.compute_influence_gradients(point[None, :] - self.landmarks.source)
        direct = -np.einsum('kaeo,ke->oka', dG, coefficients).reshape(D, N * D)

        return direct + self._evaluation_operator(point) @ dW

    def get_jacobian_of_fixed_parameters(self, point) -> np.ndarray:
        """
        Jacobian of T(x) with respect to the target landmarks.

        Column i*D + a is the change of the output when target landmark i
        moves by a unit along axis a and the spline is refitted. Only Y
        depends on the targets, so this is B(x) L^-1 restricted to the
        displacement rows.

        Args:
            point: (D,) query point

        Returns:
            J: (D, N*D) Jacobian
        """
        point = self._as_query(point)
        N, D = self.num_landmarks, self.dimension
        if N == 0:
            self.landmarks.check_consistent()
            return np.zeros((D, 0))

        L_inverse = self.compute_l_inverse()
        return self._evaluation_operator(point) @ L_inverse[:, :N * D]

    def get_nonzero_jacobian_indices(self) -> np.ndarray:
        """Indices of the parameters that influence any point: all of them."""
        return np.arange(self.number_of_parameters)

    def set_parameters(self, parameters: np.ndarray) -> None:
        """
        Set the source landmarks from a flat (N*D,) vector.

        Raises:
            LandmarkMismatchError: If the length is not a multiple of D or
                does not match the target landmarks
        """
        points = parameters_to_points(parameters, self.dimension)
        self._check_count(points, self.landmarks.target, 'target')
        self.set_source_landmarks(points)

    def get_parameters(self) -> np.ndarray:
        """Source landmarks flattened landmark-major, axis-minor."""
        return points_to_parameters(self.landmarks.source)

    def set_fixed_parameters(self, parameters: np.ndarray) -> None:
        """Set the target landmarks from a flat (N*D,) vector."""
        points = parameters_to_points(parameters, self.dimension)
        self._check_count(points, self.landmarks.source, 'source')
        self.set_target_landmarks(points)

    def get_fixed_parameters(self) -> np.ndarray:
        """Target landmarks flattened landmark-major, axis-minor."""
        return points_to_parameters(self.landmarks.target)

    def set_identity(self) -> None:
        """Remove all landmarks, turning the transform into the identity."""
        self.landmarks.clear()
        self.cache.invalidate()

    def _check_count(self, points: np.ndarray, other: np.ndarray, name: str) -> None:
        if len(other) > 0 and len(points) != len(other):
            raise LandmarkMismatchError(
                f"Parameter vector of length {points.size} does not match "
                f"{len(other)} {name} landmarks ({len(other) * self.dimension} values)"
            )

    def copy(self) -> 'KernelTransform':
        """Independent deep copy, including cached matrices."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (f"KernelTransform(kernel={self.kernel!r}, landmarks={self.num_landmarks}, "
                f"stiffness={self._stiffness}, state={self.state.value})")
