"""
Concrete spline kernel families.

Thin-plate, volume and elastic-body splines, vectorized over batches
of displacements.
"""

from abc import abstractmethod
import numpy as np
from typing import Optional

from kernelwarp.kernels.base import SplineKernel


# Below this radius, kernels that are singular at the origin return zero.
RADIUS_EPSILON = 1e-8


class RadialSplineKernel(SplineKernel):
    """
    Kernel of the form G(x) = U(|x|) * I.

    Subclasses only provide the radial profile U and its derivative U'.
    """

    @abstractmethod
    def radial(self, r: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def radial_derivative(self, r: np.ndarray) -> np.ndarray:
        pass

    def compute_influence(self, displacement: np.ndarray) -> np.ndarray:
        r = np.linalg.norm(np.asarray(displacement, dtype=np.float64))
        return float(self.radial(np.array(r))) * self.identity

    def compute_influences(self, displacements: np.ndarray) -> np.ndarray:
        displacements = np.asarray(displacements, dtype=np.float64)
        r = np.linalg.norm(displacements, axis=-1)
        return self.radial(r)[:, None, None] * self.identity[None, :, :]

    def compute_influence_gradients(self, displacements: np.ndarray) -> np.ndarray:
        x = np.asarray(displacements, dtype=np.float64)
        r = np.linalg.norm(x, axis=-1)
        valid = r > RADIUS_EPSILON
        inv_r = np.where(valid, 1.0 / np.where(valid, r, 1.0), 0.0)
        # dU/dx_a = U'(r) x_a / r, zero at the origin
        slope = (self.radial_derivative(r) * inv_r)[:, None] * x
        return slope[:, :, None, None] * self.identity[None, None, :, :]


class ThinPlateSplineKernel(RadialSplineKernel):
    """Thin-plate spline, G(x) = |x| I (biharmonic kernel in 3D)."""

    def radial(self, r: np.ndarray) -> np.ndarray:
        return r

    def radial_derivative(self, r: np.ndarray) -> np.ndarray:
        return np.ones_like(r)


class ThinPlateR2LogRSplineKernel(RadialSplineKernel):
    """Thin-plate spline, G(x) = |x|^2 log|x| I (biharmonic kernel in 2D)."""

    def radial(self, r: np.ndarray) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        safe_r = np.where(r > RADIUS_EPSILON, r, 1.0)
        return np.where(r > RADIUS_EPSILON, r ** 2 * np.log(safe_r), 0.0)

    def radial_derivative(self, r: np.ndarray) -> np.ndarray:
        r = np.asarray(r, dtype=np.float64)
        safe_r = np.where(r > RADIUS_EPSILON, r, 1.0)
        return np.where(r > RADIUS_EPSILON, r * (2.0 * np.log(safe_r) + 1.0), 0.0)


class VolumeSplineKernel(RadialSplineKernel):
    """Volume spline, G(x) = |x|^3 I."""

    def radial(self, r: np.ndarray) -> np.ndarray:
        return r ** 3

    def radial_derivative(self, r: np.ndarray) -> np.ndarray:
        return 3.0 * r ** 2


class ElasticBodySplineKernel(SplineKernel):
    """
    Elastic body spline (Davis et al., 1997).

    G(x) = |x| * (alpha |x|^2 I - 3 x x^T), with alpha = 12 (1 - nu) - 1.
    """

    alpha_scale = 12.0

    def __init__(self, dimension: int = 3, poisson_ratio: float = 0.3):
        super().__init__(dimension)
        self._poisson_ratio = float(poisson_ratio)

    @property
    def poisson_ratio(self) -> float:
        return self._poisson_ratio

    @poisson_ratio.setter
    def poisson_ratio(self, value: float) -> None:
        self._poisson_ratio = float(value)

    @property
    def alpha(self) -> float:
        return self.alpha_scale * (1.0 - self._poisson_ratio) - 1.0

    def compute_influence(self, displacement: np.ndarray) -> np.ndarray:
        displacement = np.asarray(displacement, dtype=np.float64)
        return self.compute_influences(displacement[None, :])[0]

    def compute_influences(self, displacements: np.ndarray) -> np.ndarray:
        x = np.asarray(displacements, dtype=np.float64)
        r = np.linalg.norm(x, axis=-1)
        outer = x[:, :, None] * x[:, None, :]
        radial = (self.alpha * r ** 2)[:, None, None] * self.identity[None, :, :]
        return r[:, None, None] * (radial - 3.0 * outer)

    def _gradient_terms(self, x: np.ndarray):
        """Radius, 1/radius (0 at the origin), x x^T and d(x x^T)/dx_a."""
        r = np.linalg.norm(x, axis=-1)
        valid = r > RADIUS_EPSILON
        inv_r = np.where(valid, 1.0 / np.where(valid, r, 1.0), 0.0)
        outer = x[:, :, None] * x[:, None, :]
        eye = self.identity[None, :, :, None]
        # d(x x^T)[d, e] / dx_a = delta_ad x_e + x_d delta_ae
        d_outer = eye * x[:, None, None, :] + x[:, None, :, None] * self.identity[None, :, None, :]
        return r, inv_r, outer, d_outer

    def compute_influence_gradients(self, displacements: np.ndarray) -> np.ndarray:
        x = np.asarray(displacements, dtype=np.float64)
        r, inv_r, outer, d_outer = self._gradient_terms(x)
        radial = (3.0 * self.alpha * r)[:, None] * x
        return (radial[:, :, None, None] * self.identity[None, None, :, :]
                - 3.0 * (inv_r[:, None] * x)[:, :, None, None] * outer[:, None, :, :]
                - 3.0 * r[:, None, None, None] * d_outer)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(dimension={self.dimension}, "
                f"poisson_ratio={self._poisson_ratio})")


class ElasticBodyReciprocalSplineKernel(ElasticBodySplineKernel):
    """
    Elastic body reciprocal spline (Kohlrausch et al., 2005).

    G(x) = alpha |x| I - x x^T / |x|, with alpha = 8 (1 - nu) - 1.
    """

    alpha_scale = 8.0

    def compute_influences(self, displacements: np.ndarray) -> np.ndarray:
        x = np.asarray(displacements, dtype=np.float64)
        r = np.linalg.norm(x, axis=-1)
        valid = r > RADIUS_EPSILON
        inv_r = np.where(valid, 1.0 / np.where(valid, r, 1.0), 0.0)
        outer = x[:, :, None] * x[:, None, :]
        radial = (self.alpha * r)[:, None, None] * self.identity[None, :, :]
        G = radial - inv_r[:, None, None] * outer
        G[~valid] = 0.0
        return G

    def compute_influence_gradients(self, displacements: np.ndarray) -> np.ndarray:
        x = np.asarray(displacements, dtype=np.float64)
        r, inv_r, outer, d_outer = self._gradient_terms(x)
        radial = (self.alpha * inv_r)[:, None] * x
        return (radial[:, :, None, None] * self.identity[None, None, :, :]
                - inv_r[:, None, None, None] * d_outer
                + (inv_r ** 3)[:, None, None, None] * x[:, :, None, None] * outer[:, None, :, :])


KERNELS = {
    'thin_plate': ThinPlateSplineKernel,
    'thin_plate_r2logr': ThinPlateR2LogRSplineKernel,
    'volume': VolumeSplineKernel,
    'elastic_body': ElasticBodySplineKernel,
    'elastic_body_reciprocal': ElasticBodyReciprocalSplineKernel,
}


def create_kernel(name: str,
                  dimension: int = 3,
                  poisson_ratio: Optional[float] = None,
                  ) -> SplineKernel:
    """
    Create a kernel by name.

    Args:
        name: One of 'thin_plate', 'thin_plate_r2logr', 'volume',
              'elastic_body', 'elastic_body_reciprocal'
        dimension: Spatial dimension D
        poisson_ratio: Poisson ratio for the elastic-body families

    Returns:
        SplineKernel instance
    """
    if name not in KERNELS:
        raise ValueError(f"Unknown kernel: {name}")

    kernel_cls = KERNELS[name]
    if issubclass(kernel_cls, ElasticBodySplineKernel):
        if poisson_ratio is None:
            return kernel_cls(dimension)
        return kernel_cls(dimension, poisson_ratio=poisson_ratio)

    return kernel_cls(dimension)
