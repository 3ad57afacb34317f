"""
Basic unit tests for kernelwarp components.
"""

import pytest
import numpy as np
from kernelwarp.kernels import (
    SplineKernel,
    ThinPlateSplineKernel,
    ThinPlateR2LogRSplineKernel,
    VolumeSplineKernel,
    ElasticBodySplineKernel,
    ElasticBodyReciprocalSplineKernel,
    create_kernel,
)
from kernelwarp.kernels.splines import RadialSplineKernel
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
    compute_l_derivative,
    invert_system,
    pseudo_inverse,
    reorganize_w,
)


def test_thin_plate_kernel():
    """Test thin-plate kernel values."""
    kernel = ThinPlateSplineKernel(dimension=2)

    G = kernel.compute_influence(np.array([3.0, 4.0]))

    assert G.shape == (2, 2)
    assert np.allclose(G, 5.0 * np.eye(2))


def test_r2logr_kernel_at_zero():
    """Test that the r^2 log r kernel is zero at the origin."""
    kernel = ThinPlateR2LogRSplineKernel(dimension=2)

    assert np.allclose(kernel.compute_influence(np.zeros(2)), 0.0)
    assert np.allclose(kernel.compute_influence(np.array([np.e, 0.0])), np.e ** 2 * np.eye(2))


def test_volume_kernel():
    """Test volume spline kernel values."""
    kernel = VolumeSplineKernel(dimension=3)

    G = kernel.compute_influence(np.array([0.0, 2.0, 0.0]))

    assert np.allclose(G, 8.0 * np.eye(3))


def test_elastic_body_kernels():
    """Test elastic-body kernel values along an axis."""
    x = np.array([1.0, 0.0, 0.0])

    ebs = ElasticBodySplineKernel(dimension=3, poisson_ratio=0.3)
    assert abs(ebs.alpha - 7.4) < 1e-12
    assert np.allclose(ebs.compute_influence(x), np.diag([4.4, 7.4, 7.4]))

    ebrs = ElasticBodyReciprocalSplineKernel(dimension=3, poisson_ratio=0.3)
    assert abs(ebrs.alpha - 4.6) < 1e-12
    assert np.allclose(ebrs.compute_influence(x), np.diag([3.6, 4.6, 4.6]))
    assert np.allclose(ebrs.compute_influence(np.zeros(3)), 0.0)


def test_batched_influences_match_single():
    """Test that batched kernel evaluation matches one-by-one evaluation."""
    rng = np.random.default_rng(0)
    displacements = rng.normal(size=(7, 3))

    for name in ['thin_plate', 'thin_plate_r2logr', 'volume', 'elastic_body', 'elastic_body_reciprocal']:
        kernel = create_kernel(name, dimension=3)
        batch = kernel.compute_influences(displacements)

        assert batch.shape == (7, 3, 3)
        for m, d in enumerate(displacements):
            assert np.allclose(batch[m], kernel.compute_influence(d))


def test_create_kernel():
    """Test kernel factory."""
    kernel = create_kernel('elastic_body', dimension=3, poisson_ratio=0.45)
    assert isinstance(kernel, ElasticBodySplineKernel)
    assert kernel.poisson_ratio == 0.45

    assert create_kernel('thin_plate', dimension=2).alpha is None

    with pytest.raises(ValueError):
        create_kernel('gaussian')


def test_influence_gradients():
    """Test closed-form kernel gradients against central differences."""
    rng = np.random.default_rng(2)
    displacements = rng.normal(size=(6, 3))

    for name in ['thin_plate', 'thin_plate_r2logr', 'volume', 'elastic_body', 'elastic_body_reciprocal']:
        kernel = create_kernel(name, dimension=3)
        analytic = kernel.compute_influence_gradients(displacements)
        numeric = SplineKernel.compute_influence_gradients(kernel, displacements)

        assert analytic.shape == (6, 3, 3, 3)
        assert np.allclose(analytic, numeric, atol=1e-6)
        assert np.allclose(kernel.compute_influence_gradients(np.zeros((1, 3))), 0.0)


def test_radial_kernel_requires_derivative():
    """Test that a radial kernel must provide its radial derivative."""
    class ProfileOnlyKernel(RadialSplineKernel):
        def radial(self, r):
            return r

    with pytest.raises(TypeError):
        ProfileOnlyKernel(dimension=2)


def test_l_derivative():
    """Test the derivative of L W against central differences of L."""
    kernel = ThinPlateR2LogRSplineKernel(dimension=2)
    rng = np.random.default_rng(7)
    points = rng.uniform(size=(5, 2))
    W = rng.normal(size=5 * 2 + 6)
    epsilon = 1e-6

    analytic = compute_l_derivative(kernel, points, W)

    numeric = np.zeros_like(analytic)
    for k in range(5):
        for a in range(2):
            forward, backward = points.copy(), points.copy()
            forward[k, a] += epsilon
            backward[k, a] -= epsilon
            L_forward = compute_l(compute_k(kernel, forward), compute_p(forward))
            L_backward = compute_l(compute_k(kernel, backward), compute_p(backward))
            numeric[:, k * 2 + a] = (L_forward - L_backward) @ W / (2.0 * epsilon)

    assert analytic.shape == (16, 10)
    assert np.allclose(analytic, numeric, atol=1e-6)


def test_reflexive_influence():
    """Test default reflexive influence is stiffness times identity."""
    kernel = ThinPlateSplineKernel(dimension=3)

    assert np.allclose(kernel.compute_reflexive_influence(0, 0.5), 0.5 * np.eye(3))


def test_landmark_store():
    """Test landmark store and displacements."""
    store = LandmarkStore(dimension=2)

    assert store.set_source([[0, 0], [1, 1]])
    assert store.set_target([[1, 0], [1, 3]])
    assert not store.set_target([[1, 0], [1, 3]])  # unchanged

    assert np.allclose(store.displacements, [[1, 0], [0, 2]])
    assert len(store) == 2

    with pytest.raises(ValueError):
        store.displacements[0, 0] = 5.0


def test_landmark_store_mismatch():
    """Test that inconsistent landmark counts are rejected."""
    store = LandmarkStore(dimension=2)
    store.set_source([[0, 0], [1, 1]])
    store.set_target([[0, 0]])

    with pytest.raises(LandmarkMismatchError):
        store.displacements

    with pytest.raises(LandmarkMismatchError):
        store.set_source([[0, 0, 0]])


def test_parameter_layout():
    """Test landmark-major, axis-minor flattening."""
    points = np.array([[1, 2, 3], [4, 5, 6]], dtype=float)

    params = points_to_parameters(points)

    assert np.array_equal(params, [1, 2, 3, 4, 5, 6])
    assert np.array_equal(parameters_to_points(params, 3), points)

    with pytest.raises(LandmarkMismatchError):
        parameters_to_points(np.arange(5.0), 3)


def test_compute_p_layout():
    """Test affine basis matrix layout for one landmark."""
    P = compute_p(np.array([[2.0, 3.0]]))

    expected = np.array([
        [2, 0, 3, 0, 1, 0],
        [0, 2, 0, 3, 0, 1],
    ], dtype=float)

    assert P.shape == (2, 6)
    assert np.array_equal(P, expected)


def test_compute_k():
    """Test kernel matrix blocks."""
    kernel = ThinPlateSplineKernel(dimension=2)
    points = np.array([[0.0, 0.0], [3.0, 4.0], [0.0, 1.0]])

    K = compute_k(kernel, points, stiffness=0.1)

    assert K.shape == (6, 6)
    assert np.allclose(K, K.T)
    assert np.allclose(K[0:2, 2:4], 5.0 * np.eye(2))
    assert np.allclose(K[4:6, 0:2], 1.0 * np.eye(2))
    for i in range(3):
        assert np.allclose(K[2 * i:2 * i + 2, 2 * i:2 * i + 2], 0.1 * np.eye(2))


def test_compute_l_and_y():
    """Test system matrix and right-hand side assembly."""
    kernel = ThinPlateSplineKernel(dimension=2)
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])

    K = compute_k(kernel, points)
    P = compute_p(points)
    L = compute_l(K, P)
    Y = compute_y(np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]]))

    assert L.shape == (12, 12)
    assert np.allclose(L, L.T)
    assert np.allclose(L[6:, 6:], 0.0)
    assert Y.shape == (12,)
    assert np.array_equal(Y[:6], [1, 2, 3, 4, 5, 6])
    assert np.allclose(Y[6:], 0.0)


def test_pseudo_inverse_truncation():
    """Test that tiny singular values are dropped."""
    L = np.diag([2.0, 1.0, 1e-12])

    L_inv, rank = pseudo_inverse(L)

    assert rank == 2
    assert np.allclose(L_inv, np.diag([0.5, 1.0, 0.0]))


def test_invert_system_direct():
    """Test direct inversion of a well-conditioned matrix."""
    rng = np.random.default_rng(1)
    L = rng.normal(size=(12, 12)) + 12 * np.eye(12)

    L_inv = invert_system(L, num_landmarks=3, dimension=2, method='direct')

    assert np.allclose(L_inv @ L, np.eye(12))

    with pytest.raises(ValueError):
        invert_system(L, num_landmarks=3, dimension=2, method='cholesky')


def test_reorganize_w():
    """Test splitting of W into deformable and affine parts."""
    N, D = 2, 2
    deformable = [1, 2, 3, 4]
    linear = [10, 20, 30, 40]  # column-major: A[0,0], A[1,0], A[0,1], A[1,1]
    translation = [7, 8]
    W = np.array(deformable + linear + translation, dtype=float)

    weights = reorganize_w(W, N, D)

    assert np.array_equal(weights.deformable, [[1, 2], [3, 4]])
    assert np.array_equal(weights.affine, [[11, 30], [20, 41]])
    assert np.array_equal(weights.translation, [7, 8])


if __name__ == '__main__':
    pytest.main([__file__])
