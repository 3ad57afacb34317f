"""
Tests for transform persistence, configuration and plotting.
"""

import pytest
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from kernelwarp.core import KernelTransform, TransformConfig, create_default_config
from kernelwarp.io import load_transform, save_transform, load_landmarks, save_landmarks
from kernelwarp.kernels import ThinPlateSplineKernel
from kernelwarp.visualization import plot_landmarks, plot_deformed_grid, plot_displacement_quiver


def create_fitted_transform(kernel='elastic_body_reciprocal', dimension=3):
    rng = np.random.default_rng(42)
    source = rng.uniform(size=(8, dimension))
    target = source + 0.05 * rng.normal(size=source.shape)

    transform = KernelTransform(kernel=kernel, dimension=dimension, stiffness=0.01, poisson_ratio=0.4)
    transform.set_source_landmarks(source)
    transform.set_target_landmarks(target)
    return transform


@pytest.mark.parametrize('suffix', ['.npz', '.yaml'])
def test_transform_round_trip(tmp_path, suffix):
    """Test saving and loading a transform."""
    transform = create_fitted_transform()
    path = tmp_path / f'transform{suffix}'

    save_transform(str(path), transform)
    loaded = load_transform(str(path))

    assert loaded.kernel_space == transform.kernel_space
    assert loaded.stiffness == transform.stiffness
    assert loaded.poisson_ratio == transform.poisson_ratio
    assert np.array_equal(loaded.get_parameters(), transform.get_parameters())
    assert np.array_equal(loaded.get_fixed_parameters(), transform.get_fixed_parameters())

    point = np.array([0.3, 0.6, 0.1])
    assert np.allclose(loaded.transform_point(point), transform.transform_point(point))


def test_identity_round_trip(tmp_path):
    """Test saving a transform without landmarks."""
    transform = KernelTransform(kernel='thin_plate', dimension=2)
    path = tmp_path / 'identity.npz'

    save_transform(str(path), transform)
    loaded = load_transform(str(path))

    assert loaded.num_landmarks == 0
    assert loaded.poisson_ratio is None
    assert np.allclose(loaded.transform_point([1.0, 2.0]), [1.0, 2.0])


def test_load_errors(tmp_path):
    """Test loader error handling."""
    with pytest.raises(FileNotFoundError):
        load_transform(str(tmp_path / 'missing.npz'))

    bad = tmp_path / 'transform.txt'
    bad.write_text('nothing')
    with pytest.raises(ValueError):
        load_transform(str(bad))


def test_save_unknown_suffix(tmp_path):
    """Test that transforms are only written with a loadable extension."""
    transform = create_fitted_transform()

    with pytest.raises(ValueError):
        save_transform(str(tmp_path / 'transform.bin'), transform)

    assert list(tmp_path.iterdir()) == []


def test_custom_kernel_not_saved(tmp_path):
    """Test that only registered kernel families can be saved."""
    class ShiftedKernel(ThinPlateSplineKernel):
        pass

    transform = KernelTransform(kernel=ShiftedKernel(dimension=2), dimension=2)
    with pytest.raises(ValueError):
        save_transform(str(tmp_path / 'custom.npz'), transform)


def test_landmark_files(tmp_path):
    """Test reading and writing landmark text files."""
    points = np.array([[0.0, 1.0, 2.0], [3.5, 4.5, 5.5]])
    path = tmp_path / 'points.txt'

    save_landmarks(str(path), points)

    assert np.allclose(load_landmarks(str(path), 3), points)
    with pytest.raises(ValueError):
        load_landmarks(str(path), 2)


def test_config_yaml(tmp_path):
    """Test configuration YAML round trip."""
    config = TransformConfig(dimension=2, kernel='volume', stiffness=0.05, inversion_method='svd')
    path = tmp_path / 'config.yaml'

    config.to_yaml(str(path))
    loaded = TransformConfig.from_yaml(str(path))

    assert loaded == config
    assert create_default_config().to_dict()['kernel'] == 'thin_plate'

    with pytest.raises(ValueError):
        TransformConfig.from_dict({'kernel_space': 'moving'})


def test_plots(tmp_path):
    """Test that 2D plots render and reject 3D transforms."""
    transform = create_fitted_transform(kernel='thin_plate_r2logr', dimension=2)

    plt.close('all')
    figures = [
        plot_landmarks(transform, save_path=str(tmp_path / 'landmarks.png')),
        plot_deformed_grid(transform, num_lines=5, samples_per_line=20),
        plot_displacement_quiver(transform, grid_size=5),
    ]

    assert (tmp_path / 'landmarks.png').exists()
    assert len(plt.get_fignums()) == 3

    for fig in figures:
        plt.close(fig)
    assert len(plt.get_fignums()) == 0

    with pytest.raises(ValueError):
        plot_landmarks(create_fitted_transform())


if __name__ == '__main__':
    pytest.main([__file__])
