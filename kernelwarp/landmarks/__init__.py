"""Landmark storage and flat parameter conversion."""

from kernelwarp.landmarks.store import LandmarkStore, LandmarkMismatchError, as_points
from kernelwarp.landmarks.parameters import points_to_parameters, parameters_to_points

__all__ = [
    'LandmarkStore',
    'LandmarkMismatchError',
    'as_points',
    'points_to_parameters',
    'parameters_to_points',
]
