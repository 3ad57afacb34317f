"""I/O utilities for fitted transforms and landmark lists."""

from kernelwarp.io.loaders import load_transform, load_landmarks
from kernelwarp.io.savers import save_transform, save_landmarks

__all__ = [
    'load_transform',
    'load_landmarks',
    'save_transform',
    'save_landmarks',
]
