"""Dense sampling of kernel transforms."""

from kernelwarp.deformation.field import make_grid, compute_displacement_field

__all__ = [
    'make_grid',
    'compute_displacement_field',
]
