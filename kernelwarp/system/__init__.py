"""Linear system assembly and solution for kernel transforms."""

from kernelwarp.system.assembly import (
    compute_k,
    compute_p,
    compute_l,
    compute_y,
    compute_l_derivative,
)
from kernelwarp.system.solver import (
    SINGULAR_VALUE_RTOL,
    invert_system,
    pseudo_inverse,
    reorganize_w,
    SplineWeights,
)

__all__ = [
    'compute_k',
    'compute_p',
    'compute_l',
    'compute_y',
    'compute_l_derivative',
    'SINGULAR_VALUE_RTOL',
    'invert_system',
    'pseudo_inverse',
    'reorganize_w',
    'SplineWeights',
]
