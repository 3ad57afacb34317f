"""Spline kernel families."""

from kernelwarp.kernels.base import SplineKernel
from kernelwarp.kernels.splines import (
    ThinPlateSplineKernel,
    ThinPlateR2LogRSplineKernel,
    VolumeSplineKernel,
    ElasticBodySplineKernel,
    ElasticBodyReciprocalSplineKernel,
    create_kernel,
    KERNELS,
)

__all__ = [
    'SplineKernel',
    'ThinPlateSplineKernel',
    'ThinPlateR2LogRSplineKernel',
    'VolumeSplineKernel',
    'ElasticBodySplineKernel',
    'ElasticBodyReciprocalSplineKernel',
    'create_kernel',
    'KERNELS',
]
