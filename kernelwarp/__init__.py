"""
kernelwarp: Landmark-driven kernel spline transforms

Fits a vector-valued spline mapping source landmarks onto target landmarks
and evaluates it, together with its parameter Jacobian, at arbitrary points.
"""

__version__ = "0.1.0"

from kernelwarp.core.transform import KernelTransform
from kernelwarp.core.config import TransformConfig
from kernelwarp.landmarks.store import LandmarkMismatchError

__all__ = ["KernelTransform", "TransformConfig", "LandmarkMismatchError", "__version__"]
