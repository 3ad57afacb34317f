"""Core transform components."""

from kernelwarp.core.config import TransformConfig, create_default_config
from kernelwarp.core.cache import SystemCache, SystemState
from kernelwarp.core.transform import KernelTransform

__all__ = [
    'TransformConfig',
    'create_default_config',
    'SystemCache',
    'SystemState',
    'KernelTransform',
]
