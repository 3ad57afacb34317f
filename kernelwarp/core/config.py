"""
Configuration system for kernelwarp.

YAML-loadable dataclass describing a kernel transform.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any
import yaml
from pathlib import Path

from kernelwarp.kernels.splines import KERNELS
from kernelwarp.system.solver import INVERSION_METHODS


KERNEL_SPACES = ('source', 'target')


@dataclass
class TransformConfig:
    """Kernel transform configuration."""
    dimension: int = 3
    kernel: str = 'thin_plate'  # see kernelwarp.kernels.KERNELS
    stiffness: float = 0.0  # 0 = exact interpolation
    poisson_ratio: float = 0.3  # elastic-body kernels only
    kernel_space: str = 'source'  # landmarks K is evaluated on: 'source' or 'target'
    inversion_method: str = 'auto'  # 'auto', 'direct' or 'svd'
    verbose: bool = False

    def validate(self) -> None:
        """Raise ValueError on unknown or out-of-range settings."""
        if self.dimension < 1:
            raise ValueError(f"Invalid dimension: {self.dimension}")
        if self.kernel not in KERNELS:
            raise ValueError(f"Unknown kernel: {self.kernel}")
        if self.kernel_space not in KERNEL_SPACES:
            raise ValueError(f"Unknown kernel space: {self.kernel_space}")
        if self.inversion_method not in INVERSION_METHODS:
            raise ValueError(f"Unknown inversion method: {self.inversion_method}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransformConfig':
        """Build a configuration from a plain dictionary."""
        config = cls(**data)
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: str) -> 'TransformConfig':
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML config file

        Returns:
            TransformConfig instance
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def to_yaml(self, path: str) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Output path
        """
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def create_default_config() -> TransformConfig:
    """Create default configuration."""
    return TransformConfig()
