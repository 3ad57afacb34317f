"""
Save fitted transforms and landmark lists.

Only the landmark parameters and the settings are stored; the solved
weights are recomputed on load.
"""

import numpy as np
import yaml
from pathlib import Path
from typing import Dict, Any

from kernelwarp.core.transform import KernelTransform
from kernelwarp.kernels import KERNELS


YAML_SUFFIXES = ['.yaml', '.yml']


def transform_to_dict(transform: KernelTransform) -> Dict[str, Any]:
    """
    Collect everything needed to rebuild a transform.
    
    Args:
        transform: Transform to describe
        
    Returns:
        Dictionary with settings and flat parameter vectors
    """
    kernel_name = _kernel_name(transform)
    
    return {
        'dimension': transform.dimension,
        'kernel': kernel_name,
        'stiffness': transform.stiffness,
        'poisson_ratio': transform.poisson_ratio,
        'kernel_space': transform.kernel_space,
        'inversion_method': transform.inversion_method,
        'parameters': transform.get_parameters(),
        'fixed_parameters': transform.get_fixed_parameters(),
    }


def save_transform(path: str, transform: KernelTransform) -> None:
    """
    Save a transform.
    
    Format is determined by file extension: .yaml/.yml for a readable text
    file, .npz for a numpy archive.
    
    Args:
        path: Output file path
        transform: Transform to save
        
    Raises:
        ValueError: If the extension is neither YAML nor .npz
    """
    path = Path(path)
    if path.suffix.lower() not in YAML_SUFFIXES + ['.npz']:
        raise ValueError(f"Unsupported transform format: {path.suffix}")
    path.parent.mkdir(parents=True, exist_ok=True)
    
    data = transform_to_dict(transform)
    
    if path.suffix.lower() in YAML_SUFFIXES:
        data['parameters'] = data['parameters'].tolist()
        data['fixed_parameters'] = data['fixed_parameters'].tolist()
        with open(path, 'w') as f:
            yaml.safe_dump(data, f, default_flow_style=None, sort_keys=False)
    else:
        if data['poisson_ratio'] is None:
            data['poisson_ratio'] = np.nan
        np.savez(path, **data)


def save_landmarks(path: str, points: np.ndarray) -> None:
    """Save an (N, D) point list as whitespace-separated text, one point per row."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, np.asarray(points, dtype=np.float64))


def _kernel_name(transform: KernelTransform) -> str:
    for name, kernel_cls in KERNELS.items():
        if type(transform.kernel) is kernel_cls:
            return name
    raise ValueError(f"Cannot save custom kernel: {transform.kernel!r}")
