"""
Load fitted transforms and landmark lists.
"""

import numpy as np
import yaml
from pathlib import Path
from typing import Dict, Any

from kernelwarp.core.transform import KernelTransform
from kernelwarp.landmarks.store import as_points


def transform_from_dict(data: Dict[str, Any]) -> KernelTransform:
    """
    Rebuild a transform from the dictionary written by `save_transform`.
    
    Args:
        data: Settings and flat parameter vectors
        
    Returns:
        KernelTransform with its landmarks restored (not yet fitted)
    """
    for key in ['dimension', 'kernel', 'parameters', 'fixed_parameters']:
        if key not in data:
            raise ValueError(f"Missing required transform field: {key}")
    
    poisson_ratio = data.get('poisson_ratio')
    if poisson_ratio is not None and np.isnan(poisson_ratio):
        poisson_ratio = None
    
    transform = KernelTransform(
        kernel=str(data['kernel']),
        dimension=int(data['dimension']),
        stiffness=float(data.get('stiffness', 0.0)),
        poisson_ratio=None if poisson_ratio is None else float(poisson_ratio),
        kernel_space=str(data.get('kernel_space', 'source')),
        inversion_method=str(data.get('inversion_method', 'auto')),
    )
    transform.set_fixed_parameters(np.asarray(data['fixed_parameters'], dtype=np.float64))
    transform.set_parameters(np.asarray(data['parameters'], dtype=np.float64))
    
    return transform


def load_transform(path: str) -> KernelTransform:
    """
    Load a transform saved with `save_transform`.
    
    Args:
        path: Path to .npz or .yaml/.yml file
        
    Returns:
        KernelTransform
        
    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If the file format is not supported
    """
    path = Path(path)
    
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    
    if path.suffix.lower() in ['.yaml', '.yml']:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    elif path.suffix.lower() == '.npz':
        with np.load(path, allow_pickle=False) as npz:
            data = {key: npz[key] for key in npz.files}
        for key in ['dimension', 'kernel', 'stiffness', 'poisson_ratio',
                    'kernel_space', 'inversion_method']:
            if key in data:
                data[key] = data[key].item()
    else:
        raise ValueError(f"Unsupported transform format: {path.suffix}")
    
    return transform_from_dict(data)


def load_landmarks(path: str, dimension: int) -> np.ndarray:
    """
    Load a whitespace-separated point list, one point per row.
    
    Args:
        path: Path to text file
        dimension: Expected spatial dimension D
        
    Returns:
        points: (N, D) array
    """
    path = Path(path)
    
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    
    points = np.loadtxt(path, dtype=np.float64, ndmin=2)
    return as_points(points, dimension)
