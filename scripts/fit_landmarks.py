#!/usr/bin/env python3
"""
Command-line script for fitting a kernel spline transform to landmarks.

Example usage:
    python fit_landmarks.py \\
        --source source.txt \\
        --target target.txt \\
        --config configs/default.yaml \\
        --kernel thin_plate \\
        --stiffness 0.01 \\
        --output transform.yaml \\
        --plot grid.png
"""

import argparse
from pathlib import Path
import matplotlib.pyplot as plt

from kernelwarp.core import KernelTransform, TransformConfig
from kernelwarp.evaluation import landmark_residuals, bending_energy
from kernelwarp.io import load_landmarks, save_transform
from kernelwarp.kernels import KERNELS
from kernelwarp.visualization import plot_deformed_grid


def main():
    parser = argparse.ArgumentParser(
        description='kernelwarp: Fit a kernel spline transform to landmark pairs',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    
    # Required arguments
    parser.add_argument('--source', required=True, help='Source landmarks, one point per row')
    parser.add_argument('--target', required=True, help='Target landmarks, one point per row')
    
    # Output arguments
    parser.add_argument('--output', help='Path to save the transform (.npz or .yaml)')
    
    # Configuration
    parser.add_argument('--config', default='configs/default.yaml',
                       help='Path to YAML configuration file')
    
    # Override options
    parser.add_argument('--dimension', type=int, help='Spatial dimension')
    parser.add_argument('--kernel', choices=sorted(KERNELS), help='Spline kernel')
    parser.add_argument('--stiffness', type=float, help='Spline stiffness (0 = interpolate)')
    parser.add_argument('--poisson-ratio', type=float, help='Poisson ratio (elastic-body kernels)')
    parser.add_argument('--inversion-method', choices=['auto', 'direct', 'svd'],
                       help='How to invert the system matrix')
    
    # Visualization
    parser.add_argument('--plot', help='Save a deformed-grid plot here (2D only)')
    
    # Verbosity
    parser.add_argument('--quiet', action='store_true', help='Suppress output')
    
    args = parser.parse_args()
    
    # Load configuration
    if Path(args.config).exists():
        config = TransformConfig.from_yaml(args.config)
    else:
        if not args.quiet:
            print(f"Warning: Config file {args.config} not found, using defaults")
        config = TransformConfig()
    
    # Apply command-line overrides
    if args.dimension is not None:
        config.dimension = args.dimension
    if args.kernel is not None:
        config.kernel = args.kernel
    if args.stiffness is not None:
        config.stiffness = args.stiffness
    if args.poisson_ratio is not None:
        config.poisson_ratio = args.poisson_ratio
    if args.inversion_method is not None:
        config.inversion_method = args.inversion_method
    config.verbose = not args.quiet
    
    transform = KernelTransform.from_config(config)
    
    # Load landmarks
    source = load_landmarks(args.source, config.dimension)
    target = load_landmarks(args.target, config.dimension)
    if not args.quiet:
        print(f"Loaded {len(source)} source and {len(target)} target landmarks")
    
    transform.set_source_landmarks(source)
    transform.set_target_landmarks(target)
    transform.compute_w_matrix()
    
    # Save transform if requested
    if args.output:
        if not args.quiet:
            print(f"Saving transform to: {args.output}")
        save_transform(args.output, transform)
    
    # Print statistics
    if not args.quiet:
        stats = landmark_residuals(transform)
        print("\n" + "="*60)
        print("Fit Statistics:")
        print("="*60)
        print(f"  - Landmarks: {stats['num_landmarks']}")
        print(f"  - Mean residual: {stats['mean']:.6f}")
        print(f"  - Max residual: {stats['max']:.6f}")
        print(f"  - Bending energy: {bending_energy(transform):.6f}")
        print(f"  - Affine matrix:\n{transform.affine_matrix}")
        print(f"  - Translation: {transform.translation}")
    
    if args.plot:
        fig = plot_deformed_grid(transform, save_path=args.plot)
        plt.close(fig)
        if not args.quiet:
            print(f"  - Saved: {args.plot}")


if __name__ == '__main__':
    main()
