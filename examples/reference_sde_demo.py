#!/usr/bin/env python
"""
Reference SDE Demo

Propagates the density of a classical SDE with DTQ and compares it with the
closed-form density at the terminal time.

Usage:
    python reference_sde_demo.py [--sde brownian|ou|gbm] [--T 1.0] [--h 0.01]

Outputs saved to: outputs/reference_sde/
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
import argparse

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pydtq
from pydtq.reference import (
    make_sde, brownian_density, ornstein_uhlenbeck_density, geometric_brownian_density
)
from pydtq.plotting import plot_density, plot_density_heatmap, plot_mass
from pydtq.utils import relative_error


def main():
    parser = argparse.ArgumentParser(description="Reference SDE Demo")
    parser.add_argument("--sde", choices=["brownian", "ou", "gbm"], default="ou",
                        help="Reference SDE (default: ou)")
    parser.add_argument("--x0", type=float, default=1.0,
                        help="Starting point (default: 1.0)")
    parser.add_argument("--T", type=float, default=1.0,
                        help="Horizon (default: 1.0)")
    parser.add_argument("--h", type=float, default=0.01,
                        help="Time step (default: 0.01)")
    parser.add_argument("--veclen", type=int, default=321,
                        help="Grid points (default: 321)")
    parser.add_argument("--n-workers", type=int, default=1,
                        help="Threads per step (default: 1)")
    parser.add_argument("--output-dir", type=str, default="outputs/reference_sde",
                        help="Output directory")
    args = parser.parse_args()
    
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    
    print("=" * 60)
    print("pydtq Reference SDE Demo")
    print("=" * 60)
    
    # SDE and grid
    mu, sigma, theta = 0.0, 1.0, 1.0
    if args.sde == "gbm":
        mu, sigma = 0.1, 0.3
        a, b = 0.01, 4.0
    else:
        a, b = -4.0, 4.0
    drift, diffusion = make_sde(args.sde, mu=mu, sigma=sigma, theta=theta)
    
    print(f"\n1. SDE: {args.sde}, x0 = {args.x0}, T = {args.T}, h = {args.h}")
    print(f"   - Grid: {args.veclen} points on [{a}, {b}]")
    
    # Propagate
    print("\n2. Propagating density...")
    result = pydtq.propagate_bounded(
        args.h, a, b, args.veclen, [args.x0], args.T, drift, diffusion,
        n_workers=args.n_workers,
        record_history=True,
        verbose=True
    )
    
    diag = result.diagnostics
    print(f"   - {diag.n_steps} steps, {diag.kernel_evaluations} kernel evaluations "
          f"({diag.kernel_evaluations / max(1, diag.n_transitions) / args.veclen:.1f} per row)")
    print(f"   - Mass lost through the grid ends: {diag.mass_loss:.2e}")
    
    # Compare with exact density
    if args.sde == "brownian":
        exact = brownian_density(result.grid, args.x0, args.T, mu=mu, sigma=sigma)
    elif args.sde == "ou":
        exact = ornstein_uhlenbeck_density(result.grid, args.x0, args.T, theta=theta, mu=mu, sigma=sigma)
    else:
        exact = geometric_brownian_density(result.grid, args.x0, args.T, mu=mu, sigma=sigma)
    
    err = relative_error(result.density, exact)
    l1 = np.sum(np.abs(result.density - exact)) * result.k
    print(f"\n3. Accuracy vs exact density:")
    print(f"   - Max relative error: {err:.3e}")
    print(f"   - L1 error: {l1:.3e}")
    
    # Save plots
    print(f"\n4. Saving plots to {output_dir}/...")
    
    fig, ax = plt.subplots(figsize=(7, 4))
    plot_density(result, reference=exact, ax=ax)
    fig.savefig(output_dir / f"{args.sde}_density.png", dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"   - Saved {args.sde}_density.png")
    
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    plot_density_heatmap(result, ax=axes[0])
    plot_mass(result, ax=axes[1])
    fig.tight_layout()
    fig.savefig(output_dir / f"{args.sde}_history.png", dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"   - Saved {args.sde}_history.png")
    
    # Save result
    result.save(output_dir / f"{args.sde}_result.npz")
    print(f"   - Saved {args.sde}_result.npz")
    
    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
