#!/usr/bin/env python
"""
Boundary Leakage Demo

Shows how much probability leaves a narrow grid when the drift pushes the
density toward one end. DTQ does not renormalize, so the lost mass is
visible directly in Σ p k.

Usage:
    python boundary_leakage_demo.py [--drift 2.0] [--b 1.0]

Outputs saved to: outputs/boundary_leakage/
"""

import numpy as np
import matplotlib.pyplot as plt
from scipy.integrate import trapezoid
from pathlib import Path
import argparse

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pydtq
from pydtq.density import compute_total_mass
from pydtq.reference import brownian_density


def main():
    parser = argparse.ArgumentParser(description="Boundary Leakage Demo")
    parser.add_argument("--drift", type=float, default=2.0,
                        help="Constant drift (default: 2.0)")
    parser.add_argument("--sigma", type=float, default=0.5,
                        help="Constant diffusion (default: 0.5)")
    parser.add_argument("--b", type=float, default=1.0,
                        help="Upper grid bound; the grid is [-b, b] (default: 1.0)")
    parser.add_argument("--T", type=float, default=0.5,
                        help="Horizon (default: 0.5)")
    parser.add_argument("--output-dir", type=str, default="outputs/boundary_leakage",
                        help="Output directory")
    args = parser.parse_args()
    
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    
    print("=" * 60)
    print("pydtq Boundary Leakage Demo")
    print("=" * 60)
    
    h, x0 = 0.01, 0.0
    veclen = int(round(2 * args.b / 0.05)) + 1
    
    result = pydtq.propagate_bounded(
        h, -args.b, args.b, veclen, [x0], args.T,
        lambda x: args.drift, lambda x: args.sigma,
        record_history=True
    )
    
    masses = np.array([
        compute_total_mass(result.history[:, n], result.k)
        for n in range(result.history.shape[1])
    ])
    
    # Mass the exact (unbounded) density keeps inside [-b, b]
    x_wide = np.linspace(-args.b, args.b, 2001)
    inside = np.array([
        trapezoid(brownian_density(x_wide, x0, t, mu=args.drift, sigma=args.sigma), x_wide)
        for t in result.time_values
    ])
    
    print(f"\nGrid [-{args.b}, {args.b}], {veclen} points, drift = {args.drift}")
    print(f"{'t':>8} {'DTQ mass':>12} {'exact inside':>14}")
    for n in range(0, len(masses), max(1, len(masses) // 10)):
        print(f"{result.time_values[n]:8.3f} {masses[n]:12.6f} {inside[n]:14.6f}")
    print(f"{result.time_values[-1]:8.3f} {masses[-1]:12.6f} {inside[-1]:14.6f}")
    
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.plot(result.time_values, masses, 'b-', lw=2, label='DTQ Σ p k')
    ax.plot(result.time_values, inside, 'r--', lw=1.5, label='Exact mass in grid')
    ax.set_xlabel('Time')
    ax.set_ylabel('Mass')
    ax.set_title('Mass leaving the grid')
    ax.legend()
    fig.savefig(output_dir / "mass_leakage.png", dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"\nSaved {output_dir / 'mass_leakage.png'}")


if __name__ == "__main__":
    main()
