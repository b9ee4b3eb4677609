#!/usr/bin/env python3
"""
QR Extruder Demo Script

This script demonstrates the full QR-to-STL pipeline by:
1. Creating synthetic QR-like test images (no external images needed)
2. Running detection, sampling and meshing
3. Exporting binary and ASCII STL
4. Printing statistics

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import numpy as np
import time

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from qr_extruder import QRExtruder
from qr_extruder.mesher import CellMesher, unmatched_edges
from qr_extruder.sampler import OccupancyGrid


def _finder_pattern(modules: np.ndarray, col: int, row: int):
    """Draw a 7x7 QR finder pattern with its top-left corner at (col, row)."""
    modules[row:row + 7, col:col + 7] = True
    modules[row + 1:row + 6, col + 1:col + 6] = False
    modules[row + 2:row + 5, col + 2:col + 5] = True


def create_test_qr(
    modules_per_side: int = 21,
    module_px: int = 8,
    quiet_zone: int = 4,
    seed: int = 0,
    dark=(0, 0, 0),
    light=(255, 255, 255)
) -> np.ndarray:
    """
    Create a QR-looking test image: finder patterns plus random data modules.

    Returns:
        RGB array of shape (H, W, 3)
    """
    rng = np.random.default_rng(seed)
    modules = rng.random((modules_per_side, modules_per_side)) < 0.5

    last = modules_per_side - 7
    for col, row in [(0, 0), (last, 0), (0, last)]:
        # Separator ring around each finder
        r0, c0 = max(row - 1, 0), max(col - 1, 0)
        modules[r0:row + 8, c0:col + 8] = False
        _finder_pattern(modules, col, row)

    padded = np.pad(modules, quiet_zone, constant_values=False)
    pixels = np.kron(padded, np.ones((module_px, module_px), dtype=bool))

    rgb = np.empty(pixels.shape + (3,), dtype=np.uint8)
    rgb[pixels] = dark
    rgb[~pixels] = light
    return rgb


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("QR Extruder - Demo")
    print("=" * 60)
    print()

    # Create output directory
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    test_codes = [
        ("version1_black", create_test_qr(21, 8), "black"),
        ("version1_white", create_test_qr(21, 8), "white"),
        ("version4_navy", create_test_qr(33, 6, dark=(0, 0, 128), light=(245, 245, 220)), "navy"),
    ]

    total_start = time.time()

    for name, rgb, raised in test_codes:
        print(f"\n--- Processing: {name} ---")
        print(f"Input size: {rgb.shape[1]}x{rgb.shape[0]} pixels")

        code_start = time.time()

        extruder = QRExtruder(height=0.05, scale=1.0, grayscale=False)
        extruder.load_array(rgb)
        extruder.detect_colors()
        print(f"  Colors: {' and '.join(extruder.colors.names)}, raising {raised}")

        extruder.choose_raised_color(raised)
        module_px = 8 if name.startswith("version1") else 6
        extruder.sample(module_px)

        mesh_start = time.time()
        extruder.generate_mesh()
        mesh_time = time.time() - mesh_start

        stats = extruder.get_mesh_stats()
        print(f"  Grid: {stats['grid_size'][0]}x{stats['grid_size'][1]}, "
              f"{stats['raised_cells']} raised")
        print(f"  Mesh generation: {mesh_time*1000:.1f}ms")
        print(f"  Triangles: {stats['triangles']} "
              f"({stats['triangle_reduction_percent']:.1f}% fewer than isolated blocks)")
        print(f"  Unmatched edges: {stats['unmatched_edges']}")

        base_path = output_dir / name
        try:
            path = extruder.export_stl(base_path.with_suffix(".stl"), overwrite=True)
            print(f"  Saved: {path}")
            path = extruder.export_stl(
                base_path.with_name(name + "_ascii.stl"), binary=False, overwrite=True
            )
            print(f"  Saved: {path}")
        except Exception as e:
            print(f"  STL export failed: {e}")

        print(f"  Total time: {(time.time() - code_start)*1000:.1f}ms")

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)

    return 0


def benchmark_meshing():
    """Benchmark meshing on checkerboard and solid grids."""
    print("\n--- Meshing Benchmark ---\n")

    mesher = CellMesher()

    for size in [32, 64, 128, 256]:
        checker = (np.add.outer(np.arange(size), np.arange(size)) % 2).astype(bool)
        solid = np.ones((size, size), dtype=bool)

        for label, cells in [("checker", checker), ("solid", solid)]:
            grid = OccupancyGrid(cells)
            start = time.time()
            mesh = mesher.mesh(grid)
            elapsed = time.time() - start
            print(f"{label:8s} {size}x{size}: {elapsed*1000:.1f}ms, "
                  f"{mesh.triangle_count} triangles, "
                  f"{unmatched_edges(mesh)} unmatched edges")
        print()


if __name__ == "__main__":
    run_demo()

    # Uncomment to run benchmark
    # benchmark_meshing()
