#!/usr/bin/env python3
"""
Demonstration of grid landmark generation.

This script shows:
1. Building landmarks over a Voronoi arrangement
2. Constant-time nearest-landmark queries
3. Incremental maintenance under local and batched edits
4. Detaching and re-attaching the generator
"""

import numpy as np
from py_landmarks.core import GridLandmarkGenerator, Point, VoronoiArrangement
from py_landmarks.utils import configure_logging


def main():
    configure_logging("INFO", "plain")

    print("=== Grid Landmark Generator Demo ===\n")

    # 1. Build an arrangement from random sites
    rng = np.random.default_rng(7)
    sites = [Point(float(x), float(y)) for x, y in rng.uniform(0, 100, size=(30, 2))]
    arr = VoronoiArrangement(sites=sites)
    print("1. Arrangement")
    print(f"   - Sites: {len(arr.sites)}")
    print(f"   - Vertices: {arr.number_of_vertices()}")
    print(f"   - Edges: {arr.number_of_edges()}")

    gen = GridLandmarkGenerator(arr)
    params = gen.grid_parameters
    print(f"   - Landmarks: {len(gen)} ({params.resolution}x{params.resolution})")
    print(f"   - Step: ({params.step_x:.2f}, {params.step_y:.2f})")

    # 2. Queries
    print("\n2. Nearest landmarks")
    for q in [Point(50, 50), Point(-10, 20), Point(99, 1)]:
        point, feature = gen.closest_landmark(q)
        print(f"   - {tuple(q)} -> ({point.x:.2f}, {point.y:.2f}) on {feature.kind.value} {feature.index}")

    # 3. Edits
    print("\n3. Edits")
    arr.add_isolated_vertex(Point(120, 120))
    print(f"   - Local edit rebuilt the grid: x_max={gen.grid_parameters.x_max:.2f}")

    with arr.global_change():
        for k in range(10):
            arr.add_isolated_vertex(Point(-5.0 * k, 3.0 * k))
        print(f"   - Inside a batch, built={gen.is_built}")
    print(f"   - After the batch, built={gen.is_built}, landmarks={len(gen)}")

    arr.insert_site(Point(42.5, 17.25))
    print(f"   - Site inserted, vertices={arr.number_of_vertices()}, landmarks={len(gen)}")

    # 4. Lifecycle
    print("\n4. Lifecycle")
    gen.detach()
    print(f"   - Detached, built={gen.is_built}")
    gen.attach(arr, 64)
    print(f"   - Re-attached with 64 landmarks, built={gen.is_built}, landmarks={len(gen)}")

    arr.close()
    print(f"   - Arrangement closed, built={gen.is_built}")


if __name__ == "__main__":
    main()
