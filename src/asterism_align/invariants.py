"""Triangle invariants for asterism matching.

Every control point is grouped with its nearest neighbours, and each
3-combination of the group forms a candidate triangle. A triangle is
described by two side-length ratios that do not change under translation,
rotation and uniform scaling, so the same asterism photographed at a
different orientation or field of view yields the same descriptor.

Vertices are stored in a canonical order derived from the sorted side
lengths, which is what lets matched triangles be paired vertex by vertex.
"""

import logging
from itertools import combinations
from typing import Sequence

import numpy as np
from scipy.spatial import cKDTree

from asterism_align.config import MIN_CONTROL_POINTS, NUM_NEAREST_NEIGHBORS

logger = logging.getLogger(__name__)


def _squared_distance(p: np.ndarray, q: np.ndarray) -> float:
    return float((p[0] - q[0]) ** 2 + (p[1] - q[1]) ** 2)


def arrange_triplet(points: np.ndarray, vertex_indices: Sequence[int]) -> tuple:
    """Order three vertex indices by the lengths of the sides they share.

    Returns (a, b, c) where, with the sides sorted as L1 <= L2 <= L3:
    - a is the vertex shared by L1 and L2
    - b is the vertex shared by L2 and L3
    - c is the vertex shared by L3 and L1

    Sides of equal length are ordered by their (lower, higher) vertex index
    pair, so the result is the same for every permutation of the input even
    for isosceles and equilateral triangles.

    Args:
        points: Control point coordinates (N, 2)
        vertex_indices: Three distinct indices into `points`

    Returns:
        Tuple of three indices (a, b, c)

    Raises:
        ValueError: If the indices are not three distinct values

    Example:
        >>> pts = np.array([[0.0, 0.0], [3.0, 0.0], [0.0, 1.0]])
        >>> arrange_triplet(pts, (1, 2, 0))
        (0, 1, 2)
    """
    ind1, ind2, ind3 = (int(i) for i in vertex_indices)
    if len({ind1, ind2, ind3}) != 3:
        raise ValueError(f"Triangle needs three distinct vertices, got {vertex_indices}")

    sides = [(ind1, ind2), (ind2, ind3), (ind3, ind1)]
    keyed = sorted(
        (
            _squared_distance(points[i], points[j]),
            min(i, j),
            max(i, j),
        )
        for i, j in sides
    )
    l1, l2, l3 = ({i, j} for _, i, j in keyed)

    (a,) = l1 & l2
    (b,) = l2 & l3
    (c,) = l3 & l1

    return a, b, c


def invariant_features(x1: np.ndarray, x2: np.ndarray, x3: np.ndarray) -> tuple:
    """Compute the (L3/L2, L2/L1) descriptor of a triangle.

    Side lengths are compared squared and only square-rooted in the ratios.

    Args:
        x1, x2, x3: Vertex coordinates (2,)

    Returns:
        Tuple of two ratios, both >= 1

    Raises:
        ValueError: If two vertices coincide (zero-length side)
    """
    sides = sorted(
        [
            _squared_distance(x1, x2),
            _squared_distance(x2, x3),
            _squared_distance(x1, x3),
        ]
    )
    if sides[0] == 0.0:
        raise ValueError("Degenerate triangle: coincident vertices")

    return float(np.sqrt(sides[2] / sides[1])), float(np.sqrt(sides[1] / sides[0]))


def generate_invariants(
    points: np.ndarray,
    num_neighbors: int = NUM_NEAREST_NEIGHBORS,
) -> tuple[np.ndarray, np.ndarray]:
    """Build the unique triangle invariants of a point set.

    For each point, its `min(len(points), num_neighbors)` nearest neighbours
    (the point itself included, as its own nearest neighbour) are combined
    into triangles. Triangles rediscovered from several anchor points produce
    bit-identical descriptors; only the last occurrence of each descriptor is
    kept.

    Args:
        points: Control point coordinates (N, 2)
        num_neighbors: Neighbourhood size per point

    Returns:
        Tuple of (invariants, triangles)
        invariants: Array (M, 2) of descriptors
        triangles: Integer array (M, 3) of canonical vertex indices
        Both are empty when fewer than 3 points are given.

    Raises:
        ValueError: If num_neighbors is less than 3

    Example:
        >>> rng = np.random.default_rng(0)
        >>> inv, tri = generate_invariants(rng.random((10, 2)) * 100)
        >>> inv.shape[0] == tri.shape[0]
        True
    """
    if num_neighbors < MIN_CONTROL_POINTS:
        raise ValueError(
            f"num_neighbors must be at least {MIN_CONTROL_POINTS}, got {num_neighbors}"
        )

    points = np.asarray(points, dtype=float)
    empty = np.empty((0, 2), dtype=float), np.empty((0, 3), dtype=int)

    if len(points) < MIN_CONTROL_POINTS:
        return empty

    tree = cKDTree(points)
    knn = min(len(points), num_neighbors)
    _, neighbor_indices = tree.query(points, k=knn)

    invariants = []
    triangles = []
    skipped = 0

    for indices in neighbor_indices:
        for vertex_indices in combinations(indices, 3):
            try:
                triplet = arrange_triplet(points, vertex_indices)
                features = invariant_features(*points[list(triplet)])
            except ValueError:
                # Coincident points cannot form a triangle
                skipped += 1
                continue
            triangles.append(triplet)
            invariants.append(features)

    # Keep the last occurrence of every exact descriptor value
    last_position = {}
    for pos, features in enumerate(invariants):
        last_position[features] = pos
    unique_positions = sorted(last_position.values())

    logger.debug(
        "Generated %d unique invariants from %d triangles (%d degenerate skipped)",
        len(unique_positions),
        len(invariants),
        skipped,
    )

    if not unique_positions:
        return empty

    return (
        np.array([invariants[i] for i in unique_positions], dtype=float),
        np.array([triangles[i] for i in unique_positions], dtype=int),
    )
