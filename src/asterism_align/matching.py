"""Cross-matching of triangle invariants between two point sets.

Descriptors of the target set go into a KD-tree; every source descriptor
collects the target descriptors within a fixed radius. Each hit pairs the two
canonical triangles vertex by vertex.
"""

import logging

import numpy as np
from scipy.spatial import cKDTree

from asterism_align.config import MATCH_RADIUS, MAX_MIN_MATCHES, MIN_MATCHES_FRACTION

logger = logging.getLogger(__name__)


def match_invariants(
    source_invariants: np.ndarray,
    source_triangles: np.ndarray,
    target_invariants: np.ndarray,
    target_triangles: np.ndarray,
    radius: float = MATCH_RADIUS,
) -> np.ndarray:
    """Pair source and target triangles with similar descriptors.

    Candidates are not deduplicated; repeated or conflicting pairings are
    settled by the robust estimator and the correspondence resolver.

    Args:
        source_invariants: Source descriptors (M, 2)
        source_triangles: Canonical source triangles (M, 3)
        target_invariants: Target descriptors (K, 2)
        target_triangles: Canonical target triangles (K, 3)
        radius: Search radius in descriptor space (default: 0.1)

    Returns:
        Integer array (N, 3, 2) of candidates; candidate[n, v] holds the
        (source_index, target_index) pair for vertex position v

    Example:
        >>> inv = np.array([[1.5, 1.2]])
        >>> tri = np.array([[0, 1, 2]])
        >>> match_invariants(inv, tri, inv, tri + 10).tolist()
        [[[0, 10], [1, 11], [2, 12]]]
    """
    source_triangles = np.asarray(source_triangles, dtype=int)
    target_triangles = np.asarray(target_triangles, dtype=int)

    if len(source_invariants) == 0 or len(target_invariants) == 0:
        return np.empty((0, 3, 2), dtype=int)

    target_tree = cKDTree(target_invariants)
    matches_list = target_tree.query_ball_point(source_invariants, r=radius)

    matches = []
    for source_triangle, target_hits in zip(source_triangles, matches_list):
        for target_index in target_hits:
            target_triangle = target_triangles[target_index]
            matches.append(np.stack([source_triangle, target_triangle], axis=1))

    logger.debug(
        "Matched %d source against %d target invariants: %d candidates",
        len(source_invariants),
        len(target_invariants),
        len(matches),
    )

    if not matches:
        return np.empty((0, 3, 2), dtype=int)

    return np.array(matches, dtype=int)


def compute_min_matches(
    n_candidates: int,
    fraction: float = MIN_MATCHES_FRACTION,
    maximum: int = MAX_MIN_MATCHES,
) -> int:
    """Consensus size required by the robust estimator.

    Computed as floor(n_candidates * fraction), clamped to [1, maximum].

    Example:
        >>> compute_min_matches(5), compute_min_matches(1000)
        (4, 10)
    """
    return max(1, min(maximum, int(np.floor(n_candidates * fraction))))
