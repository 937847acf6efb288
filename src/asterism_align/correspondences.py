"""Turn inlier triangle matches into one-to-one point correspondences."""

from typing import NamedTuple

import numpy as np
from skimage.transform import SimilarityTransform


class Correspondences(NamedTuple):
    """Matched control points, ordered by source index."""

    pairs: np.ndarray  # (K, 2) of (source_index, target_index)
    source_points: np.ndarray  # (K, 2)
    target_points: np.ndarray  # (K, 2)


def resolve_correspondences(
    inlier_matches: np.ndarray,
    source_points: np.ndarray,
    target_points: np.ndarray,
    transform: SimilarityTransform,
) -> Correspondences:
    """Flatten inlier triangles into unique point pairs.

    When triangles disagree on the partner of a source point, the pair with
    the lowest residual under `transform` wins. Ties keep the pair seen first
    in (source, target) index order.

    Args:
        inlier_matches: Inlier candidates (N, 3, 2)
        source_points: Source control points (S, 2)
        target_points: Target control points (T, 2)
        transform: Final fitted transform

    Returns:
        Correspondences with at most one pair per source index

    Example:
        >>> pts = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        >>> t = SimilarityTransform()
        >>> m = np.array([[[0, 0], [1, 1], [2, 2]], [[0, 1], [1, 1], [2, 2]]])
        >>> resolve_correspondences(m, pts, pts, t).pairs.tolist()
        [[0, 0], [1, 1], [2, 2]]
    """
    source_points = np.asarray(source_points, dtype=float)
    target_points = np.asarray(target_points, dtype=float)

    flat = np.asarray(inlier_matches, dtype=int).reshape(-1, 2)

    best = {}
    if len(flat):
        unique_pairs = np.unique(flat, axis=0)
        errors = transform.residuals(
            source_points[unique_pairs[:, 0]], target_points[unique_pairs[:, 1]]
        )
        for (source_idx, target_idx), error in zip(unique_pairs.tolist(), errors):
            if source_idx not in best or error < best[source_idx][1]:
                best[source_idx] = (target_idx, error)

    pairs = np.array(
        [(s, t) for s, (t, _) in sorted(best.items())], dtype=int
    ).reshape(-1, 2)

    return Correspondences(
        pairs=pairs,
        source_points=source_points[pairs[:, 0]],
        target_points=target_points[pairs[:, 1]],
    )
