"""Similarity transform fitting over triangle correspondences.

The least-squares estimator is scikit-image's ``SimilarityTransform``
(uniform scale, rotation, translation). This module feeds it point pairs
flattened out of triangle matches and scores triangles by their worst vertex.
"""

import numpy as np
from skimage.transform import SimilarityTransform, estimate_transform as _estimate

# Shape of a triangle correspondence array: (N, 3, 2) with
# data[n, vertex] = (source_index, target_index)
PAIR_AXIS = 2


def estimate_transform(
    source_points: np.ndarray,
    target_points: np.ndarray,
) -> SimilarityTransform:
    """Estimate the similarity transform mapping source points onto targets.

    Args:
        source_points: Source coordinates (N, 2)
        target_points: Corresponding target coordinates (N, 2)

    Returns:
        Fitted SimilarityTransform

    Raises:
        ValueError: If the arrays do not pair up or the fit is degenerate

    Example:
        >>> src = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        >>> t = estimate_transform(src, src * 2 + 5)
        >>> round(t.scale, 6)
        2.0
    """
    source_points = np.asarray(source_points, dtype=float)
    target_points = np.asarray(target_points, dtype=float)

    if source_points.ndim != 2 or source_points.shape[1] != 2:
        raise ValueError(f"Expected (N, 2) source points, got {source_points.shape}")
    if source_points.shape != target_points.shape:
        raise ValueError(
            f"Point arrays differ in shape: {source_points.shape} "
            f"vs {target_points.shape}"
        )
    if len(source_points) < 2:
        raise ValueError("At least two point pairs are needed for a similarity fit")

    tform = _estimate("similarity", source_points, target_points)

    if not tform or not np.all(np.isfinite(tform.params)):
        raise ValueError("Similarity fit is degenerate for the given points")

    return tform


def matrix_transform(points: np.ndarray, transform: SimilarityTransform) -> np.ndarray:
    """Apply a fitted transform to points.

    Args:
        points: Coordinates (N, 2) or a single point (2,)
        transform: Fitted SimilarityTransform

    Returns:
        Transformed coordinates with the same shape as `points`
    """
    points = np.asarray(points, dtype=float)
    single = points.ndim == 1
    result = transform(np.atleast_2d(points))
    return result[0] if single else result


def transform_parameters(transform: SimilarityTransform) -> dict:
    """Summarize a transform as scale, rotation (radians) and translation."""
    return {
        "scale": float(transform.scale),
        "rotation": float(transform.rotation),
        "translation": np.asarray(transform.translation, dtype=float),
    }


class MatchTransform:
    """Fit and score transforms from triangle correspondences.

    Correspondences are arrays of shape (N, 3, 2): N matched triangles, each
    with three (source_index, target_index) vertex pairs.
    """

    def __init__(self, source: np.ndarray, target: np.ndarray):
        """Bind the control points the indices refer to.

        Args:
            source: Source control points (S, 2)
            target: Target control points (T, 2)
        """
        self.source = np.asarray(source, dtype=float)
        self.target = np.asarray(target, dtype=float)

    def _pairs(self, data: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        flat = np.asarray(data, dtype=int).reshape(-1, PAIR_AXIS)
        return self.source[flat[:, 0]], self.target[flat[:, 1]]

    def fit(self, data: np.ndarray) -> SimilarityTransform:
        """Least-squares fit over every vertex pair of the given triangles.

        Repeated pairs are kept and act as extra weight.
        """
        source_points, target_points = self._pairs(data)
        return estimate_transform(source_points, target_points)

    def get_error(self, data: np.ndarray, transform: SimilarityTransform) -> np.ndarray:
        """Worst-vertex residual of each triangle under `transform`.

        Returns:
            Array (N,) of maximum vertex residuals
        """
        data = np.asarray(data, dtype=int)
        if len(data) == 0:
            return np.empty(0, dtype=float)

        source_points, target_points = self._pairs(data)
        residuals = transform.residuals(source_points, target_points)
        return residuals.reshape(len(data), -1).max(axis=1)
