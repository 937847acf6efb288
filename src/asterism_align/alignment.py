"""Find the similarity transform between two star fields.

This module ties the pipeline together: inputs are resolved once into
control points, triangle invariants are generated and cross-matched, RANSAC
settles on one transform, and the inlier triangles are reduced to unique
point correspondences.

Example:
    >>> rng = np.random.default_rng(1)
    >>> source = rng.random((20, 2)) * 500
    >>> target = source * 1.2 + np.array([30.0, -15.0])
    >>> transform, (src_pts, dst_pts) = find_transform(source, target, rng=rng)
    >>> round(transform.scale, 6)
    1.2
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from skimage.transform import SimilarityTransform

from asterism_align.config import (
    DETECTION_SIGMA,
    MAX_CONTROL_POINTS,
    MIN_AREA,
    MIN_CONTROL_POINTS,
    MatchingParameters,
)
from asterism_align.correspondences import resolve_correspondences
from asterism_align.detection import find_sources
from asterism_align.exceptions import InputTypeError, InsufficientPointsError
from asterism_align.invariants import generate_invariants
from asterism_align.matching import compute_min_matches, match_invariants
from asterism_align.ransac import RandomSource, ransac
from asterism_align.transform import MatchTransform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoordinateList:
    """Control points given directly as an (N, 2) array of (x, y)."""

    points: np.ndarray


@dataclass(frozen=True)
class ImageData:
    """Raw image, grayscale (H, W) or color (H, W, 3|4)."""

    pixels: np.ndarray


ControlInput = Union[CoordinateList, ImageData]


def as_control_input(obj, name: str = "input") -> ControlInput:
    """Classify an input as a coordinate list or an image.

    A two-column 2D array is a coordinate list; any other 2D array, or a 3D
    array with 3 or 4 channels, is an image.

    Args:
        obj: CoordinateList, ImageData or array-like
        name: Label used in error messages ("source" / "target")

    Returns:
        CoordinateList or ImageData

    Raises:
        InputTypeError: If the input has neither shape or is not numeric
    """
    if isinstance(obj, (CoordinateList, ImageData)):
        return obj

    try:
        array = np.asarray(obj, dtype=float)
    except (TypeError, ValueError) as err:
        raise InputTypeError(f"Input type for {name} not supported.") from err

    if array.ndim == 2 and array.shape[1] == 2:
        if not np.all(np.isfinite(array)):
            raise InputTypeError(f"Coordinates for {name} contain non-finite values.")
        return CoordinateList(array)

    if array.ndim == 2 and array.size > 0:
        return ImageData(array)

    if array.ndim == 3 and array.shape[2] in (3, 4):
        return ImageData(np.asarray(obj))

    raise InputTypeError(f"Input type for {name} not supported.")


def control_points(
    control_input: ControlInput,
    max_control_points: int = MAX_CONTROL_POINTS,
    detection_sigma: float = DETECTION_SIGMA,
    min_area: int = MIN_AREA,
) -> np.ndarray:
    """Extract up to `max_control_points` control points from an input."""
    if isinstance(control_input, CoordinateList):
        return np.asarray(control_input.points, dtype=float)[:max_control_points]

    return find_sources(
        control_input.pixels,
        detection_sigma=detection_sigma,
        min_area=min_area,
        max_control_points=max_control_points,
    )


def find_transform(
    source,
    target,
    max_control_points: int = MAX_CONTROL_POINTS,
    detection_sigma: float = DETECTION_SIGMA,
    min_area: int = MIN_AREA,
    params: Optional[MatchingParameters] = None,
    rng: RandomSource = None,
) -> tuple[SimilarityTransform, tuple[np.ndarray, np.ndarray]]:
    """Estimate the transform mapping source coordinates onto the target.

    Args:
        source: Source (x, y) coordinates (N, 2) or image
        target: Target (x, y) coordinates (M, 2) or image
        max_control_points: Maximum control points taken from each side
        detection_sigma: Detection threshold for image inputs, in background std
        min_area: Minimum connected pixels per source for image inputs
        params: Matching parameters (default: MatchingParameters())
        rng: numpy Generator or seed for the RANSAC visiting order

    Returns:
        Tuple of (transform, (source_matched, target_matched))
        source_matched and target_matched are (K, 2) arrays of corresponding
        control points ordered by source index.

    Raises:
        InputTypeError: If an input is neither coordinates nor an image
        InsufficientPointsError: If either side has fewer than 3 control points
        MatchExhaustionError: If no consistent transform is found
    """
    params = params or MatchingParameters()

    source_controlp = control_points(
        as_control_input(source, "source"),
        max_control_points=max_control_points,
        detection_sigma=detection_sigma,
        min_area=min_area,
    )
    target_controlp = control_points(
        as_control_input(target, "target"),
        max_control_points=max_control_points,
        detection_sigma=detection_sigma,
        min_area=min_area,
    )

    if len(source_controlp) < MIN_CONTROL_POINTS:
        raise InsufficientPointsError(
            "Reference stars in source image are less than the "
            f"minimum value ({MIN_CONTROL_POINTS})."
        )
    if len(target_controlp) < MIN_CONTROL_POINTS:
        raise InsufficientPointsError(
            "Reference stars in target image are less than the "
            f"minimum value ({MIN_CONTROL_POINTS})."
        )

    source_invariants, source_asterisms = generate_invariants(
        source_controlp, num_neighbors=params.num_neighbors
    )
    target_invariants, target_asterisms = generate_invariants(
        target_controlp, num_neighbors=params.num_neighbors
    )

    matches = match_invariants(
        source_invariants,
        source_asterisms,
        target_invariants,
        target_asterisms,
        radius=params.match_radius,
    )

    inv_model = MatchTransform(source_controlp, target_controlp)
    min_matches = compute_min_matches(
        len(matches),
        fraction=params.min_matches_fraction,
        maximum=params.max_min_matches,
    )

    logger.debug(
        "%d source / %d target control points, %d candidates, min_matches=%d",
        len(source_controlp),
        len(target_controlp),
        len(matches),
        min_matches,
    )

    best_t, inlier_ind = ransac(
        matches, inv_model, params.pixel_tol, min_matches, rng=rng
    )

    result = resolve_correspondences(
        matches[inlier_ind], source_controlp, target_controlp, best_t
    )

    logger.info(
        "Transform found: scale=%.6g rotation=%.6g rad, %d point matches",
        best_t.scale,
        best_t.rotation,
        len(result.pairs),
    )

    return best_t, (result.source_points, result.target_points)
