"""Rendering of control points and recovered correspondences.

Helpers draw onto RGB canvases with OpenCV so alignment results can be
inspected by eye: target points, transformed source points, and the lines
joining matched pairs.
"""

from typing import Optional

import cv2
import numpy as np
from skimage.transform import SimilarityTransform

from asterism_align.transform import matrix_transform


def _in_bounds(canvas: np.ndarray, x: int, y: int) -> bool:
    return 0 <= x < canvas.shape[1] and 0 <= y < canvas.shape[0]


def draw_control_points(
    canvas: np.ndarray,
    points: np.ndarray,
    color: tuple[int, int, int] = (255, 255, 255),
    radius: int = 4,
    marker: Optional[int] = None,
) -> np.ndarray:
    """Draw control points as filled circles or OpenCV markers.

    Args:
        canvas: Image to draw on (H, W, 3)
        points: Point positions in image coordinates (N, 2)
        color: RGB color
        radius: Circle radius, or half the marker size
        marker: Optional cv2.MARKER_* type; circles when None

    Returns:
        Canvas with points drawn (points outside the canvas are skipped)
    """
    for x, y in np.asarray(points, dtype=float).reshape(-1, 2):
        x_int, y_int = int(round(x)), int(round(y))

        if not _in_bounds(canvas, x_int, y_int):
            continue

        if marker is None:
            cv2.circle(canvas, (x_int, y_int), radius, color, -1)
        else:
            cv2.drawMarker(
                canvas, (x_int, y_int), color, marker, 2 * radius, 1, cv2.LINE_AA
            )

    return canvas


def draw_correspondences(
    canvas: np.ndarray,
    source_points: np.ndarray,
    target_points: np.ndarray,
    color: tuple[int, int, int] = (100, 150, 255),
    thickness: int = 1,
) -> np.ndarray:
    """Draw a line from each source point to its matched target point.

    Example:
        >>> canvas = np.zeros((100, 100, 3), dtype=np.uint8)
        >>> src = np.array([[10, 10], [50, 50]])
        >>> dst = np.array([[20, 10], [60, 55]])
        >>> result = draw_correspondences(canvas, src, dst)
    """
    source_points = np.asarray(source_points, dtype=float).reshape(-1, 2)
    target_points = np.asarray(target_points, dtype=float).reshape(-1, 2)

    if len(source_points) != len(target_points):
        raise ValueError(
            f"Got {len(source_points)} source but {len(target_points)} target points"
        )

    for start, end in zip(source_points, target_points):
        pt1 = (int(round(start[0])), int(round(start[1])))
        pt2 = (int(round(end[0])), int(round(end[1])))
        cv2.line(canvas, pt1, pt2, color, thickness, cv2.LINE_AA)

    return canvas


def create_alignment_overlay(
    image_shape: tuple[int, int, int],
    source_points: np.ndarray,
    target_points: np.ndarray,
    transform: SimilarityTransform,
    background: Optional[np.ndarray] = None,
    background_color: tuple[int, int, int] = (10, 10, 30),
    target_color: tuple[int, int, int] = (255, 255, 0),
    source_color: tuple[int, int, int] = (0, 255, 0),
    line_color: tuple[int, int, int] = (100, 150, 255),
    alpha: float = 0.9,
) -> np.ndarray:
    """Show target points next to source points mapped through `transform`.

    Target points are filled circles; transformed source points are cross
    markers, joined to their target by a line. With a good transform the
    crosses sit on the circles.

    Args:
        image_shape: Output shape (H, W, 3); ignored when `background` is given
        source_points: Matched source control points (K, 2)
        target_points: Matched target control points (K, 2)
        transform: Transform mapping source onto target coordinates
        background: Optional RGB target image drawn underneath
        background_color: RGB fill when no background is given
        target_color: RGB color for target points
        source_color: RGB color for transformed source markers
        line_color: RGB color for correspondence lines
        alpha: Weight of the point layer blended over the background

    Returns:
        Rendered RGB image
    """
    if background is not None:
        canvas = np.ascontiguousarray(background, dtype=np.uint8).copy()
        if canvas.ndim == 2:
            canvas = cv2.cvtColor(canvas, cv2.COLOR_GRAY2RGB)
    else:
        canvas = np.full(image_shape, background_color, dtype=np.uint8)

    source_points = np.asarray(source_points, dtype=float).reshape(-1, 2)
    projected = (
        matrix_transform(source_points, transform)
        if len(source_points)
        else source_points
    )

    layer = np.zeros_like(canvas)
    layer = draw_correspondences(layer, projected, target_points, color=line_color)
    layer = draw_control_points(layer, target_points, color=target_color, radius=5)

    canvas = cv2.addWeighted(canvas, 1.0, layer, alpha, 0)

    # Markers on top so they stay visible over the circles
    canvas = draw_control_points(
        canvas, projected, color=source_color, radius=6, marker=cv2.MARKER_CROSS
    )

    return canvas
