"""Point-source extraction from images.

Stars (or any compact bright blobs) are found by thresholding above a
sigma-clipped background estimate and labelling connected pixel groups.
Each group contributes its intensity-weighted centroid as a control point.
"""

import logging
from pathlib import Path

import cv2
import numpy as np
from astropy.stats import sigma_clipped_stats
from skimage.measure import label, regionprops

from asterism_align.config import DETECTION_SIGMA, MAX_CONTROL_POINTS, MIN_AREA

logger = logging.getLogger(__name__)


def load_image(image_path: Path) -> np.ndarray:
    """Load image from file and convert to RGB.

    Args:
        image_path: Path to image file

    Returns:
        RGB image as numpy array

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If image cannot be loaded
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    image = cv2.imread(str(image_path))
    if image is None:
        raise ValueError(f"Cannot load image: {image_path}")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Collapse an RGB or RGBA image to a float grayscale image.

    Args:
        image: Image array (H, W), (H, W, 3) or (H, W, 4)

    Returns:
        Float64 grayscale image (H, W)

    Raises:
        ValueError: If the array is not a single- or multi-channel image
    """
    image = np.asarray(image)

    if image.ndim == 2:
        return image.astype(np.float64)

    if image.ndim == 3 and image.shape[2] in (3, 4):
        code = cv2.COLOR_RGB2GRAY if image.shape[2] == 3 else cv2.COLOR_RGBA2GRAY
        gray = cv2.cvtColor(image.astype(np.float32), code)
        return gray.astype(np.float64)

    raise ValueError(f"Unsupported image shape: {image.shape}")


def find_sources(
    image: np.ndarray,
    detection_sigma: float = DETECTION_SIGMA,
    min_area: int = MIN_AREA,
    max_control_points: int = MAX_CONTROL_POINTS,
) -> np.ndarray:
    """Detect point sources and return their centroids, brightest first.

    Args:
        image: Grayscale or color image
        detection_sigma: Detection threshold in background standard deviations
        min_area: Minimum number of connected pixels for a source
        max_control_points: Maximum number of sources to return

    Returns:
        Array (K, 2) of (x, y) centroids sorted by integrated flux, K may be 0

    Example:
        >>> img = np.zeros((64, 64))
        >>> img[10:13, 20:23] = 100.0
        >>> find_sources(img, min_area=4).round(1).tolist()
        [[21.0, 11.0]]
    """
    gray = to_grayscale(image)

    _, median, std = sigma_clipped_stats(gray, sigma=3.0)
    if not np.isfinite(std) or std == 0:
        # A perfectly flat background: anything above it is a detection
        std = np.finfo(float).eps * max(1.0, abs(float(median)))

    threshold = median + detection_sigma * std
    mask = gray > threshold

    labels = label(mask, connectivity=2)
    regions = regionprops(labels, intensity_image=gray - median)

    sources = []
    for region in regions:
        if region.area < min_area:
            continue
        row, col = region.centroid_weighted
        flux = float(region.intensity_mean * region.area)
        sources.append((flux, col, row))

    sources.sort(key=lambda s: s[0], reverse=True)
    sources = sources[:max_control_points]

    logger.debug(
        "Found %d sources above %.3g (%d regions before area cut)",
        len(sources),
        threshold,
        len(regions),
    )

    if not sources:
        return np.empty((0, 2), dtype=float)

    return np.array([(x, y) for _, x, y in sources], dtype=float)
