"""Streamlit web application for Asterism Align.

This app provides an interactive interface for:
- Uploading a source and a target star field (image or x,y CSV)
- Detecting control points in images
- Finding the similarity transform between the two fields
- Inspecting matched control points on an overlay
"""

import io
import os
import sys
from pathlib import Path
from typing import Optional

# Add src directory to Python path for Streamlit Cloud deployment
# This ensures the asterism_align package can be imported
_src_path = Path(__file__).parent / "src"
if _src_path.exists() and str(_src_path) not in sys.path:
    sys.path.insert(0, str(_src_path))

# Configure OpenCV for headless environments (Streamlit Cloud)
# Prevents "libGL.so.1: cannot open shared object file" errors
os.environ["LIBGL_ALWAYS_INDIRECT"] = "1"

import cv2
import numpy as np
import pandas as pd
import streamlit as st
from PIL import Image

from asterism_align import AlignmentError, MatchingParameters, find_transform
from asterism_align.alignment import CoordinateList, ImageData
from asterism_align.detection import find_sources
from asterism_align.log import get_logger
from asterism_align.transform import transform_parameters
from asterism_align.visualization import (
    create_alignment_overlay,
    draw_control_points,
)

logger = get_logger("streamlit_app")

IMAGE_TYPES = ["png", "jpg", "jpeg", "tif", "tiff"]


def read_upload(uploaded) -> Optional[CoordinateList | ImageData]:
    """Turn an uploaded file into a tagged pipeline input.

    CSV files must hold `x` and `y` columns; anything else is read as an image.
    """
    if uploaded is None:
        return None

    if uploaded.name.lower().endswith(".csv"):
        table = pd.read_csv(uploaded)
        missing = {"x", "y"} - set(table.columns.str.lower())
        if missing:
            raise ValueError(f"CSV is missing column(s): {', '.join(sorted(missing))}")
        table.columns = table.columns.str.lower()
        return CoordinateList(table[["x", "y"]].to_numpy(dtype=float))

    image = Image.open(io.BytesIO(uploaded.getvalue()))
    return ImageData(np.array(image.convert("RGB")))


def to_display_rgb(control_input, shape: tuple[int, int, int]) -> np.ndarray:
    """Get an 8-bit RGB rendering of an input for display."""
    if isinstance(control_input, ImageData):
        pixels = np.asarray(control_input.pixels)
        if pixels.dtype != np.uint8:
            pixels = cv2.normalize(pixels, None, 0, 255, cv2.NORM_MINMAX)
            pixels = pixels.astype(np.uint8)
        if pixels.ndim == 2:
            pixels = cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
        return np.ascontiguousarray(pixels[..., :3])

    canvas = np.full(shape, (10, 10, 30), dtype=np.uint8)
    return draw_control_points(canvas, control_input.points, radius=3)


def canvas_shape_for(*point_sets: np.ndarray, margin: int = 20) -> tuple[int, int, int]:
    """Pick a canvas large enough for coordinate-only inputs."""
    stacked = np.vstack([p for p in point_sets if len(p)] or [np.zeros((1, 2))])
    width = int(max(stacked[:, 0].max(), 1)) + margin
    height = int(max(stacked[:, 1].max(), 1)) + margin
    return (min(height, 4096), min(width, 4096), 3)


def detected_points(control_input, max_points: int, sigma: float, area: int):
    """Control points as the pipeline will see them, for the preview."""
    if isinstance(control_input, CoordinateList):
        return control_input.points[:max_points]
    return find_sources(
        control_input.pixels,
        detection_sigma=sigma,
        min_area=area,
        max_control_points=max_points,
    )


def render_results(transform, source_pts, target_pts, target_input) -> None:
    """Show recovered parameters, the pair table and the overlay."""
    summary = transform_parameters(transform)

    col1, col2, col3 = st.columns(3)
    col1.metric("Scale", f"{summary['scale']:.5f}")
    col2.metric("Rotation", f"{np.degrees(summary['rotation']):.3f}°")
    tx, ty = summary["translation"]
    col3.metric("Translation", f"({tx:.2f}, {ty:.2f})")

    residuals = np.linalg.norm(transform(source_pts) - target_pts, axis=1)
    table = pd.DataFrame(
        {
            "source_x": source_pts[:, 0],
            "source_y": source_pts[:, 1],
            "target_x": target_pts[:, 0],
            "target_y": target_pts[:, 1],
            "residual_px": residuals,
        }
    )

    st.subheader(f"{len(table)} matched control points")
    st.dataframe(table, width="stretch")
    st.download_button(
        "Download matches (CSV)",
        table.to_csv(index=False).encode("utf-8"),
        file_name="matches.csv",
        mime="text/csv",
    )

    shape = canvas_shape_for(target_pts)
    background = None
    if isinstance(target_input, ImageData):
        background = to_display_rgb(target_input, shape)
    overlay = create_alignment_overlay(
        shape, source_pts, target_pts, transform, background=background
    )
    st.image(
        overlay,
        caption="Target points (yellow) with transformed source points (green)",
        width="stretch",
    )


def main():
    """Main Streamlit application."""
    st.set_page_config(
        page_title="Asterism Align",
        page_icon="✨",
        layout="wide",
    )

    st.title("Asterism Align")
    st.caption(
        "Find the scale, rotation and translation between two star fields "
        "by matching triangle asterisms."
    )

    with st.sidebar:
        st.header("Detection")
        max_points = st.slider("Max control points", 3, 200, 50)
        sigma = st.slider("Detection sigma", 1.0, 20.0, 5.0, 0.5)
        min_area = st.slider("Min source area (px)", 1, 50, 5)

        st.header("Matching")
        pixel_tol = st.number_input("Pixel tolerance", 0.1, 50.0, 2.0, 0.1)
        match_radius = st.number_input("Invariant match radius", 0.01, 1.0, 0.1, 0.01)
        num_neighbors = st.slider("Nearest neighbours", 3, 10, 5)
        seed = st.number_input("Random seed", 0, 2**31 - 1, 0)

    left, right = st.columns(2)
    with left:
        source_file = st.file_uploader(
            "Source (image or x,y CSV)", type=IMAGE_TYPES + ["csv"], key="source"
        )
    with right:
        target_file = st.file_uploader(
            "Target (image or x,y CSV)", type=IMAGE_TYPES + ["csv"], key="target"
        )

    try:
        source_input = read_upload(source_file)
        target_input = read_upload(target_file)
    except (ValueError, OSError) as e:
        st.error(f"Could not read upload: {e}")
        return

    if source_input is None or target_input is None:
        st.info("Upload a source and a target to begin.")
        return

    previews = []
    for name, control_input in (("Source", source_input), ("Target", target_input)):
        points = detected_points(control_input, max_points, sigma, min_area)
        shape = canvas_shape_for(points)
        preview = draw_control_points(
            to_display_rgb(control_input, shape).copy(),
            points,
            color=(255, 80, 180),
            radius=6,
            marker=cv2.MARKER_DIAMOND,
        )
        previews.append((name, preview, len(points)))

    for column, (name, preview, count) in zip(st.columns(2), previews):
        column.image(preview, caption=f"{name}: {count} control points")

    if not st.button("Find transform", type="primary"):
        return

    params = MatchingParameters(
        num_neighbors=num_neighbors,
        match_radius=match_radius,
        pixel_tol=pixel_tol,
    )

    with st.spinner("Matching asterisms..."):
        try:
            transform, (source_pts, target_pts) = find_transform(
                source_input,
                target_input,
                max_control_points=max_points,
                detection_sigma=sigma,
                min_area=min_area,
                params=params,
                rng=int(seed),
            )
        except AlignmentError as e:
            logger.warning("Alignment failed: %s", e)
            st.error(str(e))
            return

    render_results(transform, source_pts, target_pts, target_input)


if __name__ == "__main__":
    main()
