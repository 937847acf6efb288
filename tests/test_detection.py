"""Tests for point-source extraction."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from asterism_align.detection import find_sources, load_image, to_grayscale


@pytest.fixture
def star_image(star_renderer):
    """Three stars of decreasing brightness."""
    positions = np.array([[40.3, 50.7], [120.0, 80.2], [200.6, 190.1]])
    fluxes = np.array([300.0, 200.0, 100.0])
    return star_renderer(positions, fluxes), positions


def test_load_image_nonexistent_file():
    """Test that loading nonexistent file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError, match="Image not found"):
        load_image(Path("nonexistent_image.png"))


def test_load_image_roundtrip(tmp_path):
    """Test that a written image loads back as RGB."""
    image = np.zeros((20, 30, 3), dtype=np.uint8)
    image[..., 0] = 255  # red in RGB
    path = tmp_path / "red.png"
    cv2.imwrite(str(path), cv2.cvtColor(image, cv2.COLOR_RGB2BGR))

    loaded = load_image(path)

    assert loaded.shape == (20, 30, 3)
    assert np.all(loaded[..., 0] == 255), "Channel order should be RGB"


class TestToGrayscale:
    """Tests for grayscale conversion."""

    def test_grayscale_passthrough(self):
        """Test that 2D images are only cast to float."""
        image = np.arange(12, dtype=np.uint8).reshape(3, 4)

        gray = to_grayscale(image)

        assert gray.dtype == np.float64
        assert np.array_equal(gray, image)

    @pytest.mark.parametrize("channels", [3, 4])
    def test_color_collapses_to_2d(self, channels):
        """Test that RGB and RGBA images become single channel."""
        image = np.full((10, 12, channels), 128, dtype=np.uint8)

        gray = to_grayscale(image)

        assert gray.shape == (10, 12)
        assert np.allclose(gray, 128.0, atol=0.5)

    def test_unsupported_shape(self):
        """Test that other shapes are rejected."""
        with pytest.raises(ValueError, match="Unsupported image shape"):
            to_grayscale(np.zeros((4, 4, 2)))


class TestFindSources:
    """Tests for star detection."""

    def test_positions_and_order(self, star_image):
        """Test that centroids are accurate and sorted brightest first."""
        image, positions = star_image

        sources = find_sources(image)

        assert sources.shape == (3, 2), "Should find the three stars"
        assert np.allclose(sources, positions, atol=0.2)

    def test_max_control_points(self, star_image):
        """Test truncation keeps the brightest sources."""
        image, positions = star_image

        sources = find_sources(image, max_control_points=2)

        assert np.allclose(sources, positions[:2], atol=0.2)

    def test_min_area_filters_small_blobs(self):
        """Test that sources smaller than min_area are dropped."""
        image = np.zeros((50, 50))
        image[10, 10] = 50.0  # single hot pixel
        image[30:33, 30:33] = 50.0  # 9 pixel source

        sources = find_sources(image, min_area=5)

        assert sources.shape == (1, 2)
        assert np.allclose(sources[0], [31.0, 31.0])

    def test_color_image(self, star_image):
        """Test that color images are detected like grayscale ones."""
        image, positions = star_image
        rgb = np.repeat(np.clip(image, 0, 255)[..., None], 3, axis=2).astype(np.uint8)

        sources = find_sources(rgb, detection_sigma=5)

        assert len(sources) == 3
        assert np.allclose(sources, positions, atol=0.5)

    def test_empty_image(self):
        """Test that a blank image has no sources."""
        sources = find_sources(np.zeros((64, 64)))

        assert sources.shape == (0, 2)
