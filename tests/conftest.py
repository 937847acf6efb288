"""Shared fixtures: synthetic star fields."""

import numpy as np
import pytest


def render_stars(
    positions: np.ndarray,
    fluxes: np.ndarray,
    shape: tuple[int, int] = (256, 256),
    sigma: float = 1.5,
    background: float = 10.0,
    noise: float = 1.0,
    seed: int = 0,
) -> np.ndarray:
    """Render Gaussian stars over a noisy flat background."""
    rng = np.random.default_rng(seed)
    yy, xx = np.mgrid[: shape[0], : shape[1]]
    image = background + rng.normal(0.0, noise, shape)
    for (x, y), flux in zip(positions, fluxes):
        image += flux * np.exp(-((xx - x) ** 2 + (yy - y) ** 2) / (2 * sigma**2))
    return image


@pytest.fixture
def star_renderer():
    """Expose the star renderer to tests."""
    return render_stars


@pytest.fixture
def jittered_grid():
    """Factory for well-separated random points on a jittered grid."""

    def make(nx=5, ny=5, spacing=40.0, jitter=10.0, origin=(0.0, 0.0), seed=0):
        rng = np.random.default_rng(seed)
        grid = np.array(
            [[i, j] for j in range(ny) for i in range(nx)], dtype=float
        ) * spacing
        grid += rng.uniform(-jitter, jitter, grid.shape)
        return grid + np.asarray(origin, dtype=float)

    return make
