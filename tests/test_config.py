"""Tests for configuration and logging setup."""

import logging

import pytest

from asterism_align import config
from asterism_align.config import MatchingParameters
from asterism_align.log import get_logger, setup_logging


def test_default_parameters_match_constants():
    """Test that defaults mirror the module constants."""
    params = MatchingParameters()

    assert params.num_neighbors == config.NUM_NEAREST_NEIGHBORS == 5
    assert params.match_radius == config.MATCH_RADIUS == 0.1
    assert params.pixel_tol == config.PIXEL_TOL == 2
    assert params.min_matches_fraction == config.MIN_MATCHES_FRACTION == 0.8
    assert params.max_min_matches == config.MAX_MIN_MATCHES == 10


def test_parameters_are_frozen():
    """Test that a parameter bundle cannot be mutated."""
    params = MatchingParameters()

    with pytest.raises(AttributeError):
        params.pixel_tol = 5  # type: ignore[misc]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"num_neighbors": 2},
        {"match_radius": 0.0},
        {"pixel_tol": -1.0},
        {"min_matches_fraction": 0.0},
        {"min_matches_fraction": 1.5},
        {"max_min_matches": 0},
    ],
)
def test_invalid_parameters(kwargs):
    """Test that out-of-range values are rejected."""
    with pytest.raises(ValueError):
        MatchingParameters(**kwargs)


@pytest.fixture
def fresh_package_logger():
    """Reset the package logger around a test."""
    pkg_logger = logging.getLogger("asterism_align")
    saved = (list(pkg_logger.handlers), pkg_logger.level)
    pkg_logger.handlers.clear()
    if hasattr(pkg_logger, "_asterism_configured"):
        del pkg_logger._asterism_configured
    yield pkg_logger
    pkg_logger.handlers[:] = saved[0]
    pkg_logger.setLevel(saved[1])
    if hasattr(pkg_logger, "_asterism_configured"):
        del pkg_logger._asterism_configured


def test_setup_logging_reads_env(fresh_package_logger, monkeypatch):
    """Test that the level comes from the environment."""
    monkeypatch.setenv(config.LOG_LEVEL_ENV, "debug")

    setup_logging()

    assert fresh_package_logger.level == logging.DEBUG
    assert len(fresh_package_logger.handlers) == 1


def test_setup_logging_is_idempotent(fresh_package_logger):
    """Test that repeated setup does not stack handlers."""
    setup_logging("WARNING")
    setup_logging("DEBUG")

    assert fresh_package_logger.level == logging.WARNING
    assert len(fresh_package_logger.handlers) == 1


def test_get_logger_namespaces(fresh_package_logger):
    """Test that loggers live under the package namespace."""
    assert get_logger("scripts.demo").name == "asterism_align.scripts.demo"
    assert get_logger("asterism_align.ransac").name == "asterism_align.ransac"


def test_bad_level_falls_back_to_info(fresh_package_logger):
    """Test that an unknown level name means INFO."""
    setup_logging("LOUD")

    assert fresh_package_logger.level == logging.INFO
