"""Tests for the RANSAC consensus search."""

from itertools import combinations

import numpy as np
import pytest
from skimage.transform import SimilarityTransform

from asterism_align.exceptions import MatchExhaustionError
from asterism_align.ransac import ransac
from asterism_align.transform import MatchTransform

TRUE_TRANSFORM = SimilarityTransform(scale=1.3, rotation=0.4, translation=(50.0, -20.0))


class RecordingModel(MatchTransform):
    """MatchTransform that remembers every dataset it was fitted on."""

    def __init__(self, source, target):
        super().__init__(source, target)
        self.fitted = []

    def fit(self, data):
        self.fitted.append(np.array(data))
        return super().fit(data)


@pytest.fixture
def points():
    """Jittered 4x4 grid with at least ~14 px between points."""
    rng = np.random.default_rng(11)
    grid = np.array([[x, y] for y in range(4) for x in range(4)], dtype=float) * 20.0
    source = grid + rng.uniform(-3.0, 3.0, grid.shape)
    return source, TRUE_TRANSFORM(source)


@pytest.fixture
def candidates():
    """15 true triangle matches followed by 5 spurious ones."""
    rng = np.random.default_rng(12)
    triangles = list(combinations(range(16), 3))
    picks = rng.choice(len(triangles), 20, replace=False)

    # Cyclic derangement of the 16 points: no vertex keeps its own partner
    order = rng.permutation(16)
    shuffled = np.empty(16, dtype=int)
    shuffled[order] = np.roll(order, 1)

    data = []
    for n, pick in enumerate(picks):
        tri = np.array(triangles[pick])
        partners = tri if n < 15 else shuffled[tri]
        data.append(np.stack([tri, partners], axis=1))
    return np.array(data)


def test_ransac_finds_true_inliers(points, candidates):
    """Test that the spurious candidates are rejected."""
    source, target = points
    model = MatchTransform(source, target)

    fit, inliers = ransac(candidates, model, thresh=2, min_matches=10, rng=0)

    assert inliers.tolist() == list(range(15)), "Only true matches are inliers"
    assert fit.scale == pytest.approx(1.3, abs=1e-9)
    assert fit.rotation == pytest.approx(0.4, abs=1e-9)
    assert np.allclose(fit.translation, [50.0, -20.0], atol=1e-8)


def test_ransac_is_reproducible_with_seed(points, candidates):
    """Test that the visiting order depends only on the seed."""
    source, target = points
    first = RecordingModel(source, target)
    second = RecordingModel(source, target)

    ransac(candidates, first, thresh=2, min_matches=10, rng=7)
    ransac(candidates, second, thresh=2, min_matches=10, rng=np.random.default_rng(7))

    assert len(first.fitted) == len(second.fitted)
    for a, b in zip(first.fitted, second.fitted):
        assert np.array_equal(a, b), "Same seed should visit candidates in same order"


def test_single_candidate_is_fitted_directly(points, candidates):
    """Test the shortcut for a lone candidate."""
    source, target = points
    model = RecordingModel(source, target)

    fit, inliers = ransac(candidates[:1], model, thresh=2, min_matches=1, rng=0)

    assert len(model.fitted) == 1, "Shortcut fits once, without refinement"
    assert inliers.tolist() == [0]
    assert fit.scale == pytest.approx(1.3, abs=1e-9)


def test_refinement_iterations_are_fixed(points, candidates):
    """Test that refinement adds exactly one fit per iteration."""
    source, target = points
    no_refine = RecordingModel(source, target)
    refine = RecordingModel(source, target)

    ransac(candidates, no_refine, 2, 10, rng=3, refinement_iterations=1)
    ransac(candidates, refine, 2, 10, rng=3, refinement_iterations=3)

    assert len(refine.fitted) - len(no_refine.fitted) == 2


def test_exhaustion_without_consensus(points, candidates):
    """Test that unrelated candidates exhaust the search."""
    source, target = points
    model = MatchTransform(source, target)

    with pytest.raises(MatchExhaustionError, match="exhausted"):
        ransac(candidates[15:], model, thresh=2, min_matches=3, rng=0)


def test_exhaustion_when_consensus_too_small(points, candidates):
    """Test that too few agreeing candidates is a failure, not a guess."""
    source, target = points
    model = MatchTransform(source, target)

    with pytest.raises(MatchExhaustionError):
        ransac(candidates, model, thresh=2, min_matches=16, rng=0)


def test_no_candidates():
    """Test that an empty candidate list fails immediately."""
    model = MatchTransform(np.zeros((3, 2)), np.zeros((3, 2)))

    with pytest.raises(MatchExhaustionError, match="No matching triangles"):
        ransac(np.empty((0, 3, 2), dtype=int), model, thresh=2, min_matches=1)
