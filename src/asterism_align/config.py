"""Matching constants and the parameter bundle built from them.

The defaults are empirical:
- NUM_NEAREST_NEIGHBORS=5: each point forms C(5, 3) = 10 triangles with its
  neighbours (itself included)
- MATCH_RADIUS=0.1: search distance in invariant space; returns roughly as
  many triangle matches as there are input triangles
- PIXEL_TOL=2: a triangle agrees with a transform when all three vertices
  land within this many pixels of their targets
- MIN_MATCHES_FRACTION=0.8, MAX_MIN_MATCHES=10: consensus size is 80% of the
  candidate count, clamped to [1, 10]
"""

from dataclasses import dataclass

NUM_NEAREST_NEIGHBORS = 5
MATCH_RADIUS = 0.1
PIXEL_TOL = 2
MIN_MATCHES_FRACTION = 0.8
MAX_MIN_MATCHES = 10
REFINEMENT_ITERATIONS = 3
MIN_CONTROL_POINTS = 3

MAX_CONTROL_POINTS = 50
DETECTION_SIGMA = 5
MIN_AREA = 5

LOG_LEVEL_ENV = "ASTERISM_ALIGN_LOG_LEVEL"


@dataclass(frozen=True)
class MatchingParameters:
    """Tunable knobs for triangle matching and consensus.

    Args:
        num_neighbors: Nearest neighbours used to build triangles per point
        match_radius: Radius of the descriptor-space search
        pixel_tol: Worst-vertex residual below which a triangle is an inlier
        min_matches_fraction: Fraction of candidates required for consensus
        max_min_matches: Upper bound on the required consensus size
    """

    num_neighbors: int = NUM_NEAREST_NEIGHBORS
    match_radius: float = MATCH_RADIUS
    pixel_tol: float = PIXEL_TOL
    min_matches_fraction: float = MIN_MATCHES_FRACTION
    max_min_matches: int = MAX_MIN_MATCHES

    def __post_init__(self):
        if self.num_neighbors < MIN_CONTROL_POINTS:
            raise ValueError(
                f"num_neighbors must be at least {MIN_CONTROL_POINTS}, "
                f"got {self.num_neighbors}"
            )
        if self.match_radius <= 0:
            raise ValueError("match_radius must be positive")
        if self.pixel_tol <= 0:
            raise ValueError("pixel_tol must be positive")
        if not 0 < self.min_matches_fraction <= 1:
            raise ValueError("min_matches_fraction must be in (0, 1]")
        if self.max_min_matches < 1:
            raise ValueError("max_min_matches must be at least 1")
