"""RANSAC consensus over triangle correspondences.

Each candidate triangle match alone determines a similarity transform, so
the minimal sample is a single candidate. Candidates are tried in a random
order until one gathers enough agreeing candidates; the accepted transform
is then tightened by a fixed number of refit rounds over all candidates.
"""

import logging
from typing import Optional, Union

import numpy as np

from asterism_align.config import REFINEMENT_ITERATIONS
from asterism_align.exceptions import MatchExhaustionError

logger = logging.getLogger(__name__)

RandomSource = Union[np.random.Generator, int, None]


def ransac(
    data: np.ndarray,
    model,
    thresh: float,
    min_matches: int,
    rng: RandomSource = None,
    refinement_iterations: int = REFINEMENT_ITERATIONS,
) -> tuple:
    """Fit model parameters to candidate correspondences with RANSAC.

    A hypothesis is accepted once its sample plus the other candidates with
    error below `thresh` reach `min_matches`. The search visits every
    candidate at most once, so it always terminates.

    Args:
        data: Candidate correspondences (N, 3, 2)
        model: Object with `fit(data)` and `get_error(data, fit)`
        thresh: Error below which a candidate supports a hypothesis
        min_matches: Consensus size needed to accept a hypothesis
        rng: numpy Generator or seed driving the visiting order
        refinement_iterations: Refit rounds after acceptance (default: 3)

    Returns:
        Tuple of (best_fit, inlier_indices)

    Raises:
        MatchExhaustionError: If no hypothesis reaches `min_matches`
    """
    data = np.asarray(data)
    n_data = len(data)

    if n_data == 0:
        raise MatchExhaustionError(
            "No matching triangles found between source and target"
        )

    if n_data == 1:
        # A single triangle match has nothing to vote with: fit it directly
        return model.fit(data), np.arange(1)

    rng = np.random.default_rng(rng)
    all_idxs = np.arange(n_data)
    rng.shuffle(all_idxs)

    good_fit = None
    for iter_i in range(n_data):
        maybe_idx = all_idxs[iter_i]
        test_idxs = np.delete(all_idxs, iter_i)

        try:
            maybe_model = model.fit(data[maybe_idx : maybe_idx + 1])
        except ValueError:
            # Degenerate sample triangle
            continue

        test_err = model.get_error(data[test_idxs], maybe_model)
        also_idxs = test_idxs[test_err < thresh]

        if len(also_idxs) + 1 >= min_matches:
            consensus = np.concatenate(([maybe_idx], also_idxs))
            good_fit = model.fit(data[consensus])
            logger.debug(
                "Hypothesis %d of %d accepted with %d supporting candidates",
                iter_i + 1,
                n_data,
                len(also_idxs),
            )
            break

    if good_fit is None:
        raise MatchExhaustionError(
            "List of matching triangles exhausted before an acceptable "
            "transformation was found"
        )

    better_fit = good_fit
    inlier_idxs = np.empty(0, dtype=int)
    for _ in range(refinement_iterations):
        err = model.get_error(data, better_fit)
        inlier_idxs = np.flatnonzero(err < thresh)
        if len(inlier_idxs) == 0:
            raise MatchExhaustionError(
                "Refinement lost every inlier of the accepted transformation"
            )
        better_fit = model.fit(data[inlier_idxs])

    logger.debug("Consensus settled on %d of %d candidates", len(inlier_idxs), n_data)

    return better_fit, inlier_idxs
