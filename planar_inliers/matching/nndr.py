"""
Nearest-Neighbour Distance Ratio (NNDR) correspondence filtering.

Implements Lowe's ratio test over precomputed top-2 neighbour candidates: a
match is accepted only when the distance to the best candidate is
significantly smaller than the distance to the second-best candidate, so
ambiguous matches on repetitive structure are dropped before RANSAC sees them.
"""

import numpy as np

from planar_inliers.errors import InvalidParameter
from planar_inliers.types import Correspondence

DEFAULT_RATIO = 0.80


def _check_ratio(ratio: float) -> None:
    if not (0.0 < ratio <= 1.0):
        raise InvalidParameter(f"ratio must be in (0, 1], got {ratio}")


def _as_keypoint_table(keypoints, name: str) -> np.ndarray:
    table = np.asarray(keypoints, dtype=float)
    if table.size == 0:
        return table.reshape(0, 2)
    if table.ndim != 2 or table.shape[1] != 2:
        raise InvalidParameter(
            f"{name} must be an N x 2 table of (x, y) coordinates, "
            f"got shape {table.shape}")
    if not np.all(np.isfinite(table)):
        raise InvalidParameter(f"{name} contains non-finite coordinates")
    return table


def nndr_ratio(candidate):
    """Return ``best_distance / second_distance`` for *candidate*.

    Returns ``None`` when the ratio is undefined: the matcher found a single
    neighbour, or the second-best distance is zero (a tie, including 0/0).

    Raises
    ------
    InvalidParameter
        If a distance is negative or the two distances are out of order.
    """
    d1 = candidate.best_distance
    d2 = candidate.second_distance
    if d1 < 0 or (d2 is not None and d2 < 0):
        raise InvalidParameter(
            f"negative match distance for query {candidate.query_idx}")
    if candidate.second_idx is None or d2 is None:
        return None
    if d1 > d2:
        raise InvalidParameter(
            f"best distance {d1} exceeds second distance {d2} "
            f"for query {candidate.query_idx}")
    if d2 == 0:
        return None
    return d1 / d2


def filter_candidates(candidates, ratio: float = DEFAULT_RATIO) -> list:
    """Apply the ratio test to raw top-2 candidates.

    Parameters
    ----------
    candidates : sequence of CandidateMatch
        One entry per query keypoint, in matcher order.
    ratio : float
        NNDR threshold in (0, 1].  A candidate survives iff
        ``best_distance / second_distance < ratio``.

    Returns
    -------
    list of CandidateMatch
        The accepted candidates in their original order.
    """
    _check_ratio(ratio)

    accepted = []
    seen = set()
    for cand in candidates:
        if cand.query_idx in seen:
            raise InvalidParameter(
                f"query keypoint {cand.query_idx} appears more than once")
        seen.add(cand.query_idx)

        r = nndr_ratio(cand)
        if r is not None and r < ratio:
            accepted.append(cand)
    return accepted


def build_correspondences(candidates, keypoints_a, keypoints_b,
                          ratio: float = DEFAULT_RATIO) -> list:
    """Turn ratio-test survivors into paired image coordinates.

    Parameters
    ----------
    candidates : sequence of CandidateMatch
        Top-2 matcher output; indices refer to *keypoints_a* (query) and
        *keypoints_b* (neighbours).
    keypoints_a, keypoints_b : array_like
        N x 2 tables of ``(x, y)`` keypoint coordinates.
    ratio : float
        NNDR threshold in (0, 1].

    Returns
    -------
    list of Correspondence
        ``(point_a, point_b)`` pairs, stable with respect to *candidates*.

    Raises
    ------
    InvalidParameter
        On an out-of-range ratio, a malformed keypoint table, an index
        outside its table, or a repeated query keypoint.
    """
    _check_ratio(ratio)
    candidates = list(candidates)
    table_a = _as_keypoint_table(keypoints_a, "keypoints_a")
    table_b = _as_keypoint_table(keypoints_b, "keypoints_b")
    n_a, n_b = len(table_a), len(table_b)

    for cand in candidates:
        if not 0 <= cand.query_idx < n_a:
            raise InvalidParameter(
                f"query index {cand.query_idx} outside keypoints_a "
                f"(size {n_a})")
        for idx in (cand.best_idx, cand.second_idx):
            if idx is not None and not 0 <= idx < n_b:
                raise InvalidParameter(
                    f"neighbour index {idx} outside keypoints_b (size {n_b})")

    correspondences = []
    for cand in filter_candidates(candidates, ratio):
        xa, ya = table_a[cand.query_idx]
        xb, yb = table_b[cand.best_idx]
        correspondences.append(
            Correspondence((float(xa), float(ya)), (float(xb), float(yb))))
    return correspondences

