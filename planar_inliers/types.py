"""
Value types shared by the matching and geometry stages.

Keypoint tables are plain N x 2 float arrays of ``(x, y)`` pixel
coordinates; everything that flows between stages is an immutable tuple.
"""

from typing import NamedTuple, Optional, Tuple

Point = Tuple[float, float]


class CandidateMatch(NamedTuple):
    """Top-2 nearest-neighbour result for one query keypoint in image A.

    ``second_idx`` / ``second_distance`` are ``None`` when the matcher could
    only return a single neighbour.
    """

    query_idx: int
    best_idx: int
    best_distance: float
    second_idx: Optional[int] = None
    second_distance: Optional[float] = None


class Correspondence(NamedTuple):
    """A pair of points: ``point_a`` in image A, ``point_b`` in image B."""

    point_a: Point
    point_b: Point
