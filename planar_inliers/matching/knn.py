"""
Brute-force top-2 descriptor search.

Produces the raw candidate table consumed by the ratio test.  The distance
metric is whatever SciPy's ``cdist`` understands; the ratio test never looks
at it.
"""

import numpy as np
from scipy.spatial.distance import cdist

from planar_inliers.errors import InvalidParameter
from planar_inliers.types import CandidateMatch


def knn_candidates(desc1: np.ndarray, desc2: np.ndarray,
                   metric: str = "euclidean") -> list:
    """Find the two nearest neighbours in *desc2* of every row of *desc1*.

    Parameters
    ----------
    desc1 : np.ndarray
        M x D query descriptors (image A).
    desc2 : np.ndarray
        N x D reference descriptors (image B).
    metric : str
        Any ``scipy.spatial.distance.cdist`` metric, e.g. ``"euclidean"`` for
        float descriptors or ``"hamming"`` for binary ones.

    Returns
    -------
    list of CandidateMatch
        One entry per query descriptor, in query order.  When *desc2* holds a
        single descriptor the second neighbour is left empty.
    """
    desc1 = np.asarray(desc1)
    desc2 = np.asarray(desc2)
    if desc1.size == 0 or desc2.size == 0:
        return []
    if desc1.ndim != 2 or desc2.ndim != 2 or desc1.shape[1] != desc2.shape[1]:
        raise InvalidParameter(
            f"descriptor tables disagree: {desc1.shape} vs {desc2.shape}")

    distances = cdist(desc1, desc2, metric=metric)

    candidates = []
    for i in range(desc1.shape[0]):
        row = distances[i]
        if row.shape[0] == 1:
            candidates.append(CandidateMatch(i, 0, float(row[0])))
            continue

        # Only the two smallest are needed; order them afterwards
        nn = np.argpartition(row, 1)[:2]
        nn = nn[np.argsort(row[nn], kind="stable")]
        nn1_idx, nn2_idx = int(nn[0]), int(nn[1])
        candidates.append(CandidateMatch(
            i, nn1_idx, float(row[nn1_idx]), nn2_idx, float(row[nn2_idx])))

    return candidates
