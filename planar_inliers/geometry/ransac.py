"""
RANSAC-based robust homography estimation.

Random Sample Consensus (RANSAC) handles outliers in feature matches by
repeatedly drawing minimal subsets, fitting a homography, and counting
geometrically consistent inliers.  The iteration budget adapts to the best
inlier ratio seen so far, and the winning hypothesis is optionally refit on
all of its inliers.
"""

import math

import numpy as np

from planar_inliers.errors import (
    DegenerateModel,
    InsufficientCorrespondences,
    InvalidParameter,
)
from planar_inliers.geometry.homography import (
    fit_homography,
    is_degenerate_sample,
    reprojection_error,
)

MIN_CORRESPONDENCES = 4
DEFAULT_REPROJ_THRESHOLD = 2.50
DEFAULT_MAX_ITERS = 2000
DEFAULT_CONFIDENCE = 0.99
DEFAULT_MAX_SAMPLING_ATTEMPTS = 300


def required_iterations(inlier_ratio: float, confidence: float,
                        sample_size: int = MIN_CORRESPONDENCES,
                        max_iters: int = DEFAULT_MAX_ITERS) -> int:
    """Number of draws needed to hit an all-inlier sample with *confidence*.

    ``N = log(1 - confidence) / log(1 - w ** sample_size)``, rounded up and
    clamped to *max_iters*.
    """
    if inlier_ratio >= 1.0:
        return 1
    p_good = inlier_ratio ** sample_size
    if p_good <= 0.0:
        return max_iters
    denom = math.log1p(-p_good)
    if denom >= 0.0:
        return max_iters
    n = math.ceil(math.log(1.0 - confidence) / denom)
    return int(max(1, min(max_iters, n)))


def count_inliers(H: np.ndarray, pts1: np.ndarray, pts2: np.ndarray,
                  threshold: float):
    """Classify correspondences against homography *H*.

    A correspondence is an inlier when its forward reprojection error is
    strictly below *threshold* pixels.

    Returns
    -------
    mask : np.ndarray
        Boolean inlier mask, one entry per correspondence.
    errors : np.ndarray
        Reprojection error (pixels) of every correspondence.
    """
    errors = reprojection_error(H, pts1, pts2)
    return errors < threshold, errors


def _is_positive_int(value) -> bool:
    try:
        return math.isfinite(value) and int(value) == value and value >= 1
    except TypeError:
        return False


def _check_parameters(reproj_threshold, max_iters, confidence,
                      max_sampling_attempts):
    if not (reproj_threshold > 0 and math.isfinite(reproj_threshold)):
        raise InvalidParameter(
            f"reproj_threshold must be a positive number, got {reproj_threshold}")
    if not _is_positive_int(max_iters):
        raise InvalidParameter(
            f"max_iters must be a positive integer, got {max_iters}")
    if not (0.0 < confidence < 1.0):
        raise InvalidParameter(
            f"confidence must be in (0, 1), got {confidence}")
    if not _is_positive_int(max_sampling_attempts):
        raise InvalidParameter(
            "max_sampling_attempts must be a positive integer, "
            f"got {max_sampling_attempts}")


def _draw_model(rng, pts1, pts2, max_attempts):
    """Draw minimal samples until one yields a usable homography."""
    n = pts1.shape[0]
    for _ in range(max_attempts):
        idx = rng.choice(n, MIN_CORRESPONDENCES, replace=False)
        s1, s2 = pts1[idx], pts2[idx]
        if is_degenerate_sample(s1) or is_degenerate_sample(s2):
            continue
        H = fit_homography(s1, s2)
        if H is not None:
            return H
    return None


def ransac_homography(correspondences,
                      reproj_threshold: float = DEFAULT_REPROJ_THRESHOLD,
                      refine: bool = True, rng=None,
                      max_iters: int = DEFAULT_MAX_ITERS,
                      confidence: float = DEFAULT_CONFIDENCE,
                      max_sampling_attempts: int = DEFAULT_MAX_SAMPLING_ATTEMPTS,
                      verbose: bool = False):
    """Estimate a robust homography via RANSAC.

    Parameters
    ----------
    correspondences : sequence of Correspondence
        Putative ``(point_a, point_b)`` pairs, typically the output of
        :func:`planar_inliers.matching.nndr.build_correspondences`.
    reproj_threshold : float
        Inlier reprojection error threshold (pixels), strict.
    refine : bool
        Refit the best model on all of its inliers and re-classify.
    rng : numpy.random.Generator or int or None
        Source of randomness for sampling.  An int is used as a seed.  Pass a
        generator or a seed for reproducible runs.
    max_iters : int
        Hard cap on RANSAC iterations.
    confidence : float
        Probability of having drawn at least one all-inlier sample, used to
        shrink the iteration budget as the inlier ratio improves.
    max_sampling_attempts : int
        Draws allowed per iteration to find a non-degenerate minimal sample.
    verbose : bool
        Print a one-line summary of the run.

    Returns
    -------
    H : np.ndarray
        Best-scoring 3 x 3 homography (read-only, ``H[2, 2] == 1``).
    inliers : tuple of Correspondence
        Correspondences consistent with *H*, in input order.  May be empty.

    Raises
    ------
    InvalidParameter
        If a tunable is out of range.
    InsufficientCorrespondences
        If fewer than four correspondences are given.
    DegenerateModel
        If no minimal sample produces a usable homography.
    """
    _check_parameters(reproj_threshold, max_iters, confidence,
                      max_sampling_attempts)
    max_iters = int(max_iters)

    correspondences = tuple(correspondences)
    n = len(correspondences)
    if n < MIN_CORRESPONDENCES:
        raise InsufficientCorrespondences(n, MIN_CORRESPONDENCES)

    rng = np.random.default_rng(rng)
    pts1 = np.array([c.point_a for c in correspondences], dtype=float)
    pts2 = np.array([c.point_b for c in correspondences], dtype=float)

    best_H = None
    best_mask = None
    best_count = -1
    best_mean_err = np.inf
    needed = max_iters
    iteration = 0

    while iteration < needed:
        H = _draw_model(rng, pts1, pts2, max_sampling_attempts)
        if H is None:
            if best_H is None:
                raise DegenerateModel(
                    f"no non-degenerate minimal sample among {n} "
                    f"correspondences after {max_sampling_attempts} draws")
            break
        iteration += 1

        mask, errors = count_inliers(H, pts1, pts2, reproj_threshold)
        count = int(mask.sum())
        mean_err = float(errors[mask].mean()) if count else np.inf

        if count > best_count or (count == best_count
                                  and mean_err < best_mean_err):
            best_H, best_mask = H, mask
            best_count, best_mean_err = count, mean_err
            needed = required_iterations(best_count / n, confidence,
                                         MIN_CORRESPONDENCES, max_iters)

    refined = False
    if refine and best_count >= MIN_CORRESPONDENCES:
        H_ref = fit_homography(pts1[best_mask], pts2[best_mask])
        if H_ref is not None:
            best_H = H_ref
            best_mask, _ = count_inliers(H_ref, pts1, pts2, reproj_threshold)
            refined = True

    inliers = tuple(c for c, keep in zip(correspondences, best_mask) if keep)

    if verbose:
        rate = 100.0 * len(inliers) / n
        print(f"  RANSAC: {iteration} iterations (threshold="
              f"{reproj_threshold}px, refined={refined}) -> "
              f"{len(inliers)} inliers / {n} matches ({rate:.1f}%)")

    best_H = best_H.copy()
    best_H.flags.writeable = False
    return best_H, inliers
