"""
Keypoint detection and description via scikit-image.

The verification core only needs keypoint coordinates and descriptor rows;
this module supplies both from one of scikit-image's extractors and reports
which distance metric suits the descriptors it produced.
"""

import numpy as np
from skimage.feature import ORB, SIFT

from planar_inliers.errors import InvalidParameter

# detector name -> metric for its descriptors
DESCRIPTOR_METRICS = {
    "orb": "hamming",
    "sift": "euclidean",
}


def detect_and_describe(gray: np.ndarray, detector: str = "orb",
                        n_keypoints: int = 1000):
    """Detect keypoints in *gray* and compute their descriptors.

    Parameters
    ----------
    gray : np.ndarray
        H x W grayscale image, float in [0, 1].
    detector : str
        ``"orb"`` (binary descriptors) or ``"sift"`` (float descriptors).
    n_keypoints : int
        Upper bound on ORB keypoints; ignored by SIFT.

    Returns
    -------
    keypoints : np.ndarray
        N x 2 array of ``(x, y)`` coordinates.
    descriptors : np.ndarray
        N x D descriptor matrix, row-aligned with *keypoints*.
    metric : str
        ``scipy.spatial.distance.cdist`` metric matching the descriptors.
    """
    detector = detector.lower()
    if detector not in DESCRIPTOR_METRICS:
        raise InvalidParameter(
            f"unknown detector {detector!r}; "
            f"expected one of {sorted(DESCRIPTOR_METRICS)}")
    if n_keypoints < 1:
        raise InvalidParameter(
            f"n_keypoints must be positive, got {n_keypoints}")

    if detector == "orb":
        extractor = ORB(n_keypoints=n_keypoints)
    else:
        extractor = SIFT()

    try:
        extractor.detect_and_extract(gray)
    except RuntimeError:
        # scikit-image raises when the image has no usable features
        return np.empty((0, 2)), np.empty((0, 0)), DESCRIPTOR_METRICS[detector]

    # scikit-image reports (row, col)
    keypoints = np.asarray(extractor.keypoints, dtype=float)[:, ::-1]
    return keypoints, np.asarray(extractor.descriptors), \
        DESCRIPTOR_METRICS[detector]
