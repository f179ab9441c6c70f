"""
Homography estimation from point correspondences.

A planar homography (projective transformation) maps points in one image to
corresponding points in another when the scene is planar or the camera
undergoes pure rotation.  The 3x3 matrix is estimated via the normalised
Direct Linear Transform (DLT) and solved with SVD.

All point arrays here are N x 2 ``(x, y)`` pixel coordinates.
"""

import numpy as np

# Smallest |sin| between two edges of a sample triangle before the three
# points are treated as collinear.
COLLINEAR_TOL = 1e-3

_EPS = 1e-12


def normalize_points(points: np.ndarray):
    """Similarity-normalise *points* (Hartley normalisation).

    Translates the centroid to the origin and scales so the mean distance
    from it is sqrt(2).

    Parameters
    ----------
    points : np.ndarray
        N x 2 array of ``(x, y)`` coordinates.

    Returns
    -------
    normalized : np.ndarray
        N x 2 normalised coordinates.
    T : np.ndarray or None
        3 x 3 transform with ``normalized ~ T @ points``; *None* when all
        points coincide and no scale can be defined.
    """
    centroid = points.mean(axis=0)
    mean_dist = np.sqrt(((points - centroid) ** 2).sum(axis=1)).mean()
    if not np.isfinite(mean_dist) or mean_dist < _EPS:
        return points, None

    s = np.sqrt(2.0) / mean_dist
    T = np.array([
        [s, 0, -s * centroid[0]],
        [0, s, -s * centroid[1]],
        [0, 0, 1],
    ], dtype=float)
    return (points - centroid) * s, T


def fit_homography(pts1: np.ndarray, pts2: np.ndarray):
    """Estimate a 3x3 homography from four or more point correspondences.

    Each correspondence contributes two linear equations in the nine
    homography entries.  With four points the system is exactly determined
    (up to scale); with more it is solved in the least-squares sense.  Both
    point sets are normalised first and the result is de-normalised, which
    keeps the system well conditioned for pixel-scale coordinates.

    Parameters
    ----------
    pts1 : np.ndarray
        N x 2 source coordinates (image A), N >= 4.
    pts2 : np.ndarray
        N x 2 destination coordinates (image B).

    Returns
    -------
    H : np.ndarray or None
        3 x 3 homography normalised so ``H[2, 2] == 1`` such that
        ``pts2 ~ H @ pts1`` in homogeneous coordinates, or *None* when the
        configuration does not determine a non-singular transform.
    """
    pts1 = np.asarray(pts1, dtype=float)
    pts2 = np.asarray(pts2, dtype=float)
    if pts1.shape[0] < 4 or pts1.shape != pts2.shape:
        return None

    n1, T1 = normalize_points(pts1)
    n2, T2 = normalize_points(pts2)
    if T1 is None or T2 is None:
        return None

    n = n1.shape[0]
    x1, y1 = n1[:, 0], n1[:, 1]
    x2, y2 = n2[:, 0], n2[:, 1]
    zeros, ones = np.zeros(n), np.ones(n)

    A = np.zeros((2 * n, 9))
    A[0::2] = np.column_stack(
        [-x1, -y1, -ones, zeros, zeros, zeros, x2 * x1, x2 * y1, x2])
    A[1::2] = np.column_stack(
        [zeros, zeros, zeros, -x1, -y1, -ones, y2 * x1, y2 * y1, y2])

    _, S, Vt = np.linalg.svd(A)
    # A rank below 8 leaves more than one solution
    if S[7] < _EPS * max(S[0], 1.0):
        return None

    Hn = Vt[-1].reshape(3, 3)
    H = np.linalg.inv(T2) @ Hn @ T1

    if not np.all(np.isfinite(H)) or abs(H[2, 2]) < _EPS:
        return None
    H = H / H[2, 2]
    if abs(np.linalg.det(H)) < 1e-10:
        return None
    return H


def apply_homography(H: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a homography to a set of ``(x, y)`` coordinates.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 homography matrix.
    points : np.ndarray
        N x 2 array of ``(x, y)`` coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed coordinates.  Points sent to the line at
        infinity come back as ``inf``.
    """
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    homog = np.column_stack([points, np.ones(points.shape[0])])

    transformed = homog @ H.T
    w = transformed[:, 2:3]
    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(np.abs(w) > _EPS, transformed[:, :2] / w, np.inf)
    return out


def reprojection_error(H: np.ndarray, pts1: np.ndarray,
                       pts2: np.ndarray) -> np.ndarray:
    """Forward reprojection error ``||H * p1 - p2||`` per correspondence.

    Returns
    -------
    np.ndarray
        Length-N vector of pixel distances; ``inf`` where the projection is
        undefined.
    """
    projected = apply_homography(H, pts1)
    err = np.sqrt(np.sum((projected - np.asarray(pts2, dtype=float)) ** 2,
                         axis=1))
    return np.where(np.isnan(err), np.inf, err)


def is_degenerate_sample(points: np.ndarray,
                         tol: float = COLLINEAR_TOL) -> bool:
    """Check whether any three of the sample points are (nearly) collinear.

    A triangle counts as degenerate when one of its vertices coincides with
    another or when the sine of the angle at its first vertex falls below
    *tol*.

    Parameters
    ----------
    points : np.ndarray
        4 x 2 array of ``(x, y)`` coordinates from one image.
    """
    points = np.asarray(points, dtype=float)
    k = points.shape[0]
    for i in range(k - 2):
        for j in range(i + 1, k - 1):
            for m in range(j + 1, k):
                u = points[j] - points[i]
                v = points[m] - points[i]
                nu, nv = np.hypot(*u), np.hypot(*v)
                if nu < _EPS or nv < _EPS or np.hypot(*(v - u)) < _EPS:
                    return True
                cross = u[0] * v[1] - u[1] * v[0]
                if abs(cross) <= tol * nu * nv:
                    return True
    return False
