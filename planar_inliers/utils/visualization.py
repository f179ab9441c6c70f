"""
Visualization of verified correspondences.

Figures are written to disk rather than displayed, so the module works in
headless runs.
"""

import os

import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt


def _side_by_side(img1: np.ndarray, img2: np.ndarray) -> np.ndarray:
    if img1.ndim == 2:
        img1 = np.stack([img1] * 3, axis=-1)
    if img2.ndim == 2:
        img2 = np.stack([img2] * 3, axis=-1)

    h1, w1 = img1.shape[:2]
    h2, w2 = img2.shape[:2]
    combined = np.zeros((max(h1, h2), w1 + w2, 3), dtype=img1.dtype)
    combined[:h1, :w1] = img1
    combined[:h2, w1:w1 + w2] = img2
    return combined


def save_inlier_lines(img1: np.ndarray, img2: np.ndarray, inliers,
                      out_path: str, n: int = 50,
                      title: str = None) -> None:
    """Save a side-by-side image with lines joining the first *n* inliers.

    Parameters
    ----------
    img1, img2 : np.ndarray
        Image A and image B (RGB or grayscale).
    inliers : sequence of Correspondence
        Pairs of ``(x, y)`` points to draw, in their given order.
    out_path : str
        Destination file; parent directories are created.
    n : int
        Maximum number of pairs to draw.
    """
    w1 = img1.shape[1]
    inliers = list(inliers)
    shown = inliers[:n]

    parent = os.path.dirname(out_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    fig, ax = plt.subplots(figsize=(16, 8))
    ax.imshow(_side_by_side(img1, img2), cmap="gray")

    for pa, pb in shown:
        x1, y1 = pa
        x2, y2 = pb
        ax.plot([x1, x2 + w1], [y1, y2], "g-", linewidth=1, alpha=0.6)
        ax.plot(x1, y1, "ro", markersize=4)
        ax.plot(x2 + w1, y2, "ro", markersize=4)

    if title is None:
        title = f"Inliers – showing {len(shown)} of {len(inliers)}"
    ax.set_title(title)
    ax.axis("off")
    plt.tight_layout()
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
