"""
Inlier file I/O.

Writes verified correspondences as the ``{"points": [...]}`` JSON document
consumed downstream, with both points of every pair rounded to integer
pixels, and reads such documents back.
"""

import json
import math
import os


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def _rounded_point(point) -> dict:
    x, y = point
    return {"x": round_half_up(x), "y": round_half_up(y)}


def inliers_to_document(inliers) -> dict:
    """Build the JSON-serialisable inlier document.

    Parameters
    ----------
    inliers : sequence of Correspondence
        Pairs to write; ``point_a`` becomes ``pattern_point`` and ``point_b``
        becomes ``image_point``.  Order is kept and nothing is filtered.

    Returns
    -------
    dict
        ``{"points": [{"pattern_point": {...}, "image_point": {...}}, ...]}``
    """
    return {"points": [
        {
            "pattern_point": _rounded_point(c.point_a),
            "image_point": _rounded_point(c.point_b),
        }
        for c in inliers
    ]}


def save_inliers(path: str, inliers) -> None:
    """Write *inliers* to *path*, one correspondence per line.

    An empty inlier set produces ``{"points": []}``.
    """
    doc = inliers_to_document(inliers)
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    with open(path, "w") as fh:
        if not doc["points"]:
            fh.write('{"points": []}\n')
            return
        fh.write('{"points": [\n')
        fh.write(",\n".join(json.dumps(p) for p in doc["points"]))
        fh.write("\n]}\n")


def load_inliers(path: str) -> list:
    """Read an inlier document back into integer point pairs.

    Returns
    -------
    list of ((int, int), (int, int))
        ``(pattern_point, image_point)`` pairs in file order.
    """
    with open(path, "r") as fh:
        doc = json.load(fh)

    return [
        ((p["pattern_point"]["x"], p["pattern_point"]["y"]),
         (p["image_point"]["x"], p["image_point"]["y"]))
        for p in doc["points"]
    ]
