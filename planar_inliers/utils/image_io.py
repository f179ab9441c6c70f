"""
Image I/O helpers.

Thin wrappers around PIL and scikit-image so the driver loads and converts
both inputs the same way.
"""

import os

import numpy as np
from PIL import Image
from skimage.color import rgb2gray

from planar_inliers.errors import ImageLoadError


def load_image_pair(path1: str, path2: str):
    """Load the pattern and scene images as uint8 RGB arrays.

    Parameters
    ----------
    path1, path2 : str
        File paths to image A and image B.

    Returns
    -------
    img1, img2 : np.ndarray
        H x W x 3 uint8 arrays.

    Raises
    ------
    FileNotFoundError
        If either path does not exist.
    ImageLoadError
        If a file cannot be decoded as an image.
    """
    images = []
    for path in (path1, path2):
        if not os.path.exists(path):
            raise FileNotFoundError(f"Image not found: {path}")
        try:
            with Image.open(path) as im:
                images.append(np.array(im.convert("RGB")))
        except OSError as exc:
            raise ImageLoadError(f"Error loading image {path}: {exc}") from exc
    return images[0], images[1]


def to_grayscale(img: np.ndarray) -> np.ndarray:
    """Convert a uint8 RGB (or already single-channel) image to float in [0, 1]."""
    if img.ndim == 2:
        return img.astype(float) / 255.0 if img.dtype == np.uint8 else img
    return rgb2gray(img)
