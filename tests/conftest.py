"""Shared pytest fixtures."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from tests.factories import make_textured_image

SHIFT_X = 10
SHIFT_Y = 6


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for RANSAC sampling."""
    return np.random.default_rng(1234)


@pytest.fixture
def shifted_image_pair(tmp_path):
    """Two overlapping crops of one texture; B is A shifted by (-10, -6) px."""
    big = make_textured_image(260, 340, seed=7)
    img_a = big[0:240, 0:320]
    img_b = big[SHIFT_Y:SHIFT_Y + 240, SHIFT_X:SHIFT_X + 320]

    path_a = tmp_path / "pattern.png"
    path_b = tmp_path / "scene.png"
    Image.fromarray(img_a).save(path_a)
    Image.fromarray(img_b).save(path_b)
    return path_a, path_b
