"""Tests for the scikit-image keypoint adapter and image helpers."""

from __future__ import annotations

import numpy as np
import pytest

from planar_inliers.errors import ImageLoadError, InvalidParameter
from planar_inliers.features.extract import detect_and_describe
from planar_inliers.utils.image_io import load_image_pair, to_grayscale
from tests.factories import make_textured_image


@pytest.mark.unit
class TestDetectAndDescribe:
    """Tests for detect_and_describe."""

    def test_orb_on_texture(self) -> None:
        gray = to_grayscale(make_textured_image(200, 200, seed=1))

        kp, desc, metric = detect_and_describe(gray, "orb", n_keypoints=200)

        assert metric == "hamming"
        assert len(kp) > 0
        assert kp.shape == (len(desc), 2)
        assert np.all(kp[:, 0] < 200) and np.all(kp[:, 1] < 200)

    def test_blank_image_has_no_features(self) -> None:
        kp, desc, _ = detect_and_describe(np.zeros((100, 100)), "orb")

        assert len(kp) == 0
        assert len(desc) == 0

    def test_unknown_detector(self) -> None:
        with pytest.raises(InvalidParameter):
            detect_and_describe(np.zeros((10, 10)), "surf")

    def test_non_positive_keypoint_budget(self) -> None:
        with pytest.raises(InvalidParameter):
            detect_and_describe(np.zeros((10, 10)), "orb", n_keypoints=0)


@pytest.mark.unit
class TestImageIO:
    """Tests for image loading helpers."""

    def test_load_pair(self, shifted_image_pair) -> None:
        img1, img2 = load_image_pair(*map(str, shifted_image_pair))

        assert img1.shape == (240, 320, 3)
        assert img1.dtype == np.uint8
        assert img2.shape == img1.shape

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_image_pair(str(tmp_path / "a.png"), str(tmp_path / "b.png"))

    def test_undecodable_file(self, tmp_path) -> None:
        a, b = tmp_path / "a.png", tmp_path / "b.png"
        a.write_bytes(b"not an image")
        b.write_bytes(b"not an image")

        with pytest.raises(ImageLoadError, match="a.png"):
            load_image_pair(str(a), str(b))

    def test_grayscale_range(self) -> None:
        gray = to_grayscale(make_textured_image(20, 30))

        assert gray.shape == (20, 30)
        assert 0.0 <= gray.min() and gray.max() <= 1.0
