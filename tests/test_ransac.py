"""Unit tests for RANSAC homography estimation."""

from __future__ import annotations

import numpy as np
import pytest

from planar_inliers.errors import (
    DegenerateModel,
    InsufficientCorrespondences,
    InvalidParameter,
)
import planar_inliers.geometry.ransac as ransac_module
from planar_inliers.geometry.homography import fit_homography, reprojection_error
from planar_inliers.geometry.ransac import (
    count_inliers,
    ransac_homography,
    required_iterations,
)
from planar_inliers.types import Correspondence
from tests.factories import H_TRUE, make_correspondences, project

GRID = np.array([[x, y] for x in (0.0, 320.0, 640.0) for y in (0.0, 240.0, 480.0)])


def _points(corrs):
    pa = np.array([c.point_a for c in corrs])
    pb = np.array([c.point_b for c in corrs])
    return pa, pb


@pytest.mark.unit
class TestRequiredIterations:
    """Tests for the adaptive iteration budget."""

    def test_all_inliers_needs_one_draw(self) -> None:
        assert required_iterations(1.0, 0.99) == 1

    def test_no_inliers_uses_cap(self) -> None:
        assert required_iterations(0.0, 0.99, max_iters=500) == 500

    def test_half_inliers(self) -> None:
        # log(0.01) / log(1 - 0.5 ** 4) = 71.36
        assert required_iterations(0.5, 0.99, max_iters=2000) == 72

    def test_clamped_to_cap(self) -> None:
        assert required_iterations(0.1, 0.99, max_iters=100) == 100

    def test_higher_confidence_needs_more(self) -> None:
        assert required_iterations(0.4, 0.999) > required_iterations(0.4, 0.9)


@pytest.mark.unit
class TestCountInliers:
    """Tests for consensus scoring."""

    def test_strict_threshold(self) -> None:
        pa = np.array([[0.0, 0.0], [0.0, 0.0], [0.0, 0.0]])
        pb = np.array([[0.0, 1.0], [0.0, 2.5], [0.0, 3.0]])

        mask, errors = count_inliers(np.eye(3), pa, pb, threshold=2.5)

        assert mask.tolist() == [True, False, False]
        np.testing.assert_allclose(errors, [1.0, 2.5, 3.0])


@pytest.mark.unit
class TestRansacHomography:
    """Tests for ransac_homography."""

    def test_recovers_homography_under_noise(self) -> None:
        corrs, _ = make_correspondences(100, noise=0.5, seed=1)
        pa, pb = _points(corrs)

        for seed in range(5):
            H, inliers = ransac_homography(corrs, reproj_threshold=2.5, rng=seed)

            assert len(inliers) >= 90
            ia, ib = _points(inliers)
            assert np.all(reprojection_error(H, ia, ib) < 2.5)
            np.testing.assert_allclose(project(H, GRID), project(H_TRUE, GRID), atol=1.5)

    def test_exact_data_gives_exact_model(self, rng) -> None:
        corrs, _ = make_correspondences(30, seed=2)

        H, inliers = ransac_homography(corrs, rng=rng)

        assert len(inliers) == 30
        np.testing.assert_allclose(H, H_TRUE, rtol=1e-6, atol=1e-8)

    def test_heavy_outlier_contamination(self) -> None:
        corrs, truth = make_correspondences(60, n_outliers=140, noise=0.5, seed=3)
        true_set = {c for c, t in zip(corrs, truth) if t}

        for seed in range(5):
            _, inliers = ransac_homography(corrs, confidence=0.999, rng=seed)

            assert inliers
            precision = sum(c in true_set for c in inliers) / len(inliers)
            assert precision > 0.9
            assert len(inliers) >= 50

    def test_inliers_keep_input_order(self, rng) -> None:
        corrs, _ = make_correspondences(40, n_outliers=20, noise=0.3, seed=4)

        _, inliers = ransac_homography(corrs, rng=rng)

        positions = [corrs.index(c) for c in inliers]
        assert positions == sorted(positions)

    def test_same_seed_same_result(self) -> None:
        corrs, _ = make_correspondences(50, n_outliers=50, noise=0.5, seed=5)

        H1, in1 = ransac_homography(corrs, rng=np.random.default_rng(42))
        H2, in2 = ransac_homography(corrs, rng=np.random.default_rng(42))

        np.testing.assert_array_equal(H1, H2)
        assert in1 == in2

    def test_without_refinement(self, rng) -> None:
        corrs, _ = make_correspondences(50, noise=0.3, seed=6)

        H, inliers = ransac_homography(corrs, refine=False, rng=rng)

        assert len(inliers) >= 45
        assert H[2, 2] == pytest.approx(1.0)

    def test_result_is_read_only(self, rng) -> None:
        corrs, _ = make_correspondences(10, seed=7)

        H, inliers = ransac_homography(corrs, rng=rng)

        assert isinstance(inliers, tuple)
        with pytest.raises(ValueError):
            H[0, 0] = 5.0

    def test_three_correspondences(self, rng) -> None:
        corrs, _ = make_correspondences(3, seed=8)
        with pytest.raises(InsufficientCorrespondences):
            ransac_homography(corrs, rng=rng)

    def test_empty_input(self, rng) -> None:
        with pytest.raises(InsufficientCorrespondences):
            ransac_homography([], rng=rng)

    def test_collinear_input_is_degenerate(self, rng) -> None:
        corrs = [Correspondence((float(i), 2.0 * i), (float(i) + 5.0, 2.0 * i))
                 for i in range(12)]
        with pytest.raises(DegenerateModel):
            ransac_homography(corrs, rng=rng, max_sampling_attempts=50)

    @pytest.mark.parametrize("kwargs", [
        {"reproj_threshold": 0.0},
        {"reproj_threshold": -1.0},
        {"reproj_threshold": float("nan")},
        {"max_iters": 0},
        {"confidence": 1.0},
        {"confidence": 0.0},
        {"max_sampling_attempts": 0},
        {"max_iters": float("inf")},
        {"max_iters": float("nan")},
        {"max_iters": 2.5},
        {"max_iters": "many"},
        {"max_sampling_attempts": float("inf")},
        {"max_sampling_attempts": float("nan")},
    ])
    def test_invalid_parameters(self, rng, kwargs) -> None:
        corrs, _ = make_correspondences(10, seed=9)
        with pytest.raises(InvalidParameter):
            ransac_homography(corrs, rng=rng, **kwargs)

    def test_parameters_checked_before_count(self, rng) -> None:
        corrs, _ = make_correspondences(3, seed=10)
        with pytest.raises(InvalidParameter):
            ransac_homography(corrs, reproj_threshold=-2.0, rng=rng)

    def test_verbose_summary(self, rng, capsys) -> None:
        corrs, _ = make_correspondences(20, seed=11)

        ransac_homography(corrs, rng=rng, verbose=True)

        assert "20 inliers / 20 matches" in capsys.readouterr().out


def _translated(H: np.ndarray, dx: float) -> np.ndarray:
    """H followed by a shift of dx pixels along x in image B."""
    T = np.array([[1.0, 0.0, dx], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    return T @ H


@pytest.mark.unit
class TestModelSelection:
    """Tests for hypothesis selection, stopping and refinement."""

    @pytest.mark.parametrize("first_is_exact", [True, False])
    def test_tie_on_count_keeps_lower_error(self, monkeypatch, first_is_exact) -> None:
        corrs, _ = make_correspondences(10, n_outliers=10, seed=12)
        shifted = _translated(H_TRUE, 1.0)
        models = [H_TRUE, shifted] if first_is_exact else [shifted, H_TRUE]
        draws = iter(models)
        monkeypatch.setattr(ransac_module, "_draw_model",
                            lambda *args: next(draws, shifted))

        pa, pb = _points(corrs)
        exact_count = int(count_inliers(H_TRUE, pa, pb, 2.5)[0].sum())
        shifted_count = int(count_inliers(shifted, pa, pb, 2.5)[0].sum())
        assert exact_count == shifted_count == 10

        H, inliers = ransac_homography(corrs, refine=False, rng=0)

        np.testing.assert_allclose(H, H_TRUE)
        assert len(inliers) == 10

    def test_clean_data_stops_after_first_draw(self, monkeypatch) -> None:
        corrs, _ = make_correspondences(30, seed=2)
        calls = []
        original = ransac_module._draw_model

        def counting_draw(*args):
            calls.append(1)
            return original(*args)

        monkeypatch.setattr(ransac_module, "_draw_model", counting_draw)

        ransac_homography(corrs, rng=0, max_iters=2000)

        assert len(calls) == 1

    def test_contaminated_data_runs_longer(self, monkeypatch) -> None:
        corrs, _ = make_correspondences(60, n_outliers=140, noise=0.5, seed=3)
        calls = []
        original = ransac_module._draw_model

        def counting_draw(*args):
            calls.append(1)
            return original(*args)

        monkeypatch.setattr(ransac_module, "_draw_model", counting_draw)

        ransac_homography(corrs, rng=0, max_iters=2000)

        # w = 0.3 needs about 570 draws at 0.99 confidence
        assert 100 < len(calls) <= 2000

    def test_refined_model_is_fit_on_returned_inliers(self) -> None:
        corrs, _ = make_correspondences(100, noise=0.3, seed=13)

        H_ref, inliers = ransac_homography(corrs, reproj_threshold=10.0,
                                           refine=True, rng=0)
        H_raw, _ = ransac_homography(corrs, reproj_threshold=10.0,
                                     refine=False, rng=0)

        assert len(inliers) == 100
        ia, ib = _points(inliers)
        np.testing.assert_allclose(H_ref, fit_homography(ia, ib), rtol=1e-9, atol=1e-12)
        assert not np.allclose(H_ref, H_raw, rtol=0.0, atol=1e-9)
