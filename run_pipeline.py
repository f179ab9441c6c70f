#!/usr/bin/env python3
"""
run_pipeline.py – Planar correspondence verification between two images

Detects and describes keypoints in both images, finds top-2 descriptor
neighbours, filters them with the NNDR ratio test, separates inliers with a
RANSAC homography and writes the inlier pairs as JSON.

Usage
-----
    python run_pipeline.py pattern.png scene.png
    python run_pipeline.py pattern.png scene.png --output out/inliers.json
    python run_pipeline.py pattern.png scene.png --config configs/default.yaml
    python run_pipeline.py pattern.png scene.png --ratio 0.7 --threshold 3 --seed 1
"""

import argparse
import os
import sys
import time

from planar_inliers.config import apply_overrides, load_config
from planar_inliers.errors import PlanarInliersError
from planar_inliers.features.extract import detect_and_describe
from planar_inliers.geometry.ransac import ransac_homography
from planar_inliers.matching.knn import knn_candidates
from planar_inliers.matching.nndr import build_correspondences
from planar_inliers.utils.image_io import load_image_pair, to_grayscale
from planar_inliers.utils.inliers_io import save_inliers
from planar_inliers.utils.visualization import save_inlier_lines


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def error(message: str) -> int:
    print(f"[ERROR] {message}", file=sys.stderr)
    return 1


# ──────────────────────────────────────────────────────────────────────────────
# Pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run(img_path1: str, img_path2: str, cfg: dict,
        show_results: bool = False, verbose: bool = False) -> dict:
    """Run every stage for one image pair and return summary metrics."""
    f_cfg, m_cfg, r_cfg = cfg["features"], cfg["matching"], cfg["ransac"]
    out_path = cfg["output"]["path"]

    img1, img2 = load_image_pair(img_path1, img_path2)
    gray1 = to_grayscale(img1)
    gray2 = to_grayscale(img2)
    print(f"  Loaded images  {img1.shape[1]}×{img1.shape[0]}  /  "
          f"{img2.shape[1]}×{img2.shape[0]}")

    # ── 1. Features ───────────────────────────────────────────────────────────
    print(f"  Stage 1 – Keypoints + descriptors ({f_cfg['detector']})")
    kp1, desc1, metric = detect_and_describe(
        gray1, f_cfg["detector"], f_cfg["n_keypoints"])
    kp2, desc2, _ = detect_and_describe(
        gray2, f_cfg["detector"], f_cfg["n_keypoints"])
    print(f"    Image 1: {len(kp1)} keypoints")
    print(f"    Image 2: {len(kp2)} keypoints")

    # ── 2. Top-2 matching + NNDR ──────────────────────────────────────────────
    print("  Stage 2 – Feature matching (NNDR)")
    candidates = knn_candidates(desc1, desc2, metric=metric)
    matches = build_correspondences(candidates, kp1, kp2,
                                    ratio=m_cfg["ratio"])
    print(f"    {len(matches)} of {len(candidates)} candidates accepted  "
          f"(ratio={m_cfg['ratio']})")

    # ── 3. RANSAC homography ──────────────────────────────────────────────────
    print("  Stage 3 – RANSAC homography")
    H, inliers = ransac_homography(
        matches,
        reproj_threshold=r_cfg["reproj_threshold"],
        refine=r_cfg["refine"],
        rng=r_cfg["seed"],
        max_iters=r_cfg["max_iters"],
        confidence=r_cfg["confidence"],
        verbose=verbose,
    )
    print(f"    {len(inliers)} inliers / {len(matches)} matches")
    if verbose:
        for row in H:
            print("    [" + "  ".join(f"{v:12.6f}" for v in row) + "]")

    # ── 4. Output ─────────────────────────────────────────────────────────────
    save_inliers(out_path, inliers)
    print(f"  Saved inliers → {out_path}")

    if show_results:
        fig_path = os.path.splitext(out_path)[0] + "_matches.jpg"
        save_inlier_lines(img1, img2, inliers, fig_path,
                          n=cfg["visualization"]["draw_inliers"])
        print(f"  Saved visualisation → {fig_path}")

    return {
        "keypoints_1": len(kp1),
        "keypoints_2": len(kp2),
        "candidates": len(candidates),
        "nndr_matches": len(matches),
        "inliers": len(inliers),
        "homography": H,
    }


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Verify point correspondences between two images of a "
                    "planar scene and save the RANSAC inliers"
    )
    p.add_argument("image1", help="Pattern image (image A)")
    p.add_argument("image2", help="Scene image (image B)")
    p.add_argument(
        "--output", default=None,
        help="Path of the inliers JSON file (default: ./inliers.json)",
    )
    p.add_argument(
        "--config", default=None,
        help="YAML configuration file (default: built-in settings)",
    )
    p.add_argument("--detector", choices=["orb", "sift"], default=None,
                   help="Keypoint detector / descriptor")
    p.add_argument("--n-keypoints", type=int, default=None,
                   help="Maximum ORB keypoints per image")
    p.add_argument("--ratio", type=float, default=None,
                   help="NNDR ratio threshold in (0, 1] (default: 0.80)")
    p.add_argument("--threshold", type=float, default=None,
                   help="RANSAC reprojection threshold in pixels "
                        "(default: 2.50)")
    p.add_argument("--max-iters", type=int, default=None,
                   help="Maximum RANSAC iterations (default: 2000)")
    p.add_argument("--confidence", type=float, default=None,
                   help="RANSAC confidence in (0, 1) (default: 0.99)")
    p.add_argument("--seed", type=int, default=None,
                   help="Random seed for reproducible RANSAC sampling")
    p.add_argument("--no-refine", action="store_true",
                   help="Skip the least-squares refit on the inlier set")
    p.add_argument("--show-results", action="store_true",
                   help="Also save an image of the inlier matches")
    p.add_argument("--verbose", action="store_true",
                   help="Print RANSAC details and the homography")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.config is not None and not os.path.exists(args.config):
        return error(f"Config file not found: {args.config}")
    for path in (args.image1, args.image2):
        if not os.path.exists(path):
            return error(f"Image not found: {path}")

    try:
        cfg = load_config(args.config)
        cfg = apply_overrides(
            cfg,
            detector=args.detector,
            n_keypoints=args.n_keypoints,
            ratio=args.ratio,
            threshold=args.threshold,
            max_iters=args.max_iters,
            confidence=args.confidence,
            seed=args.seed,
            refine=False if args.no_refine else None,
            output=args.output,
        )
    except PlanarInliersError as exc:
        return error(str(exc))

    banner("Planar Correspondence Verification")
    print(f"  Image 1 : {args.image1}")
    print(f"  Image 2 : {args.image2}")
    print(f"  Config  : {args.config or '(defaults)'}")
    print(f"  Output  : {cfg['output']['path']}")

    t0 = time.time()
    try:
        run(args.image1, args.image2, cfg,
            show_results=args.show_results, verbose=args.verbose)
    except PlanarInliersError as exc:
        return error(f"{type(exc).__name__}: {exc}")

    print(f"\nPipeline complete in {time.time() - t0:.1f}s")
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
