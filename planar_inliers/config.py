"""
Pipeline configuration.

Settings come from a YAML file layered over built-in defaults, with
command-line overrides applied last.
"""

import copy

import yaml

from planar_inliers.errors import InvalidParameter

DEFAULT_CONFIG = {
    "features": {
        "detector": "orb",
        "n_keypoints": 1000,
    },
    "matching": {
        "ratio": 0.80,
    },
    "ransac": {
        "reproj_threshold": 2.50,
        "max_iters": 2000,
        "confidence": 0.99,
        "refine": True,
        "seed": None,
    },
    "output": {
        "path": "./inliers.json",
    },
    "visualization": {
        "draw_inliers": 50,
    },
}

# flat override name -> (section, key)
OVERRIDE_KEYS = {
    "detector": ("features", "detector"),
    "n_keypoints": ("features", "n_keypoints"),
    "ratio": ("matching", "ratio"),
    "threshold": ("ransac", "reproj_threshold"),
    "max_iters": ("ransac", "max_iters"),
    "confidence": ("ransac", "confidence"),
    "refine": ("ransac", "refine"),
    "seed": ("ransac", "seed"),
    "output": ("output", "path"),
}


def load_config(path: str = None) -> dict:
    """Load *path* (YAML) over :data:`DEFAULT_CONFIG`.

    With no path the defaults are returned.  Unknown sections and non-mapping
    documents, unknown keys and YAML syntax errors raise
    :class:`InvalidParameter`.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return cfg

    with open(path, "r") as fh:
        try:
            loaded = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise InvalidParameter(f"{path}: malformed YAML: {exc}") from exc
    if loaded is None:
        return cfg
    if not isinstance(loaded, dict):
        raise InvalidParameter(f"{path}: top level must be a mapping")

    for section, values in loaded.items():
        if section not in cfg:
            raise InvalidParameter(f"{path}: unknown section {section!r}")
        if not isinstance(values, dict):
            raise InvalidParameter(f"{path}: section {section!r} must be a mapping")
        unknown = sorted(set(values) - set(cfg[section]))
        if unknown:
            raise InvalidParameter(
                f"{path}: unknown keys in section {section!r}: {unknown}")
        cfg[section].update(values)
    return cfg


def apply_overrides(cfg: dict, **overrides) -> dict:
    """Return a copy of *cfg* with the non-``None`` *overrides* applied."""
    cfg = copy.deepcopy(cfg)
    for name, value in overrides.items():
        if value is None:
            continue
        if name not in OVERRIDE_KEYS:
            raise InvalidParameter(f"unknown override {name!r}")
        section, key = OVERRIDE_KEYS[name]
        cfg[section][key] = value
    return cfg
