"""
Exceptions raised by the correspondence-verification pipeline.

Matches rejected by the ratio test are not errors and never raise.
"""


class PlanarInliersError(Exception):
    """Base class for all pipeline errors."""


class InvalidParameter(PlanarInliersError, ValueError):
    """A tunable or an input table is outside its valid domain."""


class InsufficientCorrespondences(PlanarInliersError):
    """Fewer correspondences than a homography fit requires."""

    def __init__(self, count: int, required: int = 4) -> None:
        self.count = count
        self.required = required
        super().__init__(
            f"need at least {required} correspondences to fit a homography, "
            f"got {count}"
        )


class DegenerateModel(PlanarInliersError):
    """No non-degenerate minimal sample could be fitted."""


class ImageLoadError(PlanarInliersError):
    """An input image exists but could not be decoded."""
