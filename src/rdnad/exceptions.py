"""Exception and warning classes for rdnad."""

__all__ = [
    "DegenerateCaseError",
    "DegenerateFeatureError",
    "DegenerateFeatureWarning",
    "ValidationError",
]


class ValidationError(ValueError):
    """Raised when inputs are malformed.

    Covers missing or non-finite feature values, vectors whose length does not
    match the instance count they describe, and scan settings out of order.
    Raised before any computation begins.
    """


class DegenerateFeatureError(ValidationError):
    """Raised when a feature has zero range in the reference set.

    Min-max normalization divides by ``max - min`` so constant features cannot
    be scaled. Remove them upstream or use the ``"zero"`` constant feature policy.
    """

    def __init__(self, features: list[int]) -> None:
        self.features = features
        super().__init__(
            f"Features {features} have zero range in the reference set and cannot be min-max normalized; "
            "remove them or use constant_features='zero'."
        )


class DegenerateCaseError(ArithmeticError):
    """Raised when no valid neighbourhood threshold exists for a given k."""

    def __init__(self, k: int, reason: str) -> None:
        self.k = k
        super().__init__(f"Degenerate neighbourhood for k={k}: {reason}")


class DegenerateFeatureWarning(UserWarning):
    """Issued when constant features are zeroed out instead of rejected."""
