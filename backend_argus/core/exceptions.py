"""
Application-level exceptions.

Model load problems (configuration / validation) are recoverable: the classifier
catches them and settles in rule-based mode. FeatureDimensionError is the only
error a caller of classify() can see, and only for a malformed vector.
"""

from __future__ import annotations


class ArgusError(Exception):
    """Base class for backend_argus errors."""


class ModelConfigurationError(ArgusError):
    """Model artifact missing or unreadable."""


class ModelValidationError(ArgusError):
    """Model artifact readable but its content violates the artifact contract."""


class InferenceError(ArgusError):
    """Forward pass produced non-finite logits (weights too large for float64)."""


class FeatureDimensionError(ArgusError, ValueError):
    """Feature vector has the wrong length or non-finite values."""

    def __init__(self, message: str, expected: int | None = None, actual: int | None = None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
