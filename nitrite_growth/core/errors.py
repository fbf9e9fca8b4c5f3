# nitrite_growth/core/errors.py
from __future__ import annotations


class InsufficientSignalError(RuntimeError):
    """Raised when a sigmoidal fit is used although it was not categorized as sigmoidal."""


class NonPositiveIntensityError(ValueError):
    """Raised when the exponential window contains intensities that cannot be log-transformed."""


class DegenerateRegressionError(ValueError):
    """Raised when the regression input cannot define a slope (too few points / distinct times)."""
