"""
Labelled failure kinds raised by the model engine and its orchestration.

The numeric core surfaces detectable problems as these exceptions instead of
returning NaN or garbage predictions. Most also subclass a builtin
(``ValueError``, ``LookupError``, ``RuntimeError``) so callers that only know
the builtin contract keep working.

``SingularMatrixApproximated`` is a *warning*: matrix inversion clamps tiny
pivots and keeps going, so the condition is flagged rather than fatal.
"""

from __future__ import annotations


class YieldForecasterError(Exception):
    """Base class for all yield_forecaster errors."""


class DimensionMismatchError(YieldForecasterError, ValueError):
    """Matrix or vector shapes are incompatible for the requested operation."""


class InsufficientSamplesError(YieldForecasterError, ValueError):
    """Too few rows to fit the requested parameters (n <= p + 1 for ridge)."""


class EmptyDatasetError(YieldForecasterError, ValueError):
    """A training or prediction input contained zero records."""


class NonFiniteResultError(YieldForecasterError, ValueError):
    """Fitting produced NaN or infinite parameters."""


class ColumnValidationError(YieldForecasterError, ValueError):
    """An input file is missing required columns."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing columns: {', '.join(self.missing)}")


class ModelNotTrainedError(YieldForecasterError, LookupError):
    """No trained artifact is stored for the requested model type."""


class SyncError(YieldForecasterError, RuntimeError):
    """Remote backup upload or download failed."""


class SingularMatrixApproximated(RuntimeWarning):
    """A near-zero pivot was replaced during inversion; the result is approximate."""
