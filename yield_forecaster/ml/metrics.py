"""
In-sample fit metrics.

R² (coefficient of determination)
  ``1 - SSres / SStot``. Share of target variance the model explains; 1 is a
  perfect fit, 0 is no better than predicting the mean, negative is worse.
  Defined as 0 when the target is constant (``SStot == 0``) or the input is
  empty, so a degenerate dataset never reports a perfect score.

MAE (Mean Absolute Error)
  "On average we're off by X units of yield." Equally weights all errors;
  0 for empty input.
"""

from __future__ import annotations

from yield_forecaster.exceptions import DimensionMismatchError


def _check_lengths(y_true: list[float], y_pred: list[float]) -> None:
    if len(y_true) != len(y_pred):
        raise DimensionMismatchError(
            f"y_true has {len(y_true)} values but y_pred has {len(y_pred)}."
        )


def calculate_r2(y_true: list[float], y_pred: list[float]) -> float:
    """Coefficient of determination; 0 for empty or constant targets."""
    _check_lengths(y_true, y_pred)
    if not y_true:
        return 0.0
    mean = sum(y_true) / len(y_true)
    ss_tot = sum((t - mean) ** 2 for t in y_true)
    if ss_tot == 0:
        return 0.0
    ss_res = sum((t - p) ** 2 for t, p in zip(y_true, y_pred))
    return 1.0 - ss_res / ss_tot


def calculate_mae(y_true: list[float], y_pred: list[float]) -> float:
    """Mean absolute error; 0 for empty input."""
    _check_lengths(y_true, y_pred)
    if not y_true:
        return 0.0
    return sum(abs(t - p) for t, p in zip(y_true, y_pred)) / len(y_true)
