"""
Per-column standardization for the ridge solver.

``fit_scaler`` uses the *population* standard deviation (divide by n). A
column with zero spread gets ``std = 1`` so ``transform`` never divides by
zero; constant columns also store the observed value itself as the mean so
every training row scales to exactly 0.0.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict

from yield_forecaster.exceptions import DimensionMismatchError, EmptyDatasetError
from yield_forecaster.ml.linalg import Matrix, shape


class Scaler(BaseModel):
    """Immutable per-feature means and standard deviations."""

    model_config = ConfigDict(frozen=True)

    means: list[float]
    stds: list[float]

    @property
    def n_features(self) -> int:
        return len(self.means)


def fit_scaler(X: Matrix) -> Scaler:
    """Compute column means and population standard deviations.

    Raises:
        EmptyDatasetError:      If ``X`` has no rows.
        DimensionMismatchError: If ``X`` is ragged.
    """
    n, p = shape(X)
    if n == 0:
        raise EmptyDatasetError("Cannot fit a scaler on an empty matrix.")

    means: list[float] = []
    stds: list[float] = []
    for j in range(p):
        column = [row[j] for row in X]
        first = column[0]
        if all(v == first for v in column):
            means.append(float(first))
            stds.append(1.0)
            continue
        mean = sum(column) / n
        variance = sum((v - mean) ** 2 for v in column) / n
        std = math.sqrt(variance)
        means.append(mean)
        stds.append(std if std != 0.0 else 1.0)

    return Scaler(means=means, stds=stds)


def transform_row(x: list[float], scaler: Scaler) -> list[float]:
    if len(x) != scaler.n_features:
        raise DimensionMismatchError(
            f"Feature vector has {len(x)} values; scaler expects {scaler.n_features}."
        )
    return [(v - m) / s for v, m, s in zip(x, scaler.means, scaler.stds)]


def transform(X: Matrix, scaler: Scaler) -> Matrix:
    """Standardize every row: ``(x - mean) / std``."""
    return [transform_row(row, scaler) for row in X]
