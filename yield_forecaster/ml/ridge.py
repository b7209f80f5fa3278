"""
Closed-form ridge regression.

Training solves the normal equation on standardized features with a leading
bias column::

    w = (XᵗX + α·I′)⁻¹ Xᵗy

``I′`` is the identity with its bias entry zeroed, so the intercept is never
shrunk. ``w[0]`` is the intercept and ``w[1:]`` the per-feature coefficients
(in standardized units).

Residual spread
---------------
``residual_std = sqrt(max(0, SSres / (n - p - 1)))``, unbiased by the number
of fitted parameters including the intercept. This is undefined for
``n <= p + 1``, which raises ``InsufficientSamplesError`` instead of dividing
by zero or a negative count.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Literal

from pydantic import BaseModel, ConfigDict

from yield_forecaster.exceptions import (
    DimensionMismatchError,
    EmptyDatasetError,
    InsufficientSamplesError,
    NonFiniteResultError,
    SingularMatrixApproximated,
)
from yield_forecaster.ml.intervals import PredictionInterval, symmetric_interval
from yield_forecaster.ml.linalg import Matrix, invert_with_diagnostics, multiply, shape, transpose
from yield_forecaster.ml.scaler import Scaler, fit_scaler, transform, transform_row

logger = logging.getLogger(__name__)


class RidgeModel(BaseModel):
    """Trained ridge artifact.

    Attributes:
        family:         Discriminator for artifact (de)serialization.
        feature_names:  Column order the weights are aligned to.
        weights:        One coefficient per scaled feature (bias excluded).
        intercept:      Bias term.
        scaler:         Standardization fitted on the training matrix.
        residual_std:   In-sample residual standard deviation.
        alpha:          L2 strength used for this fit.
        pivot_clamped:  True when the normal-equation inverse was approximate.
    """

    model_config = ConfigDict(frozen=True)

    family: Literal["ridge"] = "ridge"
    feature_names: list[str]
    weights: list[float]
    intercept: float
    scaler: Scaler
    residual_std: float
    alpha: float = 1.0
    pivot_clamped: bool = False


def train_ridge(
    X: Matrix,
    y: list[float],
    alpha: float = 1.0,
    feature_names: list[str] | None = None,
) -> RidgeModel:
    """Fit an L2-regularized linear model in closed form.

    Args:
        X:             Raw (unscaled) feature matrix, one row per record.
        y:             Target per row.
        alpha:         L2 penalty on the coefficients (not the intercept).
        feature_names: Optional column names; defaults to ``x0..x{p-1}``.

    Returns:
        A frozen ``RidgeModel``.

    Raises:
        EmptyDatasetError:        ``X`` has no rows.
        DimensionMismatchError:   ``len(y) != len(X)`` or ragged ``X``.
        InsufficientSamplesError: ``n <= p + 1``.
        NonFiniteResultError:     Solution contains NaN/inf.
    """
    n, p = shape(X)
    if n == 0:
        raise EmptyDatasetError("Ridge training requires at least one record.")
    if len(y) != n:
        raise DimensionMismatchError(f"X has {n} rows but y has {len(y)} values.")
    dof = n - p - 1
    if dof <= 0:
        raise InsufficientSamplesError(
            f"Ridge with {p} features needs more than {p + 1} records; got {n}."
        )

    names = list(feature_names) if feature_names is not None else [f"x{j}" for j in range(p)]
    if len(names) != p:
        raise DimensionMismatchError(f"{len(names)} feature names for {p} columns.")

    scaler = fit_scaler(X)
    design = [[1.0] + row for row in transform(X, scaler)]
    design_t = transpose(design)

    gram = multiply(design_t, design)
    for j in range(1, p + 1):
        gram[j][j] += alpha

    gram_inv, clamped = invert_with_diagnostics(gram)
    if clamped:
        logger.warning(
            "Ridge normal equation was near-singular (%d pivot(s) clamped, alpha=%s).",
            clamped, alpha,
        )
        warnings.warn(
            f"Ridge fit used an approximate inverse ({clamped} pivot(s) clamped).",
            SingularMatrixApproximated,
            stacklevel=2,
        )

    xty = multiply(design_t, [[v] for v in y])
    solution = [row[0] for row in multiply(gram_inv, xty)]
    intercept, weights = solution[0], solution[1:]

    if not all(math.isfinite(w) for w in solution):
        raise NonFiniteResultError(f"Ridge solution is not finite: {solution}")

    ss_res = 0.0
    for row, target in zip(design, y):
        fitted = sum(w * v for w, v in zip(solution, row))
        ss_res += (target - fitted) ** 2
    residual_std = math.sqrt(max(0.0, ss_res / dof))

    logger.debug(
        "Ridge fit: n=%d p=%d alpha=%s intercept=%.6g residual_std=%.6g",
        n, p, alpha, intercept, residual_std,
    )
    return RidgeModel(
        feature_names=names,
        weights=weights,
        intercept=intercept,
        scaler=scaler,
        residual_std=residual_std,
        alpha=alpha,
        pivot_clamped=clamped > 0,
    )


def predict_point(model: RidgeModel, x: list[float]) -> float:
    """Standardize ``x`` with the stored scaler and apply the linear model."""
    scaled = transform_row(x, model.scaler)
    return model.intercept + sum(w * v for w, v in zip(model.weights, scaled))


def predict_ridge(
    model: RidgeModel,
    x: list[float],
    confidence_pct: float = 0.80,
) -> PredictionInterval:
    """Point estimate plus a ``mean ± z·residual_std`` band (lower floored at 0).

    Raises:
        DimensionMismatchError: If ``x`` does not match the trained feature count.
    """
    return symmetric_interval(predict_point(model, x), model.residual_std, confidence_pct)
