"""
Gradient-boosted regression trees under squared-error loss.

Algorithm
---------
1. Every row's running prediction starts at ``mean(y)`` (the initial bias).
2. Each round computes residuals ``y - running``, fits one ``build_tree`` to
   them (the negative gradient of squared error), appends the tree and adds
   ``learning_rate · tree(row)`` to every running prediction.
3. After the last round the residual standard deviation is computed from the
   final residuals with an ``n - 1`` denominator.

There is no second-order weighting, subsampling or per-leaf line search; the
fixed learning rate is the only shrinkage. Because every leaf holds the mean
residual of its rows, each round with ``0 < learning_rate <= 1`` can only
lower (or keep) the training SSE.

The artifact also carries the robust baseline coefficients used by the
guardrail (see ``baseline.py`` and ``guardrail.py``), so one stored object
is enough to serve guarded predictions.
"""

from __future__ import annotations

import logging
import math
from typing import Literal

from pydantic import BaseModel, ConfigDict

from yield_forecaster.exceptions import DimensionMismatchError, EmptyDatasetError
from yield_forecaster.ml.baseline import BaselineCoefficients
from yield_forecaster.ml.linalg import shape
from yield_forecaster.ml.tree import TreeNode, build_tree, predict_tree

logger = logging.getLogger(__name__)


class BoostedEnsemble(BaseModel):
    """Trained boosted-tree artifact.

    Attributes:
        family:         Discriminator for artifact (de)serialization.
        initial_bias:   Mean training target; the prediction with zero trees.
        learning_rate:  Shrinkage applied to every tree's output.
        trees:          Trees in the order they were fitted.
        residual_std:   Spread of the final training residuals (n - 1).
        feature_names:  Column order every tree's ``feature_index`` refers to.
        baseline:       Robust guardrail coefficients.
        max_depth:      Depth limit the trees were grown with.
    """

    model_config = ConfigDict(frozen=True)

    family: Literal["boosted"] = "boosted"
    initial_bias: float
    learning_rate: float
    trees: list[TreeNode]
    residual_std: float
    feature_names: list[str]
    baseline: BaselineCoefficients = BaselineCoefficients()
    max_depth: int = 4

    @property
    def n_trees(self) -> int:
        return len(self.trees)


def train_ensemble(
    X: list[list[float]],
    y: list[float],
    feature_names: list[str] | None = None,
    n_estimators: int = 30,
    learning_rate: float = 0.1,
    max_depth: int = 4,
    min_split_samples: int = 5,
    baseline: BaselineCoefficients | None = None,
) -> BoostedEnsemble:
    """Fit ``n_estimators`` residual trees sequentially.

    Args:
        X:                 Feature rows (raw, unscaled).
        y:                 Training target per row.
        feature_names:     Column names; defaults to ``x0..x{p-1}``.
        n_estimators:      Number of boosting rounds.
        learning_rate:     Multiplier on each tree's contribution.
        max_depth:         Depth limit for every tree.
        min_split_samples: Leaf size threshold passed to ``build_tree``.
        baseline:          Guardrail coefficients to embed (default zeros).

    Raises:
        EmptyDatasetError:      ``X`` has no rows.
        DimensionMismatchError: ``len(y) != len(X)`` or ragged ``X``.
    """
    n, p = shape(X)
    if n == 0:
        raise EmptyDatasetError("Boosted training requires at least one record.")
    if len(y) != n:
        raise DimensionMismatchError(f"X has {n} rows but y has {len(y)} values.")

    names = list(feature_names) if feature_names is not None else [f"x{j}" for j in range(p)]
    if len(names) != p:
        raise DimensionMismatchError(f"{len(names)} feature names for {p} columns.")

    initial_bias = sum(y) / n
    running = [initial_bias] * n
    trees: list[TreeNode] = []

    for round_idx in range(n_estimators):
        residuals = [target - pred for target, pred in zip(y, running)]
        tree = build_tree(X, residuals, max_depth=max_depth, min_split_samples=min_split_samples)
        trees.append(tree)
        for i, row in enumerate(X):
            running[i] += learning_rate * predict_tree(tree, row)

        if logger.isEnabledFor(logging.DEBUG):
            sse = sum((t - r) ** 2 for t, r in zip(y, running))
            logger.debug("Boosting round %d/%d  train_sse=%.6g", round_idx + 1, n_estimators, sse)

    ss_res = sum((target - pred) ** 2 for target, pred in zip(y, running))
    residual_std = math.sqrt(max(0.0, ss_res / max(1, n - 1)))

    logger.info(
        "Boosted ensemble trained: n=%d trees=%d lr=%s depth=%d residual_std=%.6g",
        n, len(trees), learning_rate, max_depth, residual_std,
    )
    return BoostedEnsemble(
        initial_bias=initial_bias,
        learning_rate=learning_rate,
        trees=trees,
        residual_std=residual_std,
        feature_names=names,
        baseline=baseline or BaselineCoefficients(),
        max_depth=max_depth,
    )


def predict_raw(ensemble: BoostedEnsemble, x: list[float]) -> float:
    """``initial_bias + Σ learning_rate · tree(x)``."""
    if len(x) != len(ensemble.feature_names):
        raise DimensionMismatchError(
            f"Feature vector has {len(x)} values; ensemble expects "
            f"{len(ensemble.feature_names)}."
        )
    total = ensemble.initial_bias
    for tree in ensemble.trees:
        total += ensemble.learning_rate * predict_tree(tree, x)
    return total


def staged_predict(ensemble: BoostedEnsemble, x: list[float]) -> list[float]:
    """Prediction after each boosting round (element ``k`` uses ``k + 1`` trees)."""
    stages: list[float] = []
    total = ensemble.initial_bias
    for tree in ensemble.trees:
        total += ensemble.learning_rate * predict_tree(tree, x)
        stages.append(total)
    return stages
