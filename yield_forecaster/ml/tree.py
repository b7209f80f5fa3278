"""
Greedy binary regression tree over dense numeric features.

Node representation
-------------------
A tree is an owned tagged variant: ``LeafNode(value)`` or
``SplitNode(feature_index, threshold, left, right)``. The ``kind`` field is a
pydantic discriminator, so a serialized tree is a nested JSON object that
round-trips through ``TypeAdapter(TreeNode)`` or any model embedding it.

Split search
------------
At each node, for every feature the distinct observed values are sorted and
each adjacent midpoint is a candidate threshold. Rows go left when
``value <= threshold``. Candidates that leave a side empty are skipped; the
rest are scored by the summed squared error of both sides around their own
means. The lowest score wins, and because only a strictly lower score
replaces the incumbent, ties resolve to the earliest feature and then the
earliest threshold.

Stopping
--------
A node becomes a leaf holding ``mean(y)`` when ``depth >= max_depth``, when it
holds ``min_split_samples`` rows or fewer, or when no candidate split exists
(every feature constant within the node).
"""

from __future__ import annotations

import math
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from yield_forecaster.exceptions import DimensionMismatchError


class LeafNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["leaf"] = "leaf"
    value: float


class SplitNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["split"] = "split"
    feature_index: int
    threshold: float
    left: TreeNode
    right: TreeNode


TreeNode = Annotated[Union[LeafNode, SplitNode], Field(discriminator="kind")]

SplitNode.model_rebuild()


def _mean(values: list[float]) -> float:
    return sum(values) / max(1, len(values))


def _sse(values: list[float]) -> float:
    mu = _mean(values)
    return sum((v - mu) ** 2 for v in values)


def find_best_split(X: list[list[float]], y: list[float]) -> tuple[int, float] | None:
    """Return ``(feature_index, threshold)`` minimizing partition SSE, or None."""
    n = len(X)
    n_features = len(X[0]) if n else 0
    best: tuple[int, float] | None = None
    best_score = math.inf

    for f in range(n_features):
        column = [row[f] for row in X]
        distinct = sorted(set(column))
        for lo, hi in zip(distinct, distinct[1:]):
            threshold = (lo + hi) / 2
            left_y = [t for v, t in zip(column, y) if v <= threshold]
            right_y = [t for v, t in zip(column, y) if v > threshold]
            if not left_y or not right_y:
                continue
            score = _sse(left_y) + _sse(right_y)
            if score < best_score:
                best_score = score
                best = (f, threshold)

    return best


def build_tree(
    X: list[list[float]],
    y: list[float],
    max_depth: int = 4,
    min_split_samples: int = 5,
    depth: int = 0,
) -> TreeNode:
    """Grow a regression tree on ``(X, y)`` starting at ``depth``.

    Args:
        X:                 Feature rows (all the same length).
        y:                 Targets aligned with ``X``.
        max_depth:         Nodes at this depth are always leaves.
        min_split_samples: Nodes with this many rows or fewer are leaves.
        depth:             Depth of the node being built (0 = root).

    Raises:
        DimensionMismatchError: If ``len(X) != len(y)``.
    """
    if len(X) != len(y):
        raise DimensionMismatchError(f"X has {len(X)} rows but y has {len(y)} values.")

    n = len(X)
    if depth >= max_depth or n <= min_split_samples:
        return LeafNode(value=_mean(y))

    split = find_best_split(X, y)
    if split is None:
        return LeafNode(value=_mean(y))

    feature_index, threshold = split
    left_X: list[list[float]] = []
    left_y: list[float] = []
    right_X: list[list[float]] = []
    right_y: list[float] = []
    for row, target in zip(X, y):
        if row[feature_index] <= threshold:
            left_X.append(row)
            left_y.append(target)
        else:
            right_X.append(row)
            right_y.append(target)

    return SplitNode(
        feature_index=feature_index,
        threshold=threshold,
        left=build_tree(left_X, left_y, max_depth, min_split_samples, depth + 1),
        right=build_tree(right_X, right_y, max_depth, min_split_samples, depth + 1),
    )


def find_leaf(tree: TreeNode, x: list[float]) -> LeafNode:
    """Descend from ``tree`` to the leaf that ``x`` falls into."""
    node = tree
    while isinstance(node, SplitNode):
        node = node.left if x[node.feature_index] <= node.threshold else node.right
    return node


def predict_tree(tree: TreeNode, x: list[float]) -> float:
    return find_leaf(tree, x).value


def tree_depth(tree: TreeNode) -> int:
    """Number of split levels on the longest root-to-leaf path."""
    if isinstance(tree, LeafNode):
        return 0
    return 1 + max(tree_depth(tree.left), tree_depth(tree.right))


def count_leaves(tree: TreeNode) -> int:
    if isinstance(tree, LeafNode):
        return 1
    return count_leaves(tree.left) + count_leaves(tree.right)
