"""
Dense matrix helpers on plain ``list[list[float]]``.

Matrices here are tiny (at most a handful of features plus a bias column), so
explicit loops are fast enough and keep the ridge solver dependency-free.

Pivot clamping
--------------
``invert()`` runs Gauss-Jordan elimination *without* row swapping. Whenever a
pivot's magnitude drops below ``PIVOT_FLOOR`` it is replaced by
``PIVOT_FLOOR`` and elimination continues. Near-singular input therefore
yields a large but finite approximate inverse instead of an exception. Each
clamp is reported with a ``SingularMatrixApproximated`` warning and a log
line; callers that need to know programmatically use
``invert_with_diagnostics()``.
"""

from __future__ import annotations

import logging
import warnings

from yield_forecaster.exceptions import DimensionMismatchError, SingularMatrixApproximated

logger = logging.getLogger(__name__)

Matrix = list[list[float]]

PIVOT_FLOOR = 1e-10


def shape(m: Matrix) -> tuple[int, int]:
    """Return ``(rows, cols)``; raises if rows have unequal lengths."""
    n_rows = len(m)
    n_cols = len(m[0]) if n_rows else 0
    for i, row in enumerate(m):
        if len(row) != n_cols:
            raise DimensionMismatchError(
                f"Ragged matrix: row {i} has {len(row)} columns, expected {n_cols}."
            )
    return n_rows, n_cols


def identity(n: int) -> Matrix:
    return [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]


def transpose(m: Matrix) -> Matrix:
    if not m:
        return []
    return [list(col) for col in zip(*m)]


def multiply(a: Matrix, b: Matrix) -> Matrix:
    """Matrix product ``a @ b`` via the textbook triple loop.

    Raises:
        DimensionMismatchError: If ``a``'s column count differs from ``b``'s
            row count, or either operand is ragged.
    """
    a_rows, a_cols = shape(a)
    b_rows, b_cols = shape(b)
    if a_cols != b_rows:
        raise DimensionMismatchError(
            f"Cannot multiply {a_rows}x{a_cols} by {b_rows}x{b_cols}."
        )

    result = [[0.0] * b_cols for _ in range(a_rows)]
    for i in range(a_rows):
        a_row = a[i]
        out_row = result[i]
        for j in range(b_cols):
            total = 0.0
            for k in range(a_cols):
                total += a_row[k] * b[k][j]
            out_row[j] = total
    return result


def invert_with_diagnostics(m: Matrix) -> tuple[Matrix, int]:
    """Invert a square matrix; also return how many pivots were clamped.

    Returns:
        Tuple ``(inverse, clamped_pivots)``. ``clamped_pivots > 0`` means the
        input was singular or near-singular and the inverse is approximate.

    Raises:
        DimensionMismatchError: If ``m`` is not square.
    """
    n_rows, n_cols = shape(m)
    if n_rows != n_cols:
        raise DimensionMismatchError(f"Cannot invert a non-square {n_rows}x{n_cols} matrix.")

    n = n_rows
    inverse = identity(n)
    work = [list(map(float, row)) for row in m]
    clamped = 0

    for i in range(n):
        pivot = work[i][i]
        if abs(pivot) < PIVOT_FLOOR:
            pivot = PIVOT_FLOOR
            clamped += 1

        for j in range(n):
            work[i][j] /= pivot
            inverse[i][j] /= pivot

        for k in range(n):
            if k == i:
                continue
            factor = work[k][i]
            if factor == 0.0:
                continue
            for j in range(n):
                work[k][j] -= factor * work[i][j]
                inverse[k][j] -= factor * inverse[i][j]

    return inverse, clamped


def invert(m: Matrix) -> Matrix:
    """Invert a square matrix by Gauss-Jordan elimination with pivot clamping.

    Emits ``SingularMatrixApproximated`` when any pivot had to be clamped.

    Raises:
        DimensionMismatchError: If ``m`` is not square.
    """
    inverse, clamped = invert_with_diagnostics(m)
    if clamped:
        logger.warning(
            "Matrix inversion clamped %d near-zero pivot(s); result is approximate.",
            clamped,
        )
        warnings.warn(
            f"{clamped} pivot(s) below {PIVOT_FLOOR} were clamped during inversion.",
            SingularMatrixApproximated,
            stacklevel=2,
        )
    return inverse


def dot(u: list[float], v: list[float]) -> float:
    if len(u) != len(v):
        raise DimensionMismatchError(f"Vector lengths differ: {len(u)} vs {len(v)}.")
    return sum(a * b for a, b in zip(u, v))
