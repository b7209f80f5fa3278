"""
Tests for yield_forecaster/ml/linalg.py.

What we test
------------
1. transpose / multiply on known small matrices.
2. multiply rejects incompatible shapes; shape() rejects ragged input.
3. invert(M) · M ≈ I for well-conditioned square matrices.
4. invert rejects non-square input.
5. Singular input is clamped, not fatal: a SingularMatrixApproximated
   warning is emitted and the result stays finite.
"""

from __future__ import annotations

import math

import pytest

from yield_forecaster.exceptions import DimensionMismatchError, SingularMatrixApproximated
from yield_forecaster.ml.linalg import (
    dot,
    identity,
    invert,
    invert_with_diagnostics,
    multiply,
    shape,
    transpose,
)


def _assert_identity(m, tol=1e-6):
    n = len(m)
    for i in range(n):
        for j in range(n):
            expected = 1.0 if i == j else 0.0
            assert m[i][j] == pytest.approx(expected, abs=tol)


# ── transpose / multiply ──────────────────────────────────────────────────────

class TestTransposeMultiply:
    def test_transpose_rectangular(self):
        assert transpose([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]) == [
            [1.0, 4.0], [2.0, 5.0], [3.0, 6.0],
        ]

    def test_transpose_empty(self):
        assert transpose([]) == []

    def test_multiply_known_product(self):
        a = [[1.0, 2.0], [3.0, 4.0]]
        b = [[5.0, 6.0], [7.0, 8.0]]
        assert multiply(a, b) == [[19.0, 22.0], [43.0, 50.0]]

    def test_multiply_by_column_vector(self):
        assert multiply([[1.0, 2.0, 3.0]], [[1.0], [1.0], [1.0]]) == [[6.0]]

    def test_multiply_shape_mismatch_raises(self):
        with pytest.raises(DimensionMismatchError):
            multiply([[1.0, 2.0]], [[1.0, 2.0]])

    def test_ragged_matrix_rejected(self):
        with pytest.raises(DimensionMismatchError):
            shape([[1.0, 2.0], [3.0]])

    def test_dot(self):
        assert dot([1.0, 2.0], [3.0, 4.0]) == 11.0

    def test_dot_length_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            dot([1.0], [1.0, 2.0])


# ── invert ────────────────────────────────────────────────────────────────────

class TestInvert:
    @pytest.mark.parametrize(
        "m",
        [
            [[2.0]],
            [[4.0, 1.0], [2.0, 3.0]],
            [[4.0, 1.0, 0.0], [1.0, 3.0, 1.0], [0.0, 1.0, 2.0]],
            [[10.0, 2.0, 1.0, 0.5], [2.0, 8.0, 0.0, 1.0], [1.0, 0.0, 6.0, 2.0], [0.5, 1.0, 2.0, 5.0]],
        ],
    )
    def test_inverse_times_matrix_is_identity(self, m):
        _assert_identity(multiply(invert(m), m))
        _assert_identity(multiply(m, invert(m)))

    def test_identity_is_its_own_inverse(self):
        assert invert(identity(3)) == identity(3)

    def test_non_square_raises(self):
        with pytest.raises(DimensionMismatchError):
            invert([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

    def test_well_conditioned_reports_no_clamps(self):
        _, clamped = invert_with_diagnostics([[4.0, 1.0], [2.0, 3.0]])
        assert clamped == 0

    def test_singular_matrix_warns_and_stays_finite(self):
        with pytest.warns(SingularMatrixApproximated):
            inv = invert([[0.0, 0.0], [0.0, 0.0]])
        assert all(math.isfinite(v) for row in inv for v in row)

    def test_zero_pivot_clamp_count(self):
        _, clamped = invert_with_diagnostics([[1.0, 2.0], [2.0, 4.0]])
        assert clamped == 1

    def test_input_not_mutated(self):
        m = [[4.0, 1.0], [2.0, 3.0]]
        invert(m)
        assert m == [[4.0, 1.0], [2.0, 3.0]]
