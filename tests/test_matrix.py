from __future__ import annotations

import numpy as np
import pytest

from gallery_bandit.bandit.utils import (
    dot_product,
    gauss_jordan_inverse,
    identity_matrix,
    matrix_add,
    matrix_inverse,
    matrix_vector_multiply,
    outer_product,
    sherman_morrison_update,
    shuffle,
    vector_add,
)
from gallery_bandit.errors import DimensionMismatch, NumericalInstability


def test_basic_products():
    assert dot_product([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == 32.0
    outer = outer_product([1.0, 2.0], [3.0, 4.0, 5.0])
    assert outer.shape == (2, 3)
    assert outer[1, 2] == 10.0
    assert np.array_equal(vector_add([1.0, 2.0], [3.0, 4.0]), [4.0, 6.0])
    assert np.array_equal(matrix_add(np.eye(2), np.eye(2)), 2 * np.eye(2))
    assert np.array_equal(matrix_vector_multiply([[1.0, 2.0], [3.0, 4.0]], [1.0, 1.0]), [3.0, 7.0])
    assert np.array_equal(identity_matrix(3), np.eye(3))


def test_dimension_mismatches_raise():
    with pytest.raises(DimensionMismatch):
        dot_product([1.0, 2.0], [1.0, 2.0, 3.0])
    with pytest.raises(DimensionMismatch):
        vector_add([1.0], [1.0, 2.0])
    with pytest.raises(DimensionMismatch):
        matrix_add(np.eye(2), np.eye(3))
    with pytest.raises(DimensionMismatch):
        matrix_vector_multiply(np.eye(3), [1.0, 2.0])
    with pytest.raises(DimensionMismatch):
        matrix_inverse(np.ones((2, 3)))
    with pytest.raises(DimensionMismatch):
        identity_matrix(0)


def test_gauss_jordan_matches_numpy_on_spd_matrix():
    rng = np.random.default_rng(3)
    basis = rng.normal(size=(6, 6))
    matrix = np.eye(6) + basis @ basis.T
    result = gauss_jordan_inverse(matrix)
    assert result.stable
    assert np.allclose(result.inverse, np.linalg.inv(matrix))
    assert np.allclose(matrix @ result.inverse, np.eye(6))


def test_gauss_jordan_pivots_rows():
    permutation = np.array([[0.0, 1.0], [1.0, 0.0]])
    assert np.allclose(matrix_inverse(permutation), permutation)


def test_singular_matrix_warns_instead_of_raising():
    with pytest.warns(NumericalInstability):
        result = gauss_jordan_inverse(np.array([[1.0, 1.0], [1.0, 1.0]]))
    assert result.skipped_pivots == 1
    assert not result.stable
    assert np.all(np.isfinite(result.inverse))


def test_sherman_morrison_matches_direct_inverse():
    x = np.array([0.5, -1.0, 2.0])
    direct = np.linalg.inv(np.eye(3) + np.outer(x, x))
    assert np.allclose(sherman_morrison_update(np.eye(3), x), direct)
    with pytest.raises(DimensionMismatch):
        sherman_morrison_update(np.eye(3), [1.0, 2.0])


def test_shuffle_is_a_permutation():
    rng = np.random.default_rng(0)
    items = list(range(10))
    shuffled = shuffle(items, rng)
    assert sorted(shuffled) == items
    assert items == list(range(10))
