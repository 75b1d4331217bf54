"""Vector and matrix helpers shared by the scorer and the online updater."""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass

import numpy as np

from ..errors import DimensionMismatch, NumericalInstability

PIVOT_EPSILON = 1e-10

logger = logging.getLogger(__name__)


def get_env_float(name: str, default: float) -> float:
    """Parse an environment variable as float with fallback."""

    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def get_env_int(name: str, default: int) -> int:
    """Parse an environment variable as int with fallback."""

    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def ensure_1d(array: np.ndarray) -> np.ndarray:
    """Return a contiguous 1-D float64 array."""

    arr = np.asarray(array, dtype=float)
    if arr.ndim != 1:
        raise DimensionMismatch("Expected 1-D array", expected=1, actual=arr.ndim)
    return np.ascontiguousarray(arr, dtype=float)


def ensure_2d(array: np.ndarray) -> np.ndarray:
    """Return a contiguous 2-D float64 array."""

    arr = np.asarray(array, dtype=float)
    if arr.ndim != 2:
        raise DimensionMismatch("Expected 2-D array", expected=2, actual=arr.ndim)
    return np.ascontiguousarray(arr, dtype=float)


def _ensure_square(matrix: np.ndarray) -> np.ndarray:
    arr = ensure_2d(matrix)
    if arr.shape[0] != arr.shape[1]:
        raise DimensionMismatch(
            f"Expected square matrix, got {arr.shape}", expected="square", actual=arr.shape
        )
    return arr


def _check_same_shape(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape != b.shape:
        raise DimensionMismatch(
            f"Shape {a.shape} does not match {b.shape}", expected=a.shape, actual=b.shape
        )


def dot_product(a: np.ndarray, b: np.ndarray) -> float:
    left, right = ensure_1d(a), ensure_1d(b)
    _check_same_shape(left, right)
    return float(left @ right)


def outer_product(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.outer(ensure_1d(a), ensure_1d(b))


def matrix_add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    left, right = ensure_2d(a), ensure_2d(b)
    _check_same_shape(left, right)
    return left + right


def vector_add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    left, right = ensure_1d(a), ensure_1d(b)
    _check_same_shape(left, right)
    return left + right


def matrix_vector_multiply(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    mat, vec = ensure_2d(matrix), ensure_1d(vector)
    if mat.shape[1] != vec.shape[0]:
        raise DimensionMismatch(
            f"Cannot multiply {mat.shape} matrix by length-{vec.shape[0]} vector",
            expected=mat.shape[1],
            actual=vec.shape[0],
        )
    return mat @ vec


def identity_matrix(size: int) -> np.ndarray:
    if size <= 0:
        raise DimensionMismatch("Identity size must be positive", expected=">0", actual=size)
    return np.eye(size, dtype=float)


@dataclass
class InverseResult:
    """Inverse plus the number of elimination steps skipped on tiny pivots."""

    inverse: np.ndarray
    skipped_pivots: int = 0

    @property
    def stable(self) -> bool:
        return self.skipped_pivots == 0


def gauss_jordan_inverse(matrix: np.ndarray) -> InverseResult:
    """Invert ``matrix`` by Gauss-Jordan elimination with partial pivoting.

    Columns whose best pivot has magnitude below ``PIVOT_EPSILON`` are left
    uneliminated. The returned inverse is then only an approximation and
    ``skipped_pivots`` reports how many columns were affected.
    """

    mat = _ensure_square(matrix)
    n = mat.shape[0]
    augmented = np.hstack([mat, np.eye(n)])
    skipped = 0

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(augmented[col:, col])))
        if pivot_row != col:
            augmented[[col, pivot_row]] = augmented[[pivot_row, col]]

        pivot = augmented[col, col]
        if abs(pivot) < PIVOT_EPSILON:
            skipped += 1
            continue

        augmented[col] /= pivot
        factors = augmented[:, col].copy()
        factors[col] = 0.0
        augmented -= np.outer(factors, augmented[col])

    if skipped:
        logger.warning("Matrix inversion skipped %d near-zero pivot(s)", skipped)
        warnings.warn(
            f"Gauss-Jordan inversion skipped {skipped} near-zero pivot(s)",
            NumericalInstability,
            stacklevel=2,
        )
    return InverseResult(inverse=augmented[:, n:].copy(), skipped_pivots=skipped)


def matrix_inverse(matrix: np.ndarray) -> np.ndarray:
    return gauss_jordan_inverse(matrix).inverse


def sherman_morrison_update(a_inverse: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Return ``inverse(A + x x^T)`` given ``inverse(A)``."""

    inv = _ensure_square(a_inverse)
    vec = ensure_1d(x)
    if inv.shape[0] != vec.shape[0]:
        raise DimensionMismatch(
            f"Inverse of size {inv.shape[0]} cannot absorb length-{vec.shape[0]} vector",
            expected=inv.shape[0],
            actual=vec.shape[0],
        )
    inv_x = inv @ vec
    denom = 1.0 + float(vec @ inv_x)
    updated = inv - np.outer(inv_x, inv_x) / denom
    # keep exact symmetry; A^-1 of a symmetric A is symmetric
    return (updated + updated.T) / 2.0


def shuffle(items: list, rng: np.random.Generator) -> list:
    """Return ``items`` in a uniformly random order."""

    order = rng.permutation(len(items))
    return [items[int(i)] for i in order]
