"""JAX kernels behind the vector and matrix operators.

Operands arrive as plain Python lists and results leave as plain Python
lists or numbers, so nothing jax-typed ever lands on the interpreter stack.
Integer products that could leave the jax integer range are computed with
exact Python arithmetic instead.
"""

from __future__ import annotations

import os
from typing import Final

import jax
import jax.numpy as jnp

from .errors import OperandTypeError, ShapeError
from .values import is_number, normalize_number

_ENABLE_X64: Final[bool] = os.environ.get("POSTFIX_JAX_ENABLE_X64", "1") != "0"

if _ENABLE_X64:
    # Process-wide: without it jax narrows every array to int32/float32.
    jax.config.update("jax_enable_x64", True)

_INT_DTYPE: Final = jnp.int64 if _ENABLE_X64 else jnp.int32
_FLOAT_DTYPE: Final = jnp.float64 if _ENABLE_X64 else jnp.float32
_INT_LIMIT: Final[int] = int(jnp.iinfo(_INT_DTYPE).max)


def _require_numeric(items: list[object], *, where: str) -> None:
    for idx, item in enumerate(items):
        if not is_number(item):
            raise OperandTypeError(f"{where}[{idx}] must be a number, got {item!r}")


def _dtype_for(items: list[object]):
    return _FLOAT_DTYPE if any(isinstance(item, float) for item in items) else _INT_DTYPE


def _check_matrix(value: list[object], *, where: str) -> None:
    if not value or not all(isinstance(row, list) for row in value):
        raise ShapeError(f"{where} must be a non-empty list of rows")
    width = len(value[0])
    for idx, row in enumerate(value):
        if len(row) != width:
            raise ShapeError(f"{where} row {idx} has length {len(row)}, expected {width}")
        _require_numeric(row, where=f"{where}[{idx}]")


def _as_vector(value: list[object]) -> jnp.ndarray:
    return jnp.asarray(value, dtype=_dtype_for(value))


def _as_matrix(value: list[list[object]]) -> jnp.ndarray:
    return jnp.asarray(value, dtype=_dtype_for(_flat(value)))


def _magnitude(items: list[object]) -> int | float:
    return max((abs(item) for item in items), default=0)


def _fits(left: list[object], right: list[object], terms: int) -> bool:
    """True when every product sum of `terms` pairs stays inside the jax integer range."""
    bound = _magnitude(left) * _magnitude(right) * max(terms, 1)
    return bound <= _INT_LIMIT and _magnitude(left) <= _INT_LIMIT and _magnitude(right) <= _INT_LIMIT


def _flat(matrix: list[list[object]]) -> list[object]:
    return [item for row in matrix for item in row]


def to_python(value):
    """Convert a jax result to normalized Python numbers or nested lists."""
    if hasattr(value, "tolist"):
        value = value.tolist()
    if isinstance(value, list):
        return [to_python(item) for item in value]
    return normalize_number(value)


def _exact_dot(left: list[object], right: list[object]) -> int | float:
    return normalize_number(sum(x * y for x, y in zip(left, right)))


def dot(left: list[object], right: list[object]) -> int | float:
    """Zip-truncated dot product."""
    n = min(len(left), len(right))
    left, right = left[:n], right[:n]
    _require_numeric(left, where="left")
    _require_numeric(right, where="right")
    if not _fits(left, right, n):
        return _exact_dot(left, right)
    return to_python(jnp.dot(_as_vector(left), _as_vector(right)))


def matvec(matrix: list[object], vector: list[object]) -> list[int | float]:
    _check_matrix(matrix, where="matrix")
    _require_numeric(vector, where="vector")
    width = len(matrix[0])
    if width != len(vector):
        raise ShapeError(f"matrix width {width} does not match vector length {len(vector)}")
    if not _fits(_flat(matrix), vector, width):
        return [_exact_dot(row, vector) for row in matrix]
    return to_python(jnp.matmul(_as_matrix(matrix), _as_vector(vector)))


def matmul(left: list[object], right: list[object]) -> list[list[int | float]]:
    _check_matrix(left, where="left")
    _check_matrix(right, where="right")
    inner = len(left[0])
    if inner != len(right):
        raise ShapeError(
            f"incompatible matrix shapes ({len(left)}, {inner}) and ({len(right)}, {len(right[0])})"
        )
    if not _fits(_flat(left), _flat(right), inner):
        columns = [list(col) for col in zip(*right)]
        return [[_exact_dot(row, col) for col in columns] for row in left]
    return to_python(jnp.matmul(_as_matrix(left), _as_matrix(right)))


def transpose(matrix: list[object]) -> list[list[int | float]]:
    _check_matrix(matrix, where="matrix")
    if _magnitude(_flat(matrix)) > _INT_LIMIT:
        return [list(col) for col in zip(*matrix)]
    return to_python(jnp.transpose(_as_matrix(matrix)))


def cross(left: list[object], right: list[object]) -> list[int | float]:
    if len(left) != 3 or len(right) != 3:
        raise ShapeError(f"cross product needs two 3-element vectors, got lengths {len(left)} and {len(right)}")
    _require_numeric(left, where="left")
    _require_numeric(right, where="right")
    if not _fits(left, right, 2):
        (a1, a2, a3), (b1, b2, b3) = left, right
        return [normalize_number(v) for v in (a2 * b3 - a3 * b2, a3 * b1 - a1 * b3, a1 * b2 - a2 * b1)]
    return to_python(jnp.cross(_as_vector(left), _as_vector(right)))
