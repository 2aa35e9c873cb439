"""Operator library: one function per operator name, each mutating the stack in place.

Binary operators pop ``a`` (top) then ``b`` and compute ``b OP a``. Operators
raise a `PostfixRuntimeError` subclass on bad operands; the evaluator restores
the top `operator_reach` slots, so no operator needs to restore what it popped.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Final

from . import linalg
from .errors import OperandTypeError, StackUnderflowError
from .values import ValueKind, coerce, is_a, is_number, normalize_number, quote, text_of

Stack = list[object]


def _pop(stack: Stack, count: int, op: str) -> list[object]:
    """Pop `count` values, returned bottom-to-top."""
    if len(stack) < count:
        raise StackUnderflowError(f"{op} needs {count} values, stack has {len(stack)}")
    values = stack[len(stack) - count :]
    del stack[len(stack) - count :]
    return values


def _as_number(value: object, *, op: str) -> int | float:
    number = coerce(value, ValueKind.NUMBER)
    if not is_number(number):
        raise OperandTypeError(f"{op} expects a number, got {text_of(value)!r}")
    return number


def _as_int(value: object, *, op: str) -> int:
    return int(_as_number(value, op=op))


_INT_PREFIX_RE: Final = re.compile(r"\s*([+-]?[0-9]+)")


def _to_int(value: object) -> int:
    """Total integer coercion: the leading integer prefix of the text, else 0."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    text = coerce(value, ValueKind.STRING) if is_a(value, ValueKind.STRING) else text_of(value)
    match = _INT_PREFIX_RE.match(text)
    return int(match.group(1)) if match else 0


def _as_bool(value: object) -> bool:
    return bool(coerce(value, ValueKind.BOOLEAN))


def _as_list(value: object, kind: ValueKind, *, op: str) -> list[object]:
    parsed = coerce(value, kind) if is_a(value, kind) else None
    if not isinstance(parsed, list):
        raise OperandTypeError(f"{op} expects a {kind.value}, got {text_of(value)!r}")
    return parsed


def _numeric(op: str, left: int | float, right: int | float) -> int | float:
    if op == "+":
        result = left + right
    elif op == "-":
        result = left - right
    elif op == "*":
        result = left * right
    elif op == "/":
        result = _ieee_divide(left, right)
    elif op == "%":
        result = left % right
    elif op == "**":
        result = left**right
    else:
        raise OperandTypeError(f"Unknown arithmetic operator {op!r}")
    if isinstance(result, complex):
        raise OperandTypeError(f"{left!r} {op} {right!r} has no real result")
    return normalize_number(result)


def _ieee_divide(left: int | float, right: int | float) -> float:
    left, right = float(left), float(right)
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _binary_numeric(op: str, left: object, right: object) -> int | float:
    return _numeric(op, _as_number(left, op=op), _as_number(right, op=op))


def _elementwise_add(left: object, right: object) -> object:
    if isinstance(left, list) and isinstance(right, list):
        return [_elementwise_add(x, y) for x, y in zip(left, right)]
    if is_number(left) and is_number(right):
        return _numeric("+", left, right)
    if isinstance(left, str) and isinstance(right, str):
        return coerce(left, ValueKind.STRING) + coerce(right, ValueKind.STRING)
    raise OperandTypeError(f"cannot add array elements {left!r} and {right!r}")


def _op_add(stack: Stack) -> None:
    b, a = _pop(stack, 2, "+")
    if is_a(a, ValueKind.ARRAY) and is_a(b, ValueKind.ARRAY):
        left = _as_list(b, ValueKind.ARRAY, op="+")
        right = _as_list(a, ValueKind.ARRAY, op="+")
        stack.append(_elementwise_add(left, right))
    elif is_a(a, ValueKind.STRING) and is_a(b, ValueKind.STRING):
        stack.append(quote(coerce(b, ValueKind.STRING) + coerce(a, ValueKind.STRING)))
    else:
        stack.append(_binary_numeric("+", b, a))


def _op_multiply(stack: Stack) -> None:
    b, a = _pop(stack, 2, "*")
    if is_a(b, ValueKind.MATRIX) and is_a(a, ValueKind.ARRAY):
        matrix = _as_list(b, ValueKind.MATRIX, op="*")
        stack.append(linalg.matvec(matrix, _as_list(a, ValueKind.ARRAY, op="*")))
    elif is_a(a, ValueKind.MATRIX) and is_a(b, ValueKind.MATRIX):
        # The top matrix is the left factor.
        left = _as_list(a, ValueKind.MATRIX, op="*")
        stack.append(linalg.matmul(left, _as_list(b, ValueKind.MATRIX, op="*")))
    elif is_a(a, ValueKind.ARRAY) and is_a(b, ValueKind.ARRAY):
        left = _as_list(b, ValueKind.ARRAY, op="*")
        stack.append(linalg.dot(left, _as_list(a, ValueKind.ARRAY, op="*")))
    elif is_a(a, ValueKind.NUMBER) and is_a(b, ValueKind.STRING):
        stack.append(quote(coerce(b, ValueKind.STRING) * _as_int(a, op="*")))
    else:
        stack.append(_binary_numeric("*", b, a))


def _make_arithmetic(op: str) -> Callable[[Stack], None]:
    def apply(stack: Stack) -> None:
        b, a = _pop(stack, 2, op)
        stack.append(_binary_numeric(op, b, a))

    apply.__name__ = f"_op_arithmetic_{op}"
    return apply


def _comparison_operands(left: object, right: object) -> tuple[object, object]:
    if is_a(left, ValueKind.NUMBER) and is_a(right, ValueKind.NUMBER):
        return coerce(left, ValueKind.NUMBER), coerce(right, ValueKind.NUMBER)
    return text_of(left), text_of(right)


_COMPARATORS: Final[dict[str, Callable[[object, object], object]]] = {
    "==": lambda b, a: b == a,
    "!=": lambda b, a: b != a,
    ">": lambda b, a: b > a,
    "<": lambda b, a: b < a,
    ">=": lambda b, a: b >= a,
    "<=": lambda b, a: b <= a,
    "<=>": lambda b, a: (b > a) - (b < a),
}


def _make_comparison(op: str) -> Callable[[Stack], None]:
    compare = _COMPARATORS[op]

    def apply(stack: Stack) -> None:
        b, a = _pop(stack, 2, op)
        stack.append(compare(*_comparison_operands(b, a)))

    apply.__name__ = f"_op_compare_{op}"
    return apply


def _op_and(stack: Stack) -> None:
    b, a = _pop(stack, 2, "&")
    stack.append(_as_bool(b) and _as_bool(a))


def _op_or(stack: Stack) -> None:
    b, a = _pop(stack, 2, "|")
    stack.append(_as_bool(b) or _as_bool(a))


def _op_xor(stack: Stack) -> None:
    b, a = _pop(stack, 2, "^")
    if is_a(a, ValueKind.BOOLEAN) and is_a(b, ValueKind.BOOLEAN):
        stack.append(_as_bool(b) != _as_bool(a))
    else:
        stack.append(_to_int(b) ^ _to_int(a))


def _shift_left(value: int, count: int) -> int:
    return value << count if count >= 0 else value >> -count


def _op_shift_left(stack: Stack) -> None:
    b, a = _pop(stack, 2, "<<")
    stack.append(_shift_left(_to_int(b), _to_int(a)))


def _op_shift_right(stack: Stack) -> None:
    b, a = _pop(stack, 2, ">>")
    stack.append(_shift_left(_to_int(b), -_to_int(a)))


def _op_not(stack: Stack) -> None:
    (value,) = _pop(stack, 1, "!")
    stack.append("false" if _as_bool(value) else "true")


def _op_complement(stack: Stack) -> None:
    (value,) = _pop(stack, 1, "~")
    stack.append(~_to_int(value))


def _op_dup(stack: Stack) -> None:
    if stack:
        stack.append(stack[-1])


def _op_drop(stack: Stack) -> None:
    if stack:
        stack.pop()


def _op_swap(stack: Stack) -> None:
    b, a = _pop(stack, 2, "SWAP")
    stack.extend((a, b))


def _op_rot(stack: Stack) -> None:
    a, b, c = _pop(stack, 3, "ROT")
    stack.extend((b, c, a))


def _make_roll(op: str, *, left: bool) -> Callable[[Stack], None]:
    def apply(stack: Stack) -> None:
        if not stack:
            return
        count = _to_int(stack.pop())
        if count <= 0 or count > len(stack):
            return
        items = _pop(stack, count, op)
        if left:
            stack.extend(items[1:] + items[:1])
        else:
            stack.extend(items[-1:] + items[:-1])

    apply.__name__ = f"_op_{op.lower()}"
    return apply


def _op_ifelse(stack: Stack) -> None:
    b, a, condition = _pop(stack, 3, "IFELSE")
    stack.append(b if _as_bool(condition) else a)


def _op_cross(stack: Stack) -> None:
    b, a = _pop(stack, 2, "x")
    left = _as_list(b, ValueKind.ARRAY, op="x")
    stack.append(linalg.cross(left, _as_list(a, ValueKind.ARRAY, op="x")))


def _op_transpose(stack: Stack) -> None:
    (value,) = _pop(stack, 1, "TRANSP")
    matrix = coerce(value, ValueKind.MATRIX) if is_a(value, ValueKind.MATRIX) else None
    if not isinstance(matrix, list):
        stack.append(value)
        return
    stack.append(linalg.transpose(matrix))


OPERATOR_TABLE: Final[Mapping[str, Callable[[Stack], None]]] = MappingProxyType(
    {
        "+": _op_add,
        "-": _make_arithmetic("-"),
        "*": _op_multiply,
        "/": _make_arithmetic("/"),
        "**": _make_arithmetic("**"),
        "%": _make_arithmetic("%"),
        "DROP": _op_drop,
        "DUP": _op_dup,
        "SWAP": _op_swap,
        "ROT": _op_rot,
        "ROLL": _make_roll("ROLL", left=True),
        "ROLLD": _make_roll("ROLLD", left=False),
        "==": _make_comparison("=="),
        "!=": _make_comparison("!="),
        ">": _make_comparison(">"),
        "<": _make_comparison("<"),
        ">=": _make_comparison(">="),
        "<=": _make_comparison("<="),
        "<=>": _make_comparison("<=>"),
        "&": _op_and,
        "|": _op_or,
        "^": _op_xor,
        "IFELSE": _op_ifelse,
        "<<": _op_shift_left,
        ">>": _op_shift_right,
        "!": _op_not,
        "~": _op_complement,
        "x": _op_cross,
        "TRANSP": _op_transpose,
    }
)


_REACH: Final[Mapping[str, int]] = MappingProxyType(
    {
        **{name: 2 for name in OPERATOR_TABLE},
        "DUP": 1,
        "DROP": 1,
        "!": 1,
        "~": 1,
        "TRANSP": 1,
        "ROT": 3,
        "IFELSE": 3,
    }
)


def operator_reach(name: str, stack: Stack) -> int:
    """How many top slots operator `name` may pop or rewrite on `stack`."""
    if name in ("ROLL", "ROLLD"):
        if not stack:
            return 0
        count = _to_int(stack[-1])
        reach = count + 1 if 0 < count < len(stack) else 1
    else:
        reach = _REACH.get(name, len(stack))
    return min(reach, len(stack))


def apply_operator(name: str, stack: Stack) -> None:
    """Run operator `name` against `stack`. `EVAL` is handled by the evaluator."""
    try:
        operator = OPERATOR_TABLE[name]
    except KeyError:
        raise OperandTypeError(f"{name!r} is not a table operator") from None
    operator(stack)
