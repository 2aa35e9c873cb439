"""Runtime value model: on-demand classification, coercion and output formatting.

Stack slots are either raw token text or computed Python values (``int``,
``float``, ``bool``, ``list``). Raw text is re-classified every time an
operator looks at it, always in the order of ``classify``.
"""

from __future__ import annotations

import json
import math
import re
from enum import Enum
from typing import Final


class ValueKind(str, Enum):
    OPERATOR = "operator"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    MATRIX = "matrix"
    LAMBDA = "lambda"
    LITERAL = "literal"


OPERATORS: Final[frozenset[str]] = frozenset(
    {
        "+",
        "-",
        "*",
        "/",
        "**",
        "%",
        "DROP",
        "DUP",
        "SWAP",
        "ROT",
        "ROLL",
        "ROLLD",
        "==",
        "!=",
        ">",
        "<",
        ">=",
        "<=",
        "<=>",
        "&",
        "|",
        "^",
        "IFELSE",
        "<<",
        ">>",
        "!",
        "~",
        "x",
        "TRANSP",
        "EVAL",
    }
)

_KIND_ALIASES: Final[dict[str, ValueKind]] = {"vector": ValueKind.ARRAY}

_NUMBER_RE = re.compile(
    r"""
    ^
    [+-]?
    (?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)          # mantissa
    (?:[eE][+-]?[0-9]+)?                      # exponent
    $
    """,
    re.VERBOSE,
)
_INTEGER_RE = re.compile(r"^-?[0-9]+$")
_STRING_RE = re.compile(r'^"[^"]*"$')


def _is_operator_text(text: str) -> bool:
    return not text.startswith('"') and not text.endswith('"') and text in OPERATORS


def _is_number_text(text: str) -> bool:
    return _NUMBER_RE.match(text) is not None


def _is_string_text(text: str) -> bool:
    return _STRING_RE.match(text) is not None


def _is_boolean_text(text: str) -> bool:
    return text.lower() in {"true", "false"}


def _is_array_text(text: str) -> bool:
    return text.startswith("[") and text.endswith("]") and not text.startswith("[[")


def _is_matrix_text(text: str) -> bool:
    return text.startswith("[[") and text.endswith("]]")


def _is_lambda_text(text: str) -> bool:
    return text.startswith("{") and text.endswith("}")


# Order is significant: later predicates are only consulted when the earlier
# ones reject, so "[[1,2]]" never reaches the array check as a match.
_TEXT_PREDICATES: Final = (
    (ValueKind.OPERATOR, _is_operator_text),
    (ValueKind.NUMBER, _is_number_text),
    (ValueKind.STRING, _is_string_text),
    (ValueKind.BOOLEAN, _is_boolean_text),
    (ValueKind.ARRAY, _is_array_text),
    (ValueKind.MATRIX, _is_matrix_text),
    (ValueKind.LAMBDA, _is_lambda_text),
)
_TEXT_PREDICATE_BY_KIND: Final = dict(_TEXT_PREDICATES)


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_matrix_value(value: object) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(row, list) for row in value)


def _classify_native(value: object) -> ValueKind:
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if is_number(value):
        return ValueKind.NUMBER
    if isinstance(value, list):
        return ValueKind.MATRIX if is_matrix_value(value) else ValueKind.ARRAY
    return ValueKind.LITERAL


def _as_kind(kind: ValueKind | str) -> ValueKind:
    if isinstance(kind, ValueKind):
        return kind
    if kind in _KIND_ALIASES:
        return _KIND_ALIASES[kind]
    return ValueKind(kind)


def classify(value: object) -> ValueKind:
    """Return the first kind whose predicate accepts `value`."""
    if not isinstance(value, str):
        return _classify_native(value)
    for kind, predicate in _TEXT_PREDICATES:
        if predicate(value):
            return kind
    return ValueKind.LITERAL


def is_a(value: object, kind: ValueKind | str) -> bool:
    """Single-kind predicate; only the predicate for `kind` is consulted."""
    kind = _as_kind(kind)
    if not isinstance(value, str):
        return _classify_native(value) is kind
    if kind is ValueKind.LITERAL:
        return classify(value) is ValueKind.LITERAL
    return _TEXT_PREDICATE_BY_KIND[kind](value)


def normalize_number(value: int | float) -> int | float:
    """Collapse integral finite doubles to ``int``."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def _parse_number(text: str) -> int | float:
    if _INTEGER_RE.match(text):
        return int(text)
    return normalize_number(float(text))


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def _parse_element(text: str) -> object:
    text = text.strip()
    if _is_number_text(text):
        return _parse_number(text)
    if _is_boolean_text(text):
        return text.lower() == "true"
    if text.startswith("[") and text.endswith("]"):
        return _parse_array(text)
    return text


def _parse_array(text: str) -> list[object]:
    inner = text[1:-1]
    if not inner.strip():
        return []
    return [_parse_element(part) for part in _split_top_level(inner)]


def _parse_matrix(text: str) -> list | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def text_of(value: object) -> str:
    """Textual form used when a value is compared as a string."""
    if isinstance(value, str):
        return value
    return format_value(value)


def coerce(value: object, kind: ValueKind | str) -> object:
    """Convert `value` to the native form of `kind`; on failure return it unchanged."""
    kind = _as_kind(kind)
    try:
        if kind is ValueKind.MATRIX:
            if isinstance(value, str):
                return _parse_matrix(value)
            return value
        if not isinstance(value, str):
            if kind is ValueKind.BOOLEAN and not isinstance(value, bool):
                return text_of(value).lower() == "true"
            return value
        if kind is ValueKind.NUMBER:
            return _parse_number(value)
        if kind is ValueKind.STRING:
            if value.startswith('"') and value.endswith('"') and len(value) >= 2:
                return value[1:-1]
            return value
        if kind is ValueKind.BOOLEAN:
            return value.lower() == "true"
        if kind is ValueKind.ARRAY:
            return _parse_array(value)
    except (ValueError, TypeError, OverflowError):
        return value
    return value


def quote(text: str) -> str:
    """Token form of a computed string result."""
    return f'"{text}"'


def format_number(value: int | float) -> str:
    value = normalize_number(value)
    if isinstance(value, int):
        return str(value)
    return repr(value)


def format_value(value: object) -> str:
    """Serialize one stack value for program output."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    if not isinstance(value, str):
        return quote(str(value).replace('"', ""))

    if _is_number_text(value):
        return format_number(_parse_number(value))
    if _is_boolean_text(value):
        return "true" if value.lower() == "true" else "false"
    if value in OPERATORS:
        return value
    if _is_array_text(value):
        return format_value(_parse_array(value))
    if _is_matrix_text(value):
        parsed = _parse_matrix(value)
        if parsed is not None:
            return format_value(parsed)
    return quote(value.replace('"', ""))


def format_stack(stack: list[object]) -> str:
    """Newline-joined rendering, bottom of the stack first."""
    return "\n".join(format_value(value) for value in stack)
