"""Lambda block parsing and positional parameter binding."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Final

from .errors import LambdaSyntaxError
from .lexer import split_tokens

SELF_TOKEN: Final[str] = "SELF"

_PARAM_RE = re.compile(r"^x([0-9]+)$")
_ARITY_RE = re.compile(r"^[0-9]+$")
_LAMBDA_CACHE_MAX: Final[int] = max(1, int(os.environ.get("POSTFIX_JAX_LAMBDA_CACHE_MAX", "256")))


@dataclass(frozen=True)
class LambdaBlock:
    text: str
    arity: int
    body: tuple[str, ...]


@lru_cache(maxsize=_LAMBDA_CACHE_MAX)
def parse_lambda(text: str) -> LambdaBlock:
    """Split `{ count | body }` into its arity and tokenized body."""
    if not (text.startswith("{") and text.endswith("}")):
        raise LambdaSyntaxError(f"Lambda must be brace-delimited: {text!r}")
    header, sep, body = text[1:-1].strip().partition("|")
    if not sep:
        raise LambdaSyntaxError(f"Lambda is missing '|' after its parameter count: {text!r}")
    header = header.strip()
    if not _ARITY_RE.match(header):
        raise LambdaSyntaxError(f"Lambda parameter count must be a non-negative integer, got {header!r}")
    return LambdaBlock(text=text, arity=int(header), body=tuple(split_tokens(body)))


def param_index(token: str) -> int | None:
    """Index named by an `x<digits>` parameter reference, else None."""
    m = _PARAM_RE.match(token)
    if m is None:
        return None
    return int(m.group(1))


def bind_parameters(stack: list[object], arity: int) -> list[object] | None:
    """Pop `arity` values, deepest first; None when the stack is too shallow."""
    if arity > len(stack):
        return None
    if arity == 0:
        return []
    params = stack[len(stack) - arity :]
    del stack[len(stack) - arity :]
    return params
