"""Structured error types for the token and program tiers."""

from __future__ import annotations

from dataclasses import dataclass


class PostfixError(Exception):
    """Base class for structured postfix-jax errors."""


@dataclass(frozen=True)
class TokenizeError(PostfixError):
    """Raised when a bracket or quote span cannot be closed."""

    message: str
    start: int
    end: int
    found: str | None = None

    def __str__(self) -> str:
        found = ""
        if self.found is not None:
            found = f"; found {self.found!r}"
        return f"{self.message} at span [{self.start}, {self.end}){found}"


class ProgramError(PostfixError):
    """Whole-run failure: unreadable input or underivable output name."""


class PostfixRuntimeError(PostfixError):
    """Generic failure while executing a single token."""


class StackUnderflowError(PostfixRuntimeError):
    """Operator needs more values than the stack holds."""


class OperandTypeError(PostfixRuntimeError):
    """Operand kind is incompatible with the operator."""


class ShapeError(PostfixRuntimeError):
    """Array or matrix operand has the wrong length or rank."""


class LambdaSyntaxError(PostfixRuntimeError):
    """Lambda text is missing its `count |` header."""


class UnrecognizedTokenError(PostfixRuntimeError):
    """Top-level token matches no operator or value pattern."""


def classify_runtime_exception(err: Exception) -> PostfixRuntimeError:
    """Best-effort mapping of host exceptions onto the runtime error classes."""
    if isinstance(err, PostfixRuntimeError):
        return err

    message = str(err) or type(err).__name__
    lowered = message.lower()

    if isinstance(err, IndexError):
        return StackUnderflowError(message)

    shape_markers = (
        "shape",
        "rank",
        "length",
        "size",
        "dimension",
        "incompatible",
    )
    if isinstance(err, ValueError) and any(marker in lowered for marker in shape_markers):
        return ShapeError(message)

    if isinstance(err, TypeError):
        return OperandTypeError(message)

    return PostfixRuntimeError(message)
