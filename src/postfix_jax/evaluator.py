"""Dispatch loop over one shared stack, with reflective EVAL and lambda invocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Final

from .errors import PostfixRuntimeError, StackUnderflowError, UnrecognizedTokenError, classify_runtime_exception
from .lambdas import SELF_TOKEN, bind_parameters, param_index, parse_lambda
from .lexer import split_tokens
from .operators import apply_operator, operator_reach
from .values import ValueKind, classify, format_stack

logger = logging.getLogger(__name__)

QUOTE_MARKER: Final[str] = "'"
EVAL_TOKEN: Final[str] = "EVAL"

# Kinds whose dispatch can fail; every other kind is a plain push.
_EXECUTABLE: Final[frozenset[ValueKind]] = frozenset({ValueKind.OPERATOR, ValueKind.LAMBDA})


@dataclass(frozen=True)
class StepResult:
    """Outcome of one token; a failed step left the stack untouched."""

    token: str
    line: int
    error: PostfixRuntimeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Interpreter:
    """Evaluates source lines against one persistent, shared stack.

    Lambda bodies and EVAL re-enter `dispatch` on the same stack instance;
    there is no frame isolation and no recursion cap beyond the host's.
    Every executed token, top-level or nested, is fail-soft on its own: a
    failure restores the slots that token could touch and is recorded in
    `skipped`.
    """

    stack: list[object] = field(default_factory=list)
    skipped: list[StepResult] = field(default_factory=list)
    line_count: int = 0

    def dispatch(self, token: object) -> None:
        """Execute a single token (or popped value) against the stack."""
        if not isinstance(token, str):
            self.stack.append(token)
            return

        if token.startswith(QUOTE_MARKER):
            self.stack.append(token[1:])
            return

        kind = classify(token)
        if kind is ValueKind.LAMBDA:
            self.invoke_lambda(token)
            return

        if kind is ValueKind.OPERATOR:
            if token == EVAL_TOKEN:
                self._eval()
            else:
                apply_operator(token, self.stack)
            return

        self.stack.append(token)

    def _eval(self) -> None:
        if not self.stack:
            raise StackUnderflowError("EVAL needs a value")
        self._run_nested(self.stack.pop())

    def invoke_lambda(self, text: str) -> None:
        block = parse_lambda(text)
        params = bind_parameters(self.stack, block.arity)
        if params is None:
            logger.debug("lambda needs %d values, stack has %d; not invoked", block.arity, len(self.stack))
            return

        for token in block.body:
            index = param_index(token)
            if index is not None:
                self.stack.append(params[index] if index < len(params) else token)
            elif token == SELF_TOKEN:
                self.stack.append(block.text)
            else:
                self._run_nested(token)

    def _rollback_base(self, token: str) -> int:
        if classify(token) is ValueKind.OPERATOR and token != EVAL_TOKEN:
            return len(self.stack) - operator_reach(token, self.stack)
        return 0

    def _run_guarded(self, token: object, *, nested: bool = False) -> PostfixRuntimeError | None:
        """Dispatch `token`; on failure put back the slots it could touch and return the error.

        A nested `RecursionError` is re-raised so that runaway recursion fails
        the top-level token.
        """
        if not isinstance(token, str) or token.startswith(QUOTE_MARKER) or classify(token) not in _EXECUTABLE:
            self.dispatch(token)
            return None

        base = self._rollback_base(token)
        saved = self.stack[base:]
        try:
            self.dispatch(token)
        except Exception as exc:
            del self.stack[base:]
            self.stack.extend(saved)
            if nested and isinstance(exc, RecursionError):
                raise
            return classify_runtime_exception(exc)
        return None

    def _record(self, token: object, error: PostfixRuntimeError) -> StepResult:
        step = StepResult(token if isinstance(token, str) else repr(token), self.line_count, error)
        logger.debug("line %d: skipped %r: %s: %s", step.line, step.token, type(error).__name__, error)
        self.skipped.append(step)
        return step

    def _run_nested(self, token: object) -> None:
        error = self._run_guarded(token, nested=True)
        if error is not None:
            self._record(token, error)

    def _step(self, token: str) -> StepResult:
        if not token.startswith(QUOTE_MARKER) and classify(token) is ValueKind.LITERAL:
            return self._record(token, UnrecognizedTokenError(f"Unrecognized token {token!r}"))

        error = self._run_guarded(token)
        if error is not None:
            return self._record(token, error)
        return StepResult(token, self.line_count)

    def run_line(self, line: str) -> list[StepResult]:
        """Run one line; the returned results cover its top-level tokens."""
        self.line_count += 1
        return [self._step(token) for token in split_tokens(line)]

    def run_source(self, source: str) -> list[object]:
        """Run every line of `source` in order and return the stack."""
        for line in source.splitlines():
            self.run_line(line)
        return self.stack


def evaluate(source: str, stack: list[object] | None = None) -> list[object]:
    """Evaluate `source` on a fresh stack (seeded with a copy of `stack`)."""
    interpreter = Interpreter(stack=[] if stack is None else list(stack))
    return interpreter.run_source(source)


def run_program(source: str) -> str:
    """Evaluate `source` and render the final stack, bottom first."""
    return format_stack(evaluate(source))
