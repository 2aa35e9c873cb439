"""postfix-jax public API."""

from .errors import (
    LambdaSyntaxError,
    OperandTypeError,
    PostfixError,
    PostfixRuntimeError,
    ProgramError,
    ShapeError,
    StackUnderflowError,
    TokenizeError,
    UnrecognizedTokenError,
)
from .evaluator import Interpreter, StepResult, evaluate, run_program
from .lambdas import LambdaBlock, parse_lambda
from .lexer import Token, iter_tokens, split_tokens, tokenize
from .operators import OPERATOR_TABLE, apply_operator
from .values import OPERATORS, ValueKind, classify, coerce, format_stack, format_value, is_a

__all__ = [
    "tokenize",
    "iter_tokens",
    "split_tokens",
    "Token",
    "classify",
    "is_a",
    "coerce",
    "format_value",
    "format_stack",
    "ValueKind",
    "OPERATORS",
    "OPERATOR_TABLE",
    "apply_operator",
    "parse_lambda",
    "LambdaBlock",
    "evaluate",
    "run_program",
    "Interpreter",
    "StepResult",
    "PostfixError",
    "PostfixRuntimeError",
    "ProgramError",
    "TokenizeError",
    "StackUnderflowError",
    "OperandTypeError",
    "ShapeError",
    "LambdaSyntaxError",
    "UnrecognizedTokenError",
]
