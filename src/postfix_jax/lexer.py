"""Tokenization of one source line into atomic bracket, string and word spans."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from .errors import TokenizeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int
    end: int


_BRACKET_PAIRS = {
    "{": ("}", "BLOCK"),
    "[": ("]", "ARRAY"),
}
_BRACKETS = frozenset("{}[]")


def _is_word_char(ch: str) -> bool:
    return not ch.isspace() and ch not in _BRACKETS


def _scan_bracketed(source: str, start: int) -> int:
    """Return the index just past the span opened at `start`.

    Only brackets of the opening family count toward depth, so `{ [ }` is a
    complete block and `[ { ]` a complete array.
    """
    opener = source[start]
    closer, _ = _BRACKET_PAIRS[opener]
    depth = 0
    i = start
    while i < len(source):
        ch = source[i]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise TokenizeError(f"Unbalanced {opener!r}", start, len(source), found=source[start:])


def _scan_string(source: str, start: int) -> int:
    if source[start : start + 1] != '"':
        raise TokenizeError("Expected string literal", start, start + 1, found=source[start : start + 1])
    close = source.find('"', start + 1)
    if close < 0:
        raise TokenizeError("Unterminated string literal", start, len(source), found=source[start:])
    return close + 1


def _scan_word(source: str, start: int) -> int:
    i = start
    while i < len(source) and _is_word_char(source[i]):
        i += 1
    return i


def iter_tokens(source: str, *, strict: bool = False) -> Iterator[Token]:
    """Lazily yield the tokens of `source`.

    Each call starts a fresh scan. With `strict=False` an unbalanced opener is
    dropped and scanning resumes at the next character; `strict=True` raises
    `TokenizeError` instead.
    """
    i = 0
    while i < len(source):
        ch = source[i]

        if ch.isspace():
            i += 1
            continue

        if ch in _BRACKET_PAIRS:
            try:
                end = _scan_bracketed(source, i)
            except TokenizeError as err:
                if strict:
                    raise
                logger.debug("skipping %s", err)
                i += 1
                continue
            yield Token(_BRACKET_PAIRS[ch][1], source[i:end], i, end)
            i = end
            continue

        if ch in _BRACKETS:
            if strict:
                raise TokenizeError(f"Unmatched {ch!r}", i, i + 1, found=ch)
            logger.debug("skipping stray %r at index %d", ch, i)
            i += 1
            continue

        if ch == '"':
            try:
                end = _scan_string(source, i)
            except TokenizeError:
                # An unclosed quote is an ordinary word character.
                end = _scan_word(source, i)
                yield Token("WORD", source[i:end], i, end)
                i = end
                continue
            yield Token("STRING", source[i:end], i, end)
            i = end
            continue

        end = _scan_word(source, i)
        yield Token("WORD", source[i:end], i, end)
        i = end


def tokenize(source: str, *, strict: bool = False) -> list[Token]:
    return list(iter_tokens(source, strict=strict))


def split_tokens(source: str) -> list[str]:
    """Token texts only, the form the evaluator consumes."""
    return [tok.text for tok in iter_tokens(source)]
