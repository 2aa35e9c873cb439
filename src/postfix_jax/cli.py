"""Run a program file `input-XYZ.txt` and write its final stack to `output-XYZ.txt`."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Final

from .errors import ProgramError
from .evaluator import Interpreter
from .values import format_stack

logger = logging.getLogger(__name__)

FALLBACK_OUTPUT_NAME: Final[str] = "output.txt"

_INPUT_NAME_RE = re.compile(r"input-(\d{3})\.txt")


def derive_output_name(input_path: Path) -> str:
    m = _INPUT_NAME_RE.search(input_path.name)
    if m is None:
        raise ProgramError(f"Cannot derive a three-digit identifier from {input_path.name!r}")
    return f"output-{m.group(1)}.txt"


def read_program(input_path: Path) -> str:
    try:
        return input_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProgramError(f"Cannot read program {str(input_path)!r}: {exc.strerror or exc}") from exc


def write_output(output_path: Path, content: str) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")


def run_file(input_path: Path, output_dir: Path | None = None) -> tuple[Path, Interpreter]:
    """Evaluate `input_path` and write the formatted stack next to it (or into `output_dir`).

    Raises `ProgramError` for the whole-run failures; the caller decides what
    empty artifact to leave behind.
    """
    output_dir = input_path.resolve().parent if output_dir is None else output_dir
    output_path = output_dir / derive_output_name(input_path)
    source = read_program(input_path)

    interpreter = Interpreter()
    interpreter.run_source(source)
    write_output(output_path, format_stack(interpreter.stack))
    return output_path, interpreter


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("input", help="program file, named input-XYZ.txt")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="directory for output-XYZ.txt (defaults to the input file's directory)",
    )
    parser.add_argument(
        "--print",
        action="store_true",
        dest="echo",
        help="also print the formatted stack to stdout",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="logging level; DEBUG lists every skipped token",
    )
    parser.add_argument(
        "--recursion-limit",
        type=int,
        default=None,
        help="raise the host recursion limit for deeply recursive programs",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    if args.recursion_limit is not None:
        sys.setrecursionlimit(args.recursion_limit)

    input_path = Path(args.input)
    output_dir = input_path.resolve().parent if args.output_dir is None else Path(args.output_dir)

    try:
        output_name = derive_output_name(input_path)
    except ProgramError as err:
        logger.error("%s", err)
        write_output(output_dir / FALLBACK_OUTPUT_NAME, "")
        return 2

    try:
        output_path, interpreter = run_file(input_path, output_dir)
    except ProgramError as err:
        logger.error("%s", err)
        write_output(output_dir / output_name, "")
        return 1

    for step in interpreter.skipped:
        logger.info("line %d: skipped %r (%s)", step.line, step.token, step.error)
    logger.info("wrote %s", output_path)

    if args.echo:
        print(output_path.read_text(encoding="utf-8"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
