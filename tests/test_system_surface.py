from __future__ import annotations

import contextlib
import importlib.util
import io
import tempfile
import unittest
from pathlib import Path


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for CLI tests")
class CommandLineRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)

    def _main(self, *argv: str) -> int:
        from postfix_jax.cli import main

        with self.assertLogs("postfix_jax", level="INFO") as logs:
            # assertLogs needs at least one record; the runner always logs one.
            code = main(["--log-level", "INFO", *argv])
        self.logs = logs.output
        return code

    def test_derive_output_name(self) -> None:
        from postfix_jax.cli import derive_output_name
        from postfix_jax.errors import ProgramError

        self.assertEqual(derive_output_name(Path("some/dir/input-042.txt")), "output-042.txt")
        with self.assertRaises(ProgramError):
            derive_output_name(Path("input-42.txt"))

    def test_writes_formatted_stack_next_to_input(self) -> None:
        source = self.root / "input-007.txt"
        source.write_text("3 4 +\n[1,2,3] [4,5,6] +\nbogus\n", encoding="utf-8")

        self.assertEqual(self._main(str(source)), 0)
        out = self.root / "output-007.txt"
        self.assertEqual(out.read_text(encoding="utf-8"), "7\n[5, 7, 9]")
        self.assertTrue(any("bogus" in line for line in self.logs))

    def test_output_dir_option(self) -> None:
        source = self.root / "input-001.txt"
        source.write_text("true false |", encoding="utf-8")
        out_dir = self.root / "results"

        self.assertEqual(self._main(str(source), "--output-dir", str(out_dir)), 0)
        self.assertEqual((out_dir / "output-001.txt").read_text(encoding="utf-8"), "true")

    def test_print_flag_echoes_output(self) -> None:
        source = self.root / "input-002.txt"
        source.write_text("1 5\n{ 2 | x0 x1 * x1 1 - DUP 0 > SELF 'DROP ROT IFELSE EVAL}\n", encoding="utf-8")

        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            self.assertEqual(self._main(str(source), "--print"), 0)
        self.assertEqual(buf.getvalue().strip(), "120")

    def test_missing_input_writes_empty_output(self) -> None:
        missing = self.root / "input-123.txt"

        self.assertEqual(self._main(str(missing)), 1)
        self.assertEqual((self.root / "output-123.txt").read_text(encoding="utf-8"), "")

    def test_underivable_name_writes_fallback_output(self) -> None:
        source = self.root / "program.txt"
        source.write_text("1 2 +", encoding="utf-8")

        self.assertEqual(self._main(str(source)), 2)
        self.assertEqual((self.root / "output.txt").read_text(encoding="utf-8"), "")

    def test_run_file_returns_interpreter(self) -> None:
        from postfix_jax.cli import run_file

        source = self.root / "input-010.txt"
        source.write_text("[1,0,0] [0,1,0] x", encoding="utf-8")

        path, interp = run_file(source)
        self.assertEqual(path, self.root.resolve() / "output-010.txt")
        self.assertEqual(interp.stack, [[0, 0, 1]])


if __name__ == "__main__":
    unittest.main()
