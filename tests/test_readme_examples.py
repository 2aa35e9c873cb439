from __future__ import annotations

import importlib.util
import unittest


JAX_AVAILABLE = importlib.util.find_spec("jax") is not None


@unittest.skipUnless(JAX_AVAILABLE, "jax is required for interpreter tests")
class ReadmeExamplesTests(unittest.TestCase):
    """Coverage for the README usage block."""

    def test_readme_examples_block(self) -> None:
        from postfix_jax import evaluate

        cases = [
            ("3 4 +", [7]),
            ("10 3 -", [7]),
            ("7 2 /", [3.5]),
            ("[1,2,3] [4,5,6] +", [[5, 7, 9]]),
            ("[1,2,3] [4,5,6] *", [32]),
            ("[1,0,0] [0,1,0] x", [[0, 0, 1]]),
            ("[[1,2],[3,4]] TRANSP", [[[1, 3], [2, 4]]]),
            ("true false |", [True]),
            ("3 4 {2 | x0 x1 +}", [7]),
        ]
        for source, want in cases:
            with self.subTest(source=source):
                self.assertEqual(evaluate(source), want)

    def test_readme_run_program_example(self) -> None:
        from postfix_jax import run_program

        out = run_program("1 5\n{ 2 | x0 x1 * x1 1 - DUP 0 > SELF 'DROP ROT IFELSE EVAL}")
        self.assertEqual(out, "120")


if __name__ == "__main__":
    unittest.main()
