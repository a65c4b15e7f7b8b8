"""
Run the sample programs under examples/ and check their output.
"""

import io
from pathlib import Path

import pytest

from skiff import run_source
from skiff.runtime import int_val

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"


def run_example(name):
    path = EXAMPLES_DIR / name
    out = io.StringIO()
    result = run_source(path.read_text(encoding="utf-8"), stdout=out, filename=str(path))
    return result, out.getvalue().splitlines()


@pytest.mark.skipif(not EXAMPLES_DIR.exists(), reason="examples directory not available")
class TestExamples:
    """Each example runs cleanly and prints what it promises."""

    def test_fib(self):
        result, lines = run_example("fib.sk")
        assert result.success
        assert lines == [
            "fib: [0, 1, 1, 2, 3, 5, 8, 13, 21, 34]",
            "fib_iter(50) = 12586269025",
        ]
        assert result.value == int_val(8)

    def test_classes(self):
        result, lines = run_example("classes.sk")
        assert result.success
        assert lines == [
            "ada: 175",
            "withdraw 500: false",
            "withdraw 75: true",
            "history: [50, 25, -75]",
            "grace: 100 true false",
        ]

    def test_closures(self):
        result, lines = run_example("closures.sk")
        assert result.success
        assert lines == [
            "a: 3 b: 110",
            "compose: 10",
            "mapped: [0, 2, 4, 6, 8]",
        ]

    def test_try_finally(self):
        result, lines = run_example("try_finally.sk")
        assert result.success
        assert lines == [
            "cleanup 4",
            "2.5",
            "cleanup 0",
            "caught: division by zero",
            "checked 3",
            "checked 5",
            "checked 8",
            "first even: 8",
            "caught: array index 5 out of range for length 2",
            "done",
        ]

    @pytest.mark.parametrize("name", ["fib.sk", "classes.sk", "closures.sk", "try_finally.sk"])
    def test_examples_pass_check(self, name):
        from skiff.__main__ import main

        assert main(["check", str(EXAMPLES_DIR / name)]) == 0
