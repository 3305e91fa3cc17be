"""Tests for the subprocess runner, using the interpreter as the child process."""

from __future__ import annotations

import sys
import threading
import unittest

from gitflow.exceptions import CommandCancelled, CommandError, CommandNotFoundError, GitCommandError, format_error_chain
from gitflow.git import run_command

PYTHON = sys.executable


class RunCommandTests(unittest.TestCase):
    def test_captures_output_and_feeds_stdin(self) -> None:
        result = run_command(
            [PYTHON, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
            input_text="patch\n",
        )

        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout, "PATCH\n")

    def test_failure_keeps_streams(self) -> None:
        with self.assertRaises(CommandError) as caught:
            run_command([PYTHON, "-c", "import sys; print('out'); sys.stderr.write('bad\\n'); sys.exit(3)"])

        self.assertEqual(caught.exception.returncode, 3)
        self.assertEqual(caught.exception.stdout, "out\n")
        self.assertEqual(caught.exception.stderr, "bad\n")

    def test_unchecked_failure_is_returned(self) -> None:
        result = run_command([PYTHON, "-c", "import sys; sys.exit(2)"], check=False)

        self.assertEqual(result.returncode, 2)

    def test_error_class_is_configurable(self) -> None:
        with self.assertRaises(GitCommandError) as caught:
            run_command([PYTHON, "-c", "import sys; sys.exit(1)"], error_cls=GitCommandError)

        self.assertTrue(str(caught.exception).startswith("git command failed (exit 1)"))

    def test_missing_binary(self) -> None:
        with self.assertRaises(CommandNotFoundError):
            run_command(["gitflow-test-no-such-binary"])

    def test_cancelled_before_start(self) -> None:
        cancel = threading.Event()
        cancel.set()

        with self.assertRaises(CommandCancelled):
            run_command([PYTHON, "-c", "pass"], cancel=cancel)

    def test_cancelled_while_running(self) -> None:
        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        self.addCleanup(timer.cancel)

        with self.assertRaises(CommandCancelled):
            run_command([PYTHON, "-c", "import time; time.sleep(30)"], cancel=cancel)


class FormatErrorChainTests(unittest.TestCase):
    def test_joins_first_lines_of_causes(self) -> None:
        try:
            try:
                raise GitCommandError(["git", "fetch", "upstream"], 128, stderr="fatal: no route\n")
            except GitCommandError as exc:
                raise CommandError(["gh", "pr", "create"], 1) from exc
        except CommandError as exc:
            chained = exc

        self.assertEqual(
            format_error_chain(chained),
            "command failed (exit 1): gh pr create: git command failed (exit 128): git fetch upstream",
        )


if __name__ == "__main__":
    unittest.main()
