from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path

from astimport.import_test_errors import HarnessDefect
from astimport.import_test_program import run_command


logger = logging.getLogger(__name__)

# diff(1) convention: 0 same, 1 different, >1 trouble.
DIFF_SAME = 0
DIFF_DIFFERENT = 1


@dataclass(frozen=True)
class DiffResult:
    equal: bool
    output: str


@dataclass(frozen=True)
class FileDiffer:
    command: str = "diff --unified"
    timeout_s: float | None = None

    def argv(self, expected: Path, obtained: Path) -> list[str]:
        return [*shlex.split(self.command), str(expected), str(obtained)]

    def diff_files(self, expected: Path, obtained: Path) -> DiffResult:
        # Purely textual: any byte of drift, formatting included, is a mismatch.
        result = run_command(self.argv(expected, obtained), cwd=expected.parent, timeout_s=self.timeout_s)
        output = result.stdout.decode("utf-8", errors="replace")
        if result.timed_out or result.exit_code not in (DIFF_SAME, DIFF_DIFFERENT):
            raise HarnessDefect(
                f"Diff tool failed with exit code {result.exit_code}: {self.command}",
                code=result.exit_code,
                output=output + result.stderr.decode("utf-8", errors="replace"),
            )
        logger.debug("diff %s %s -> %s", expected.name, obtained.name, result.exit_code)
        return DiffResult(equal=result.exit_code == DIFF_SAME, output=output)
