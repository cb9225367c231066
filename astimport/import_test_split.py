from __future__ import annotations

# Adapter for the external source splitter.
#
# The splitter turns a combined multi-source test file into standalone files
# written to its cwd. Its exit status is the outcome:
#   0  printed a whitespace-separated list of generated files
#   1  the input is already a single self-contained source
#   2  decode error (e.g. invalid utf-8); we log its output and use the input as is
#   *  anything else means the splitter itself is broken; the run aborts

import logging
import sys
from pathlib import Path

from astimport.import_test_errors import HarnessDefect
from astimport.import_test_models import DecodeError, Fatal, Split, SplitOutcome, Unsplittable
from astimport.import_test_program import run_command


logger = logging.getLogger(__name__)

EXIT_SPLIT = 0
EXIT_UNSPLITTABLE = 1
EXIT_DECODE_ERROR = 2


def splitter_command(splitter: Path, source: Path) -> list[str]:
    if splitter.suffix == ".py":
        return [sys.executable, str(splitter), str(source)]
    return [str(splitter), str(source)]


def split_sources(source: Path, *, splitter: Path, work_dir: Path, timeout_s: float | None = None) -> SplitOutcome:
    result = run_command(splitter_command(splitter, source), cwd=work_dir, timeout_s=timeout_s)
    output = (result.stdout + result.stderr).decode("utf-8", errors="replace")
    if result.timed_out:
        return Fatal(code=result.exit_code, message=f"splitter timed out after {timeout_s}s\n{output}")

    rc = result.exit_code
    if rc == EXIT_SPLIT:
        names = result.stdout.decode("utf-8", errors="replace").split()
        if not names:
            return Fatal(code=rc, message=f"splitter reported success without output files\n{output}")
        return Split(files=tuple((work_dir / name).resolve() for name in names))
    if rc == EXIT_UNSPLITTABLE:
        return Unsplittable(file=source)
    if rc == EXIT_DECODE_ERROR:
        return DecodeError(message=output)
    return Fatal(code=rc, message=output)


def source_delta(outcome: SplitOutcome) -> int:
    # One logical source became k files.
    if isinstance(outcome, Split):
        return len(outcome.files) - 1
    return 0


def resolve_input_files(source: Path, outcome: SplitOutcome, *, splitter: Path | None = None) -> tuple[Path, ...]:
    if isinstance(outcome, Split):
        return outcome.files
    if isinstance(outcome, Unsplittable):
        return (outcome.file,)
    if isinstance(outcome, DecodeError):
        # Not fatal: report what the splitter said, then compile the file unchanged.
        print(f"\n\n{outcome.message.rstrip()}\n\n", file=sys.stderr, flush=True)
        logger.debug("splitter decode error for %s; falling back to original file", source)
        return (source,)
    if isinstance(outcome, Fatal):
        tool = str(splitter) if splitter is not None else "splitter"
        raise HarnessDefect(
            f"Got unexpected return code {outcome.code} from {tool}. Aborting.",
            code=outcome.code,
            output=outcome.message,
        )
    raise TypeError(f"unknown split outcome: {outcome!r}")
