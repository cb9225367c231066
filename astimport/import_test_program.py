from __future__ import annotations

# Subprocess helpers for the compiler and the other external tools.
#
# A non-zero exit status is data for the caller to inspect; only a failure to
# start the process at all is raised (HarnessDefect), since nothing else can
# run without the tool.

import logging
import os
import signal
import subprocess
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from astimport.import_test_errors import ConfigurationError, HarnessDefect
from astimport.import_test_models import InvocationResult


logger = logging.getLogger(__name__)


def setsid_preexec() -> None:
    # Dedicated process group so a hung compiler can be killed with its children.
    os.setsid()


def kill_process_group(proc: subprocess.Popen[bytes]) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except PermissionError:
        proc.kill()


# Where --show-errors sends otherwise discarded compiler output.
STDERR_FD = 2


def run_command(
    cmd: Sequence[str],
    *,
    cwd: Path,
    timeout_s: float | None = None,
    stdout_to_stderr: bool = False,
    stderr_to_stderr: bool = False,
) -> InvocationResult:
    # The *_to_stderr flags stream that channel live to our fd 2 instead of
    # capturing it; the matching InvocationResult field is then empty.
    argv = [str(c) for c in cmd]
    logger.debug("run: %s (cwd=%s)", " ".join(argv), cwd)
    if stdout_to_stderr or stderr_to_stderr:
        sys.stdout.flush()
        sys.stderr.flush()
    start = time.monotonic()
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=STDERR_FD if stdout_to_stderr else subprocess.PIPE,
            stderr=None if stderr_to_stderr else subprocess.PIPE,
            cwd=str(cwd),
            preexec_fn=setsid_preexec,
        )
    except OSError as exc:
        raise HarnessDefect(f"Cannot execute {argv[0]}: {exc}") from exc

    timed_out = False
    try:
        stdout, stderr = proc.communicate(timeout=timeout_s)
    except subprocess.TimeoutExpired:
        timed_out = True
        kill_process_group(proc)
        stdout, stderr = proc.communicate()
        logger.debug("timeout after %ss: %s", timeout_s, argv[0])

    end = time.monotonic()
    return InvocationResult(
        cmd=argv,
        exit_code=int(proc.returncode),
        stdout=stdout or b"",
        stderr=stderr or b"",
        timed_out=timed_out,
        time_ms=int((end - start) * 1000),
    )


@dataclass(frozen=True)
class CompilerInvoker:
    compiler: Path
    json_indent: int = 4
    timeout_s: float | None = None
    show_errors: bool = False

    def json_output_args(self) -> list[str]:
        # Export and reimport must request the identical pretty-printing setup,
        # otherwise the textual comparison is meaningless.
        return ["--combined-json", "ast", "--pretty-json", "--json-indent", str(self.json_indent)]

    def _run(self, args: Sequence[str], *, cwd: Path, **streams: bool) -> InvocationResult:
        return run_command([str(self.compiler), *args], cwd=cwd, timeout_s=self.timeout_s, **streams)

    def probe(self, input_files: Sequence[Path], *, cwd: Path) -> InvocationResult:
        show = self.show_errors
        return self._run(["--bin", *[str(p) for p in input_files]], cwd=cwd, stdout_to_stderr=show, stderr_to_stderr=show)

    def export_ast(self, input_files: Sequence[Path], *, cwd: Path) -> InvocationResult:
        args = [*self.json_output_args(), *[str(p) for p in input_files]]
        return self._run(args, cwd=cwd, stderr_to_stderr=self.show_errors)

    def reimport_ast(self, json_path: Path, *, cwd: Path) -> InvocationResult:
        return self._run(["--import-ast", *self.json_output_args(), str(json_path)], cwd=cwd)

    def check_available(self) -> str:
        if not self.compiler.is_file():
            raise ConfigurationError(f"Compiler not found: {self.compiler}")
        try:
            result = self._run(["--version"], cwd=self.compiler.parent)
        except HarnessDefect as exc:
            raise ConfigurationError(str(exc)) from exc
        if not result.ok:
            raise ConfigurationError(
                f"Compiler not usable: {self.compiler} --version exited with {result.exit_code}"
            )
        return result.stdout.decode("utf-8", errors="replace").strip()
