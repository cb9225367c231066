from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union


Verdict = Literal["passed", "uncompilable", "import_failed", "mismatched", "export_failed", "timed_out"]

FAILING_VERDICTS: tuple[Verdict, ...] = ("import_failed", "mismatched", "export_failed", "timed_out")


@dataclass(frozen=True)
class TestCase:
    primary_file: Path
    input_files: tuple[Path, ...]

    __test__ = False  # not a pytest class


@dataclass(frozen=True)
class InvocationResult:
    cmd: list[str]
    exit_code: int
    stdout: bytes
    stderr: bytes
    timed_out: bool = False
    time_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


# Splitter outcomes. The external tool encodes these as exit codes 0/1/2/other.


@dataclass(frozen=True)
class Split:
    files: tuple[Path, ...]


@dataclass(frozen=True)
class Unsplittable:
    file: Path


@dataclass(frozen=True)
class DecodeError:
    message: str


@dataclass(frozen=True)
class Fatal:
    code: int
    message: str


SplitOutcome = Union[Split, Unsplittable, DecodeError, Fatal]


@dataclass(frozen=True)
class CaseResult:
    case: TestCase
    verdict: Verdict
    message: str = ""
    diagnostic: str = ""

    @property
    def counts_as_tested(self) -> bool:
        return self.verdict != "uncompilable"

    @property
    def failed(self) -> bool:
        return self.verdict in FAILING_VERDICTS


@dataclass
class Counters:
    tested: int = 0
    failed: int = 0
    uncompilable: int = 0
    total_sources: int = 0
    keep_results: bool = False
    results: list[CaseResult] = field(default_factory=list)
    first_failure: CaseResult | None = None

    def add_sources(self, n: int) -> None:
        self.total_sources += n

    def record(self, result: CaseResult) -> None:
        if self.keep_results:
            self.results.append(result)
        if not result.counts_as_tested:
            self.uncompilable += 1
            return
        self.tested += 1
        if result.failed:
            self.failed += 1
            if self.first_failure is None:
                self.first_failure = result

    @property
    def passed(self) -> int:
        return self.tested - self.failed

    @property
    def processed(self) -> int:
        return self.tested + self.uncompilable
