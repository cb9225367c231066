from __future__ import annotations

# Console output and the optional JSON report.

import sys
from pathlib import Path
from typing import Any

from astimport.import_test_fs import write_json
from astimport.import_test_models import CaseResult, Counters


def print_error(message: str = "") -> None:
    print(message, file=sys.stderr, flush=True)


def print_progress(_source: Path) -> None:
    print(".", end="", flush=True)


def print_case_failure(result: CaseResult) -> None:
    source = result.case.primary_file
    if result.verdict == "import_failed":
        print_error(f"ERROR: AST reimport failed for input file {source}")
    elif result.verdict == "export_failed":
        print_error(f"ERROR: AST export failed for input file {source}")
    elif result.verdict == "mismatched":
        print_error(f"ERROR: AST reimport mismatch for input file {source}")
    elif result.verdict == "timed_out":
        print_error(f"ERROR: {result.message} for input file {source}")
    else:
        return
    print_error()
    if result.diagnostic:
        print_error(result.diagnostic.rstrip("\n"))
        print_error()


def report_result(result: CaseResult) -> None:
    if result.failed:
        print_case_failure(result)


def summary_line(counters: Counters) -> str:
    if counters.failed == 0:
        return (
            f"SUCCESS: {counters.tested} tests passed, {counters.failed} failed, "
            f"{counters.uncompilable} could not be compiled ({counters.total_sources} sources total)."
        )
    return (
        f"FAILURE: Out of {counters.total_sources} sources, {counters.tested} tested, "
        f"{counters.failed} failed, ({counters.uncompilable} could not be compiled)."
    )


def print_summary(counters: Counters) -> None:
    print()
    if counters.failed == 0:
        print(summary_line(counters), flush=True)
    else:
        print_error(summary_line(counters))


def build_case_record(result: CaseResult) -> dict[str, Any]:
    return {
        "source": str(result.case.primary_file),
        "input_files": [str(p) for p in result.case.input_files],
        "verdict": result.verdict,
        "message": result.message,
        "diagnostic": result.diagnostic,
    }


def build_report(counters: Counters, *, mode: str, compiler: Path) -> dict[str, Any]:
    first = counters.first_failure
    return {
        "schema_version": "ast_import_report.v1",
        "mode": mode,
        "status": "succeeded" if counters.failed == 0 else "failed",
        "compiler": str(compiler),
        "cases": [build_case_record(r) for r in counters.results],
        "summary": {
            "tested": counters.tested,
            "passed": counters.passed,
            "failed": counters.failed,
            "uncompilable": counters.uncompilable,
            "total_sources": counters.total_sources,
            "first_failure": str(first.case.primary_file) if first else None,
            "first_failure_verdict": first.verdict if first else None,
        },
    }


def write_report(path: Path, counters: Counters, *, mode: str, compiler: Path) -> None:
    write_json(path, build_report(counters, mode=mode, compiler=compiler))
