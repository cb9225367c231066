from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from astimport.import_test_compare import FileDiffer
from astimport.import_test_fs import (
    ARTIFACT_NAMES,
    EXPECTED_JSON,
    OBTAINED_JSON,
    STDERR_TXT,
    ensure_absent,
    remove_artifacts,
    scoped_workspace,
    write_bytes,
)
from astimport.import_test_models import CaseResult, Counters, InvocationResult, SplitOutcome, TestCase
from astimport.import_test_program import CompilerInvoker
from astimport.import_test_split import resolve_input_files, source_delta


logger = logging.getLogger(__name__)

SplitFn = Callable[..., SplitOutcome]
ResultHook = Callable[[CaseResult], None]


def decode_stream(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def format_streams(result: InvocationResult) -> str:
    # Both streams verbatim, stderr first.
    return (
        "Compiler stderr:\n"
        f"{decode_stream(result.stderr)}\n"
        "Compiler stdout:\n"
        f"{decode_stream(result.stdout)}"
    )


def timed_out_result(case: TestCase, *, step: str, result: InvocationResult) -> CaseResult:
    return CaseResult(
        case=case,
        verdict="timed_out",
        message=f"compiler timed out during {step} after {result.time_ms} ms",
        diagnostic=" ".join(result.cmd),
    )


def verify_round_trip(
    case: TestCase,
    *,
    invoker: CompilerInvoker,
    differ: FileDiffer,
    work_dir: Path,
) -> CaseResult:
    """Export the AST, import it back, export again and compare the two JSON texts.

    Terminal verdicts:
      uncompilable   the ``--bin`` probe failed; not counted as tested
      export_failed  probe passed but the first export did not
      import_failed  reimport exited non-zero; both streams kept as diagnostic
      mismatched     reimport succeeded but the documents differ
      passed         documents are byte-identical
    """

    probe = invoker.probe(case.input_files, cwd=work_dir)
    if probe.timed_out:
        return timed_out_result(case, step="probe", result=probe)
    if probe.exit_code != 0:
        return CaseResult(case=case, verdict="uncompilable", message=f"probe exit={probe.exit_code}")

    expected_path = work_dir / EXPECTED_JSON
    obtained_path = work_dir / OBTAINED_JSON
    for name in ARTIFACT_NAMES:
        ensure_absent(work_dir / name)

    try:
        exported = invoker.export_ast(case.input_files, cwd=work_dir)
        if exported.timed_out:
            return timed_out_result(case, step="export", result=exported)
        write_bytes(expected_path, exported.stdout)
        if exported.exit_code != 0:
            # Probe compiled it, so this is the compiler contradicting itself.
            return CaseResult(
                case=case,
                verdict="export_failed",
                message=f"AST export failed after successful compilation (exit={exported.exit_code})",
                diagnostic=format_streams(exported),
            )

        reimported = invoker.reimport_ast(Path(EXPECTED_JSON), cwd=work_dir)
        if reimported.timed_out:
            return timed_out_result(case, step="reimport", result=reimported)
        write_bytes(obtained_path, reimported.stdout)
        write_bytes(work_dir / STDERR_TXT, reimported.stderr)
        if reimported.exit_code != 0:
            return CaseResult(
                case=case,
                verdict="import_failed",
                message=f"AST reimport failed (exit={reimported.exit_code})",
                diagnostic=format_streams(reimported),
            )

        diff = differ.diff_files(expected_path, obtained_path)
        if diff.equal:
            return CaseResult(case=case, verdict="passed")
        return CaseResult(
            case=case,
            verdict="mismatched",
            message="AST reimport produced different JSON",
            diagnostic=diff.output,
        )
    finally:
        remove_artifacts(work_dir)


def run_case(
    source: Path,
    *,
    split_fn: SplitFn,
    invoker: CompilerInvoker,
    differ: FileDiffer,
    counters: Counters,
    splitter: Path | None = None,
) -> CaseResult:
    # The workspace is released even when the splitter or a spawn aborts the run.
    with scoped_workspace() as work_dir:
        outcome = split_fn(source, work_dir=work_dir)
        input_files = resolve_input_files(source, outcome, splitter=splitter)
        counters.add_sources(source_delta(outcome))
        case = TestCase(primary_file=source, input_files=input_files)
        result = verify_round_trip(case, invoker=invoker, differ=differ, work_dir=work_dir)
    counters.record(result)
    logger.debug("case %s -> %s", source, result.verdict)
    return result


def run_cases(
    sources: Sequence[Path],
    *,
    split_fn: SplitFn,
    invoker: CompilerInvoker,
    differ: FileDiffer,
    counters: Counters,
    splitter: Path | None = None,
    stop_on_failure: bool = False,
    on_start: Callable[[Path], None] | None = None,
    on_result: ResultHook | None = None,
) -> Counters:
    for source in sources:
        if on_start is not None:
            on_start(source)
        result = run_case(
            source,
            split_fn=split_fn,
            invoker=invoker,
            differ=differ,
            counters=counters,
            splitter=splitter,
        )
        if on_result is not None:
            on_result(result)
        if stop_on_failure and result.failed:
            logger.debug("stopping after first failure: %s", source)
            break
    return counters
