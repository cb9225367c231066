from __future__ import annotations

# Harness-level errors. Problems with an input under test are verdicts
# (see import_test_models.Verdict), never exceptions.


class ImportTestError(RuntimeError):
    pass


class ConfigurationError(ImportTestError):
    """Raised before any test runs: missing compiler, no test roots, bad mode."""


class HarnessDefect(ImportTestError):
    """Raised mid-run when our own tooling misbehaves (splitter, spawn, diff)."""

    def __init__(self, message: str, *, code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.output = output
