from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SOLIDITY_", extra="ignore")

    # Paths
    repo_root: Path = Field(default_factory=Path.cwd)
    # Empty means "<repo_root>/build" (SOLIDITY_BUILD_DIR overrides).
    build_dir: str = ""
    compiler_rel_path: str = "solc/solc"
    splitter_path: str = ""

    # Collaborators
    diff_command: str = "diff --unified"

    # Corpus
    test_dirs: tuple[str, ...] = (
        "test/libsolidity/syntaxTests",
        "test/libsolidity/ASTJSON",
    )
    source_suffix: str = ".sol"
    # boost_filesystem_bug.sol tests a malformed path on purpose; feeding it to
    # the splitter or compiler is meaningless.
    excluded_names: tuple[str, ...] = ("boost_filesystem_bug.sol",)

    # Compiler output formatting (shared by export and reimport)
    json_indent: int = 4

    # Per-subprocess limit; 0 disables.
    timeout_seconds: float = 300.0

    @property
    def build_path(self) -> Path:
        raw = str(self.build_dir or "").strip()
        if raw:
            return Path(raw)
        return self.repo_root / "build"

    @property
    def compiler_path(self) -> Path:
        return self.build_path / self.compiler_rel_path

    @property
    def splitter(self) -> Path:
        raw = str(self.splitter_path or "").strip()
        if raw:
            return Path(raw)
        return self.repo_root / "scripts" / "splitSources.py"

    @property
    def test_roots(self) -> list[Path]:
        return [self.repo_root / d for d in self.test_dirs]

    @property
    def timeout_s(self) -> float | None:
        return self.timeout_seconds if self.timeout_seconds > 0 else None


def load_settings(**overrides) -> Settings:
    return Settings(**overrides)
