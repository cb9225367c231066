from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from astimport.import_test_errors import ConfigurationError


logger = logging.getLogger(__name__)


def is_candidate(path: Path, *, suffix: str, excluded_names: Sequence[str]) -> bool:
    return path.name.endswith(suffix) and path.name not in excluded_names


def walk_sources(root: Path, *, suffix: str, excluded_names: Sequence[str]) -> list[Path]:
    found: list[Path] = []
    for dirpath, _dirs, files in os.walk(root):
        dir_p = Path(dirpath)
        for fn in files:
            p = dir_p / fn
            if is_candidate(p, suffix=suffix, excluded_names=excluded_names):
                found.append(p.resolve())
    return found


def discover_sources(
    roots: Iterable[Path],
    *,
    suffix: str = ".sol",
    excluded_names: Sequence[str] = (),
) -> list[Path]:
    """Enumerate test sources under ``roots``.

    Ordering is sorted so failures reproduce in the same order across runs.
    Individual unreadable roots are skipped; if none is readable the test
    setup is broken and ``ConfigurationError`` is raised.
    """

    roots = list(roots)
    readable: list[Path] = []
    for root in roots:
        if root.is_dir() and os.access(root, os.R_OK | os.X_OK):
            readable.append(root)
        else:
            print(f"[ast-import] warn: test directory not readable: {root}", flush=True)
    if not readable:
        names = ", ".join(str(r) for r in roots) or "<none>"
        raise ConfigurationError(f"No readable test directories: {names}")

    found: set[Path] = set()
    for root in readable:
        found.update(walk_sources(root, suffix=suffix, excluded_names=excluded_names))
    sources = sorted(found)
    logger.debug("discovered %d sources under %d roots", len(sources), len(readable))
    return sources
