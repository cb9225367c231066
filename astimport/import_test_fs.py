from __future__ import annotations

import json
import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from astimport.import_test_errors import HarnessDefect


logger = logging.getLogger(__name__)

EXPECTED_JSON = "expected.json"
OBTAINED_JSON = "obtained.json"
STDERR_TXT = "stderr.txt"
ARTIFACT_NAMES = (EXPECTED_JSON, OBTAINED_JSON, STDERR_TXT)


def safe_rmtree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        print(f"[ast-import] warn: remove workspace failed path={path}: {exc}", flush=True)


@contextmanager
def scoped_workspace(*, prefix: str = "ast-import-") -> Iterator[Path]:
    # One private directory per test case; removed on every exit path.
    work_dir = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug("workspace created: %s", work_dir)
    try:
        yield work_dir
    finally:
        safe_rmtree(work_dir)
        logger.debug("workspace removed: %s", work_dir)


def ensure_absent(path: Path) -> None:
    if path.exists():
        raise HarnessDefect(f"{path.name} already exists. Refusing to overwrite.")


def remove_artifacts(work_dir: Path) -> None:
    for name in ARTIFACT_NAMES:
        try:
            (work_dir / name).unlink()
        except FileNotFoundError:
            continue


def write_bytes(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as exc:
        raise HarnessDefect(f"write_bytes_failed:{path}:{exc}") from exc


def write_json(path: Path, obj: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
