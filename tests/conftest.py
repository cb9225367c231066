from __future__ import annotations

import shlex
import stat
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest

from astimport.settings import Settings


# Stand-in compiler. Behaviour is driven by markers in the source text:
#   UNCOMPILABLE  --bin fails
#   EXPORT_FAIL   first export fails
#   IMPORT_FAIL   --import-ast fails (writes to both streams)
#   MISMATCH      --import-ast changes one field value
#   INDENT_DRIFT  --import-ast ignores --json-indent
#   HANG          --import-ast never finishes
FAKE_COMPILER = '''
import json
import sys
import time

args = sys.argv[1:]
if args == ["--version"]:
    print("fake-solc 0.0.0")
    sys.exit(0)

def read(p):
    with open(p, encoding="utf-8", errors="replace") as f:
        return f.read()

def indent_of(argv):
    return int(argv[argv.index("--json-indent") + 1]) if "--json-indent" in argv else None

if args[0] == "--bin":
    files = args[1:]
    if any("UNCOMPILABLE" in read(p) for p in files):
        sys.stderr.write("Error: not compilable\\n")
        sys.exit(1)
    print("6080604052")
    sys.exit(0)

if args[0] == "--import-ast":
    src = args[-1]
    text = read(src)
    if "HANG" in text:
        time.sleep(30)
    if "IMPORT_FAIL" in text:
        sys.stdout.write("partial-import-stdout\\n")
        sys.stderr.write("import-error-detail\\n")
        sys.exit(1)
    doc = json.loads(text)
    if "MISMATCH" in text:
        for unit in doc["sources"].values():
            unit["AST"]["value"] = "value-2"
    indent = None if "INDENT_DRIFT" in text else indent_of(args)
    sys.stdout.write(json.dumps(doc, indent=indent) + "\\n")
    sys.exit(0)

files = [a for a in args if not a.startswith("--") and a not in ("ast",) and not a.isdigit()]
if any("EXPORT_FAIL" in read(p) for p in files):
    sys.stderr.write("export exploded\\n")
    sys.exit(1)
doc = {"sources": {}}
for p in files:
    name = p.rsplit("/", 1)[-1]
    doc["sources"][name] = {"AST": {"marker": read(p).strip(), "value": "value-1"}}
sys.stdout.write(json.dumps(doc, indent=indent_of(args)) + "\\n")
'''

# Stand-in splitter following the 0/1/2/other exit protocol.
FAKE_SPLITTER = '''
import sys

path = sys.argv[1]
with open(path, "rb") as f:
    raw = f.read()
text = raw.decode("utf-8", errors="replace")
if "FATAL" in text:
    print("splitter crashed")
    sys.exit(3)
if "DECODE" in text:
    print("UnicodeDecodeError: invalid start byte in " + path)
    sys.exit(2)
if "SPLIT" in text:
    names = []
    for i, part in enumerate(text.split("==== Source ====")[1:]):
        name = "part%d.sol" % i
        with open(name, "w", encoding="utf-8") as out:
            out.write(part)
        names.append(name)
    print(" ".join(names))
    sys.exit(0)
sys.exit(1)
'''

FAKE_DIFF = '''
import difflib
import sys

a, b = sys.argv[1], sys.argv[2]
with open(a, encoding="utf-8") as f:
    left = f.read()
with open(b, encoding="utf-8") as f:
    right = f.read()
if left == right:
    sys.exit(0)
sys.stdout.writelines(difflib.unified_diff(left.splitlines(True), right.splitlines(True), a, b))
sys.exit(1)
'''


def write_script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass(frozen=True)
class FakeTools:
    repo_root: Path
    compiler: Path
    splitter: Path
    diff_command: str

    def settings(self, **overrides) -> Settings:
        values = {
            "repo_root": self.repo_root,
            "build_dir": str(self.repo_root / "build"),
            "splitter_path": str(self.splitter),
            "diff_command": self.diff_command,
            "timeout_seconds": 60.0,
        }
        values.update(overrides)
        return Settings(**values)

    def source(self, rel: str, text: str | bytes) -> Path:
        path = self.repo_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(text, bytes):
            path.write_bytes(text)
        else:
            path.write_text(text, encoding="utf-8")
        return path


@pytest.fixture()
def fake_tools(tmp_path: Path) -> FakeTools:
    repo_root = tmp_path / "repo"
    compiler = write_script(repo_root / "build" / "solc" / "solc", FAKE_COMPILER)
    splitter = write_script(repo_root / "scripts" / "splitSources.py", FAKE_SPLITTER)
    fake_diff = write_script(tmp_path / "tools" / "fake_diff.py", FAKE_DIFF)
    diff_command = f"{shlex.quote(sys.executable)} {shlex.quote(str(fake_diff))}"
    return FakeTools(repo_root=repo_root, compiler=compiler, splitter=splitter, diff_command=diff_command)


@pytest.fixture()
def scratch_tmp(tmp_path: Path, monkeypatch) -> Path:
    # Route tempfile.mkdtemp into a directory the test can inspect.
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root
