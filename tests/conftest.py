from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

SKELETON_PYPROJECT = """[project]
name = "{name}"
version = "0.1.0"
requires-python = ">=3.12"
dependencies = []
"""


class FakeUv:
    """Stands in for `subprocess.run` when the command is `uv ...`.

    `init` creates the skeleton the real tool would; `fail` maps a stage
    (version, init, deps, dev-deps) to the exit code it should return.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], Path | None]] = []
        self.fail: dict[str, int] = {}
        self.missing = False
        self.on_init: Callable[[Path], None] | None = None

    @staticmethod
    def stage(cmd: list[str]) -> str:
        if cmd[1] == "--version":
            return "version"
        if cmd[1] == "init":
            return "init"
        if "--dev" in cmd:
            return "dev-deps"
        return "deps"

    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls]

    def __call__(self, cmd, cwd=None, **kwargs) -> subprocess.CompletedProcess:
        cmd = list(cmd)
        self.calls.append((cmd, Path(cwd) if cwd is not None else None))
        if self.missing:
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        stage = self.stage(cmd)
        code = self.fail.get(stage, 0)
        if code:
            return subprocess.CompletedProcess(cmd, code, stdout="", stderr=f"error: {stage} failed\n")

        if stage == "init":
            name = cmd[-1]
            root = Path(cwd) / name
            root.mkdir()
            (root / "pyproject.toml").write_text(SKELETON_PYPROJECT.format(name=name), encoding="utf-8")
            (root / "main.py").write_text('print("Hello")\n', encoding="utf-8")
            if self.on_init:
                self.on_init(root)

        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


@pytest.fixture
def fake_uv(monkeypatch: pytest.MonkeyPatch) -> FakeUv:
    fake = FakeUv()
    monkeypatch.setattr("create_fastapi_app.subprocess.run", fake)
    return fake


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path.resolve()
