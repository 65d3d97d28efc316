#!/usr/bin/env python3
"""
create-fastapi-app - Bootstrap a FastAPI project managed by uv

Usage:
    uvx create-fastapi-app <project-name>

Or install globally:
    uv tool install create-fastapi-app
    create-fastapi-app <project-name>
"""

import os
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from create_fastapi_app.templates import (
    ENV_EXAMPLE_PATH,
    ENV_PATH,
    MANIFEST_CONFIG_BLOCK,
    MANIFEST_PATH,
    PACKAGE_MARKERS,
    README_PATH,
    get_template,
    iter_templates,
    render_readme,
)

__version__ = "1.0.2"

# Constants
TOOLCHAIN = "uv"
INSTALL_HINT = "curl -LsSf https://astral.sh/uv/install.sh | sh"
RUNTIME_DEPENDENCIES = ("fastapi", "uvicorn", "python-dotenv", "pydantic-settings")
DEV_DEPENDENCIES = ("pytest", "pytest-asyncio", "httpx", "black", "ruff", "mypy")
# Reported when the process could not be spawned at all (shell convention).
SPAWN_FAILURE_EXIT_CODE = 127

TAGLINE = "create-fastapi-app - FastAPI projects with uv, pytest, ruff and mypy"

PIPELINE_STEPS = [
    ("init", "Initialize project with uv"),
    ("deps", "Install dependencies"),
    ("dev-deps", "Install dev dependencies"),
    ("files", "Create project files"),
]


class ScaffoldError(Exception):
    """Base error for a failed bootstrap stage."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message


class PreflightError(ScaffoldError):
    def __init__(self, stage: str, message: str, hint: str = ""):
        super().__init__(stage, message)
        self.hint = hint


class CommandError(ScaffoldError):
    def __init__(self, stage: str, message: str, result: "CommandResult"):
        super().__init__(stage, message)
        self.result = result


class MaterializationError(ScaffoldError):
    def __init__(self, stage: str, message: str, cause: Exception):
        super().__init__(stage, message)
        self.cause = cause


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command invocation."""
    command: tuple[str, ...]
    exit_code: int
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def stderr_snippet(self, limit: int = 5) -> str:
        """Return the last ``limit`` non-empty lines of stderr."""
        lines = [line for line in self.stderr.splitlines() if line.strip()]
        return "\n".join(lines[-limit:])


class StepTracker:
    """Status of the uv init, dependency install and file writing stages.

    Keys follow PIPELINE_STEPS; a failed stage is marked "error" and later
    stages stay "pending". render() is redrawn by the Live display through
    the callback given to attach_refresh().
    """
    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}
        self._refresh_cb = None

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, status="error", detail=detail)

    def status(self, key: str) -> Optional[str]:
        for s in self.steps:
            if s["key"] == key:
                return s["status"]
        return None

    def _update(self, key: str, status: str, detail: str):
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                self._maybe_refresh()
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def render(self):
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            label = step["label"]
            detail_text = escape(step["detail"].strip()) if step["detail"] else ""

            status = step["status"]
            if status == "done":
                symbol = "[green]●[/green]"
            elif status == "pending":
                symbol = "[green dim]○[/green dim]"
            elif status == "running":
                symbol = "[cyan]○[/cyan]"
            elif status == "error":
                symbol = "[red]●[/red]"
            else:
                symbol = " "

            if status == "pending":
                if detail_text:
                    line = f"{symbol} [bright_black]{label} ({detail_text})[/bright_black]"
                else:
                    line = f"{symbol} [bright_black]{label}[/bright_black]"
            else:
                if detail_text:
                    line = f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
                else:
                    line = f"{symbol} [white]{label}[/white]"

            tree.add(line)
        return tree


console = Console()

app = typer.Typer(
    name="create-fastapi-app",
    help="Create a FastAPI project with proper tooling",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def show_banner():
    console.print()
    console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
    console.print()


def run_command(cmd: Sequence[str], *, cwd: Optional[Path] = None, capture: bool = True) -> CommandResult:
    """Run a command to completion and report its exit status.

    capture: if True stdout/stderr are collected instead of shown; stderr is kept
    on the result for failure messages.
    """
    command = tuple(cmd)
    try:
        if capture:
            result = subprocess.run(list(command), cwd=cwd, capture_output=True, text=True)
            return CommandResult(command, result.returncode, result.stderr or "")
        result = subprocess.run(list(command), cwd=cwd)
        return CommandResult(command, result.returncode)
    except OSError as e:
        return CommandResult(command, SPAWN_FAILURE_EXIT_CODE, str(e))


def check_toolchain_available() -> bool:
    """Check that the uv binary can be invoked."""
    return run_command([TOOLCHAIN, "--version"]).ok


def check_target_free(path: Path) -> bool:
    """Check that nothing, not even a dangling symlink, exists at path."""
    return not (path.exists() or path.is_symlink())


def validate_project_name(project_name: str) -> None:
    name = (project_name or "").strip()
    if not name:
        raise PreflightError("name", "Project name must not be empty")
    if name in (".", "..") or "/" in name or (os.sep != "/" and os.sep in name):
        raise PreflightError(
            "name",
            f"Invalid project name '{project_name}'",
            "Use a plain directory name without path separators.",
        )


def preflight(project_name: str, project_path: Path) -> None:
    """Run the precondition checks; uv availability is checked before the target."""
    validate_project_name(project_name)
    if not check_toolchain_available():
        raise PreflightError("toolchain", f"{TOOLCHAIN} is not installed", f"Install it with: {INSTALL_HINT}")
    if not check_target_free(project_path):
        raise PreflightError(
            "target",
            f"Directory '{project_name}' already exists",
            "Please choose a different project name or remove the existing directory.",
        )


def _run_stage(stage: str, failure: str, cmd: Sequence[str], cwd: Path, tracker: Optional[StepTracker]) -> CommandResult:
    if tracker:
        tracker.start(stage)
    result = run_command(cmd, cwd=cwd)
    if not result.ok:
        if tracker:
            tracker.error(stage, f"exit code {result.exit_code}")
        raise CommandError(stage, failure, result)
    return result


def initialize_skeleton(project_name: str, base_dir: Path, tracker: Optional[StepTracker] = None) -> Path:
    """Create the base project with `uv init --app`; returns the project root."""
    _run_stage("init", "Failed to initialize project", [TOOLCHAIN, "init", "--app", project_name], base_dir, tracker)
    project_path = base_dir / project_name
    if tracker:
        tracker.complete("init", "project initialized")
    return project_path


def install_dependencies(project_path: Path, tracker: Optional[StepTracker] = None) -> None:
    """Install the runtime and dev dependency groups, each as one `uv add` call."""
    _run_stage("deps", "Failed to install dependencies", [TOOLCHAIN, "add", *RUNTIME_DEPENDENCIES], project_path, tracker)
    if tracker:
        tracker.complete("deps", f"{len(RUNTIME_DEPENDENCIES)} packages")
    _run_stage("dev-deps", "Failed to install dev dependencies", [TOOLCHAIN, "add", "--dev", *DEV_DEPENDENCIES], project_path, tracker)
    if tracker:
        tracker.complete("dev-deps", f"{len(DEV_DEPENDENCIES)} packages")


def write_file(project_path: Path, relative_path: str, content: str) -> Path:
    """Write content under project_path, creating parent directories as needed."""
    destination = project_path / relative_path
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(content, encoding="utf-8")
    return destination


def append_to_file(project_path: Path, relative_path: str, content: str) -> bool:
    """Append content to an existing file. Returns False if the file is missing."""
    destination = project_path / relative_path
    if not destination.exists():
        return False
    current = destination.read_text(encoding="utf-8")
    destination.write_text(current + content, encoding="utf-8")
    return True


def materialize(project_path: Path, project_name: str) -> list[str]:
    """Write the template catalog and derived files into project_path.

    Returns the relative paths written, in order. The manifest block is appended
    on every call, so running this twice leaves it in pyproject.toml twice.
    Errors propagate; files written before the failure are left in place.
    """
    written: list[str] = []

    for entry in iter_templates():
        write_file(project_path, entry.path, entry.render(project_name))
        written.append(entry.path)

    for marker in PACKAGE_MARKERS:
        write_file(project_path, marker, "")
        written.append(marker)

    write_file(project_path, ENV_EXAMPLE_PATH, get_template(ENV_PATH).render(project_name))
    written.append(ENV_EXAMPLE_PATH)

    if append_to_file(project_path, MANIFEST_PATH, MANIFEST_CONFIG_BLOCK):
        written.append(MANIFEST_PATH)

    write_file(project_path, README_PATH, render_readme(project_name))
    written.append(README_PATH)

    return written


def bootstrap_project(project_name: str, base_dir: Path, *, tracker: Optional[StepTracker] = None) -> Path:
    """Initialize, install dependencies and write project files, failing fast.

    Nothing is rolled back on failure: a skeleton created by uv stays on disk.
    """
    base_dir = Path(base_dir).resolve()
    project_path = initialize_skeleton(project_name, base_dir, tracker=tracker)
    install_dependencies(project_path, tracker=tracker)

    if tracker:
        tracker.start("files")
    try:
        written = materialize(project_path, project_name)
    except Exception as e:
        if tracker:
            tracker.error("files", str(e))
        raise MaterializationError("files", "Failed to create project files", e) from e
    if tracker:
        tracker.complete("files", f"{len(written)} files")
    return project_path


def _print_debug_environment():
    _env_pairs = [
        ("Python", sys.version.split()[0]),
        ("Platform", sys.platform),
        ("CWD", str(Path.cwd())),
    ]
    _label_width = max(len(k) for k, _ in _env_pairs)
    env_lines = [f"{k.ljust(_label_width)} → [bright_black]{v}[/bright_black]" for k, v in _env_pairs]
    console.print(Panel("\n".join(env_lines), title="Debug Environment", border_style="magenta"))


def _version_callback(value: bool):
    if value:
        console.print(f"create-fastapi-app {__version__}")
        raise typer.Exit()


@app.command()
def create(
    project_name: str = typer.Argument(..., help="Name of the project to create"),
    debug: bool = typer.Option(False, "--debug", help="Show diagnostic details when a stage fails"),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit",
        callback=_version_callback,
        is_eager=True,
        expose_value=False,
    ),
):
    """
    Create a FastAPI project with proper tooling.

    This command will:
    1. Check that uv is installed and the target directory is free
    2. Initialize the project with `uv init --app`
    3. Install runtime and dev dependencies with `uv add`
    4. Write the application, tests, settings and helper files
    """
    project_path = Path.cwd() / project_name

    try:
        preflight(project_name, project_path)
    except PreflightError as e:
        body = escape(e.message)
        if e.hint:
            body += f"\n[yellow]{e.hint}[/yellow]"
        console.print()
        console.print(Panel(body, title="[red]Error[/red]", border_style="red", padding=(1, 2)))
        raise typer.Exit(1)

    show_banner()
    console.print(f"[green]Creating FastAPI project:[/green] [cyan]{escape(project_name)}[/cyan]\n")

    tracker = StepTracker("Create FastAPI Project")
    for key, label in PIPELINE_STEPS:
        tracker.add(key, label)

    failure: Optional[ScaffoldError] = None
    # Use transient so live tree is replaced by the final static render
    with Live(tracker.render(), console=console, refresh_per_second=8, transient=True) as live:
        tracker.attach_refresh(lambda: live.update(tracker.render()))
        try:
            bootstrap_project(project_name, Path.cwd(), tracker=tracker)
        except ScaffoldError as e:
            failure = e

    console.print(tracker.render())

    if failure is not None:
        if isinstance(failure, MaterializationError):
            console.print(Panel(escape(repr(failure.cause)), title=f"[red]{failure.message}[/red]", border_style="red"))
        else:
            body = f"Failed at stage [cyan]{failure.stage}[/cyan]: {escape(failure.message)}"
            snippet = failure.result.stderr_snippet() if isinstance(failure, CommandError) else ""
            if snippet:
                body += f"\n\n[bright_black]{escape(snippet)}[/bright_black]"
            console.print(Panel(body, title="[red]Failure[/red]", border_style="red"))
        if debug:
            _print_debug_environment()
        raise typer.Exit(1)

    steps_lines = [
        f"1. Go to the project folder: [cyan]cd {escape(project_name)}[/cyan]",
        "2. Start the server: [cyan]uv run uvicorn app.main:app --reload[/cyan]",
        "",
        "Your API will be running at:",
        "  http://localhost:8000",
        "  http://localhost:8000/docs (API documentation)",
    ]
    console.print("\n[bold green]Project created successfully![/bold green]")
    console.print()
    console.print(Panel("\n".join(steps_lines), title="Next Steps", border_style="cyan", padding=(1, 2)))


def main():
    app()


if __name__ == "__main__":
    main()
