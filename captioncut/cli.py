"""
captioncut.cli - Typer CLI entry point.

Provides all subcommands for the CaptionCut pipeline: workspace setup,
pipeline runs, single stages, project lifecycle, and caption edits.
"""

from __future__ import annotations

import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.table import Table

from captioncut import __version__
from captioncut.config import CONFIG_FILENAME, CaptionCutConfig, load_config
from captioncut.exceptions import CaptionCutError
from captioncut.logging import configure_logging
from captioncut.project import DirectoryProjectStore, Workspace

app = typer.Typer(
    name="captioncut",
    help="Speech recording to cut, captioned video.\n\n"
    "Transcribes a recording, removes fillers and long pauses, picks emphasis "
    "words with an LLM, and produces frame-accurate caption timing.",
    add_completion=False,
)
projects_app = typer.Typer(help="Manage current and archived projects.", no_args_is_help=True)
keyframe_app = typer.Typer(help="Edit caption position keyframes.", no_args_is_help=True)
emphasis_app = typer.Typer(help="Edit caption emphasis.", no_args_is_help=True)
app.add_typer(projects_app, name="projects")
app.add_typer(keyframe_app, name="keyframe")
app.add_typer(emphasis_app, name="emphasis")

console = Console()
err_console = Console(stderr=True, soft_wrap=True)

PROMPTS_DIR = Path(__file__).parent / "prompts"


def find_workspace_dir() -> Path | None:
    """Find the workspace directory by looking for captioncut.yaml."""
    current = Path.cwd()
    while current != current.parent:
        if (current / CONFIG_FILENAME).exists():
            return current
        current = current.parent
    return None


def require_workspace() -> tuple[Workspace, CaptionCutConfig]:
    workspace_dir = find_workspace_dir()
    if not workspace_dir:
        err_console.print("[red]Error: Not in a CaptionCut workspace[/red]")
        err_console.print("[dim]Run 'captioncut init' first or cd into a workspace[/dim]")
        raise typer.Exit(1)
    with handle_errors():
        return Workspace(workspace_dir), load_config(workspace_dir)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn CaptionCut errors into a red message and exit code 1."""
    try:
        yield
    except CaptionCutError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e


def version_callback(value: bool) -> None:
    if value:
        console.print(f"captioncut {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """CaptionCut - speech recording to cut, captioned video."""
    configure_logging(verbose)


# Workspace


@app.command("init")
def init_workspace(
    path: str = typer.Argument(".", help="Directory to create the workspace in"),
) -> None:
    """Create a CaptionCut workspace.

    Creates the working stores, archive/, public/, a default captioncut.yaml,
    and editable copies of the prompt templates.
    """
    workspace = Workspace(Path(path).resolve())

    if workspace.exists():
        err_console.print(f"[red]Error: '{workspace.path}' is already a workspace[/red]")
        raise typer.Exit(1)

    workspace.create()

    workspace.prompts_dir.mkdir(exist_ok=True)
    for prompt_file in PROMPTS_DIR.glob("*.txt"):
        shutil.copy(prompt_file, workspace.prompts_dir / prompt_file.name)

    console.print(f"[green]✓[/green] Created workspace at {workspace.path}")
    console.print("\nNext steps:")
    console.print("  captioncut projects create <name>")
    console.print("  copy a recording into input/")
    console.print("  captioncut run")


# Pipeline


def _run_pipeline(
    workspace: Workspace,
    config: CaptionCutConfig,
    from_stage: str,
    in_process: bool = False,
) -> None:
    from captioncut.pipeline.orchestrator import (
        InProcessStageExecutor,
        PipelineRunner,
        create_pipeline,
    )
    from captioncut.pipeline.progress import ProgressBroadcaster, is_terminal

    executor = InProcessStageExecutor(workspace, config, console=console) if in_process else None
    broadcaster = ProgressBroadcaster()
    runner = PipelineRunner(create_pipeline(workspace, broadcaster, executor=executor))

    failed = False
    with broadcaster.subscribe() as subscription:
        with handle_errors():
            runner.start(from_stage)

        for event in subscription:
            status = event.get("status")
            if status == "running":
                console.print(
                    f"[cyan][{event['step']}/{event['total_steps']}] "
                    f"{event['step_name']}...[/cyan]"
                )
            elif status == "failed":
                failed = True
                console.print(
                    f"[red]✗ {event['step_name']} failed: {event.get('error', '')}[/red]"
                )
            elif status == "complete":
                console.print("[green]✓[/green] Pipeline complete!")
            if is_terminal(event):
                break

    runner.wait()
    if failed:
        raise typer.Exit(1)


@app.command("run")
def run_pipeline(
    from_stage: str = typer.Option(
        "transcribe",
        "--from",
        help="Start from stage: transcribe, analyze-fillers, detect-emphasis, "
        "generate-timing, cut-video",
    ),
    in_process: bool = typer.Option(
        False,
        "--in-process",
        help="Run stages in this process instead of one child process per stage",
    ),
) -> None:
    """Run the pipeline, each stage in its own process by default."""
    workspace, config = require_workspace()
    _run_pipeline(workspace, config, from_stage, in_process=in_process)


@app.command("continue")
def continue_pipeline(
    in_process: bool = typer.Option(
        False,
        "--in-process",
        help="Run stages in this process instead of one child process per stage",
    ),
) -> None:
    """Resume after reviewing fillers and cuts (from detect-emphasis)."""
    from captioncut.pipeline.stages import CONTINUE_FROM

    workspace, config = require_workspace()
    _run_pipeline(workspace, config, CONTINUE_FROM, in_process=in_process)


@app.command("stage")
def run_single_stage(
    name: str = typer.Argument(..., help="Stage name"),
) -> None:
    """Run one pipeline stage in this process."""
    from captioncut.pipeline.stages import run_stage

    workspace, config = require_workspace()
    with handle_errors():
        run_stage(name, workspace, config, console=console)


# Projects


@projects_app.command("list")
def list_projects() -> None:
    """List archived projects and the current one."""
    workspace, _ = require_workspace()
    projects = DirectoryProjectStore(workspace).list()

    if not projects:
        console.print("[yellow]No projects yet. Run 'captioncut projects create <name>'.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("Name", style="cyan")
    table.add_column("Date")
    table.add_column("Size", justify="right")
    table.add_column("Current", style="green")

    for project in projects:
        table.add_row(project.name, project.date, project.size, "✓" if project.is_current else "")

    console.print(table)


@projects_app.command("create")
def create_project(name: str = typer.Argument(..., help="Project name")) -> None:
    """Start a new current project, archiving the previous one."""
    workspace, _ = require_workspace()
    with handle_errors():
        allocated = DirectoryProjectStore(workspace).create(name)
    console.print(f"[green]✓[/green] Created project '{allocated}'")
    if allocated != name:
        console.print(f"[dim]  '{name}' is taken in the archive[/dim]")


@projects_app.command("archive")
def archive_project(name: str = typer.Argument(..., help="Archive entry name")) -> None:
    """Move the current project into the archive."""
    workspace, _ = require_workspace()
    with handle_errors():
        DirectoryProjectStore(workspace).archive(name)
    console.print(f"[green]✓[/green] Archived project as '{name}'")


@projects_app.command("load")
def load_project(name: str = typer.Argument(..., help="Archived project name")) -> None:
    """Make an archived project current again."""
    workspace, _ = require_workspace()
    with handle_errors():
        DirectoryProjectStore(workspace).load(name)
    console.print(f"[green]✓[/green] Loaded project '{name}'")


# Caption edits


@keyframe_app.command("set")
def set_keyframe_cmd(
    frame: int = typer.Argument(..., help="Frame number"),
    x: float = typer.Argument(..., help="Horizontal position, 0-100"),
    y: float = typer.Argument(..., help="Vertical position, 0-100"),
) -> None:
    """Add a position keyframe, replacing any at the same frame."""
    from captioncut.captions.keyframes import set_keyframe
    from captioncut.captions.timing import apply_caption_updates, load_caption_timing

    workspace, _ = require_workspace()
    path = workspace.caption_timing_path
    with handle_errors():
        timing = load_caption_timing(path)
        try:
            keyframes = set_keyframe(timing.position_keyframes, frame, x, y)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
        apply_caption_updates(path, {"position_keyframes": [kf.to_dict() for kf in keyframes]})
    console.print(f"[green]✓[/green] Keyframe at frame {frame}: ({x}, {y})")


@keyframe_app.command("remove")
def remove_keyframe_cmd(frame: int = typer.Argument(..., help="Frame number")) -> None:
    """Remove the position keyframe at a frame."""
    from captioncut.captions.keyframes import remove_keyframe
    from captioncut.captions.timing import apply_caption_updates, load_caption_timing

    workspace, _ = require_workspace()
    path = workspace.caption_timing_path
    with handle_errors():
        timing = load_caption_timing(path)
        if not any(kf.frame == frame for kf in timing.position_keyframes):
            console.print(f"[yellow]No keyframe at frame {frame}[/yellow]")
            raise typer.Exit(1)
        keyframes = remove_keyframe(timing.position_keyframes, frame)
        apply_caption_updates(path, {"position_keyframes": [kf.to_dict() for kf in keyframes]})
    console.print(f"[green]✓[/green] Removed keyframe at frame {frame}")


@keyframe_app.command("list")
def list_keyframes_cmd() -> None:
    """Show position keyframes."""
    from captioncut.captions.keyframes import normalize_keyframes
    from captioncut.captions.timing import load_caption_timing

    workspace, _ = require_workspace()
    with handle_errors():
        timing = load_caption_timing(workspace.caption_timing_path)

    keyframes = normalize_keyframes(timing.position_keyframes)
    if not keyframes:
        position = timing.position
        where = f"({position.x}, {position.y})" if position else "default"
        console.print(f"[dim]No keyframes; static position {where}[/dim]")
        return

    table = Table(title="Position Keyframes")
    table.add_column("Frame", justify="right", style="cyan")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    for kf in keyframes:
        table.add_row(str(kf.frame), f"{kf.x:g}", f"{kf.y:g}")
    console.print(table)


@app.command("position")
def set_position(
    x: float = typer.Argument(..., help="Horizontal position, 0-100"),
    y: float = typer.Argument(..., help="Vertical position, 0-100"),
) -> None:
    """Set the static caption position."""
    from captioncut.captions.timing import apply_caption_updates

    workspace, _ = require_workspace()
    with handle_errors():
        apply_caption_updates(workspace.caption_timing_path, {"position": {"x": x, "y": y}})
    console.print(f"[green]✓[/green] Caption position set to ({x}, {y})")


@emphasis_app.command("toggle")
def toggle_emphasis_cmd(
    index: int = typer.Argument(..., help="Word index in the transcription"),
) -> None:
    """Flip emphasis on one caption word."""
    from captioncut.captions.timing import (
        load_caption_timing,
        save_caption_timing,
        toggle_emphasis,
    )

    workspace, _ = require_workspace()
    path = workspace.caption_timing_path
    with handle_errors():
        timing = load_caption_timing(path)
        is_emphasis = toggle_emphasis(timing, index)
        save_caption_timing(timing, path)

    word = timing.find_word(index)
    state = "on" if is_emphasis else "off"
    console.print(f'[green]✓[/green] Emphasis {state} for "{word.text}" (#{index})')


# Diagnostics


@app.command("doctor")
def run_doctor() -> None:
    """Check dependencies and environment setup."""
    console.print("[cyan]Running preflight checks...[/cyan]\n")

    from captioncut.exceptions import DependencyError
    from captioncut.validation import check_disk_space, check_ffmpeg

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Version/Details")

    all_passed = True

    try:
        versions = check_ffmpeg()
        table.add_row("FFmpeg", "✓ Installed", versions.get("ffmpeg_version", "unknown"))
        table.add_row("FFprobe", "✓ Installed", versions.get("ffprobe_version", "unknown"))
    except DependencyError as e:
        table.add_row(e.dependency, "✗ Missing", e.install_hint or "")
        all_passed = False

    workspace_dir = find_workspace_dir()
    if workspace_dir:
        try:
            config = load_config(workspace_dir)
            table.add_row("Config", "✓ Valid", str(workspace_dir / CONFIG_FILENAME))
            table.add_row("Transcription", config.transcription_model, "")
            table.add_row("LLM Backend", config.llm_backend, config.llm_model)
        except CaptionCutError as e:
            table.add_row("Config", "✗ Invalid", str(e))
            all_passed = False

        try:
            disk = check_disk_space(workspace_dir, required_mb=1024)
            status = "✓ OK" if disk["sufficient"] else "✗ Low"
            table.add_row("Disk Space", status, f"{disk['available_mb']} MB free")
            all_passed = all_passed and disk["sufficient"]
        except CaptionCutError as e:
            table.add_row("Disk Space", "?", str(e))
    else:
        table.add_row("Workspace", "-", "Not in a workspace directory")

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        console.print("[dim]Fix the issues above before running the pipeline[/dim]")
        raise typer.Exit(1)
