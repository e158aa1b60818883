"""
CLI entry point for source-pack.

Packs a local directory or a remote git repository into a single Markdown or XML
document.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .config import OutputFormat, OutputMode, PackResult, WalkIssue
from .config_loader import load_config, merge_cli_with_config
from .errors import ConfigError
from .packer import PackRunner, default_output_path

# Initialize CLI app
app = typer.Typer(
    name="source-pack",
    help="Pack a source tree into a single Markdown or XML document for LLM prompts.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"source-pack version {__version__}")
        raise typer.Exit()


def print_summary(result: PackResult) -> None:
    """Print the terminal result of a run."""
    if not result.ok:
        err_console.print(f"[red]Error ({result.error_kind}): {result.message}[/red]")
        return

    console.print()
    if result.cancelled:
        console.print("[bold yellow]Pack cancelled; partial output written.[/bold yellow]")
    else:
        console.print("[bold green]✓ Pack complete![/bold green]")
    console.print()
    console.print("[cyan]Statistics:[/cyan]")
    console.print(f"  Source: {result.source_name}")
    console.print(f"  Files included: {result.files_included}")
    console.print(f"  Files skipped: {result.files_skipped}")
    console.print(f"  Total bytes: {result.bytes_included:,}")
    console.print(f"  Processing time: {result.elapsed_seconds:.2f}s")
    console.print()
    console.print(f"[cyan]Output file:[/cyan] {result.destination}")


@app.command()
def pack(
    source: str = typer.Argument(
        ...,
        help="Local directory or git repository URL (e.g., https://github.com/owner/name).",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file. Defaults to <name>.md / <name>.xml next to the source.",
        dir_okay=False,
    ),
    output_format: Optional[OutputFormat] = typer.Option(
        None,
        "--format", "-f",
        help="Output format: 'markdown' or 'xml'.",
        case_sensitive=False,
    ),
    mode: Optional[OutputMode] = typer.Option(
        None,
        "--mode", "-m",
        help="Output mode: 'full' (file contents) or 'structure' (paths and sizes only).",
        case_sensitive=False,
    ),
    compress: Optional[bool] = typer.Option(
        None,
        "--compress/--no-compress",
        help="Strip trailing whitespace and collapse blank lines in text files.",
    ),
    ignore_git: Optional[bool] = typer.Option(
        None,
        "--ignore-git/--keep-git",
        help="Skip .git directories (default: skip).",
    ),
    ignore_build: Optional[bool] = typer.Option(
        None,
        "--ignore-build/--keep-build",
        help="Skip build directories (default: skip).",
    ),
    ignore_gradle: Optional[bool] = typer.Option(
        None,
        "--ignore-gradle/--keep-gradle",
        help="Skip gradle and .gradle directories (default: skip).",
    ),
    ignore_files: Optional[str] = typer.Option(
        None,
        "--ignore-files",
        help="Comma-separated file or directory names to skip (e.g., 'secret.key,local.properties').",
    ),
    ignore_exts: Optional[str] = typer.Option(
        None,
        "--ignore-exts",
        help="Comma-separated extensions to skip (default: 'log,tmp').",
    ),
    max_file_bytes: Optional[int] = typer.Option(
        None,
        "--max-file-bytes",
        help="Render text files larger than this as a placeholder.",
        min=0,
    ),
    ref: Optional[str] = typer.Option(
        None,
        "--ref",
        help="Branch or tag to check out for remote repositories.",
    ),
    clone_timeout: Optional[int] = typer.Option(
        None,
        "--clone-timeout",
        help="Seconds a stalled clone may wait before it is aborted.",
        min=1,
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Config file (default: source-pack.toml / .yml in the working directory).",
        dir_okay=False,
    ),
    # Version
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """
    Pack a source tree into a single document.

    Examples:

        # Pack a local project next to itself (./my-project.md)
        source-pack ./my-project

        # Pack a GitHub repository as XML
        source-pack https://github.com/owner/repo -f xml -o repo.xml

        # Compress content and skip extra files
        source-pack ./my-project --compress --ignore-files "local.properties"
    """
    try:
        project_config = load_config(Path.cwd(), config_file)
        config = merge_cli_with_config(
            project_config,
            compress=compress,
            ignore_git=ignore_git,
            ignore_build=ignore_build,
            ignore_gradle=ignore_gradle,
            output_format=output_format,
            mode=mode,
            ignore_files=ignore_files,
            ignore_exts=ignore_exts,
            max_file_bytes=max_file_bytes,
            clone_timeout=clone_timeout,
        )
    except ConfigError as e:
        err_console.print(f"[red]Error (config): {e}[/red]")
        raise typer.Exit(1)

    destination = output or default_output_path(source, config.format)

    def report_issue(issue: WalkIssue) -> None:
        err_console.print(f"[yellow]Warning: skipped {issue}[/yellow]")

    with PackRunner() as runner:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            task = progress.add_task("Preparing source...", total=None)

            def report_progress(relative_path: str) -> None:
                progress.update(task, description=f"Packed {relative_path}")

            future = runner.submit(
                source,
                destination,
                config,
                on_progress=report_progress,
                on_issue=report_issue,
                ref=ref,
            )
            try:
                result = future.result()
            except KeyboardInterrupt:
                runner.cancel(destination)
                result = future.result()

    print_summary(result)
    if not result.ok:
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
