"""Command-line interface for repo-broadcast.

Runs the transformation pipeline locally, either on a single file or on the
directory mappings configured for a target repository.

Commands:
    transform  Transform one file for a target repository
    apply      Transform every configured directory mapping for a target
    patterns   Show the precompiled common patterns and cache statistics

Configuration:
    Supports config files: repo-broadcast.toml, .broadcast.yml, etc.
    CLI flags override config file values.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from . import __version__
from .config_loader import ProjectConfig, TargetConfig, load_config, merge_cli_with_config
from .errors import TransformError
from .pipeline import TransformReport, build_chain, transform_directory, transform_file
from .regex_cache import COMMON_PATTERNS, RegexCache
from .utils import split_repo

# Initialize CLI app
app = typer.Typer(
    name="repo-broadcast",
    help="""Rewrite repository content for broadcast to target repositories.

Replaces template variables, repository names and contact emails in files
copied from a source repository.

Examples:
    repo-broadcast transform README.md --source org/tmpl --target org/svc
    repo-broadcast apply ./tmpl --target org/svc --output-dir ./out
    repo-broadcast patterns
""",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route package logs through rich on stderr."""
    pkg_logger = logging.getLogger("repo_broadcast")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.addHandler(RichHandler(console=err_console, show_path=False))
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def create_spinner_progress() -> Progress:
    """Create a simple spinner progress for indeterminate tasks."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"repo-broadcast version {__version__}")
        raise typer.Exit()


def parse_assignments(values: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options. The value may be empty."""
    result: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint=option)
        result[key] = value
    return result


def parse_email_pair(value: str | None, option: str) -> tuple[str, str]:
    """Parse ``SOURCE=TARGET`` email rewrite options."""
    if not value:
        return "", ""
    source, sep, target = value.partition("=")
    if not sep or not source.strip() or not target.strip():
        raise typer.BadParameter(
            f"expected SOURCE=TARGET, got {value!r}", param_hint=option
        )
    return source.strip(), target.strip()


def print_report(label: str, report: TransformReport) -> None:
    """Print one directory mapping's summary."""
    console.print(f"\n[bold]{label}[/bold]")
    console.print(f"  Files processed: {report.processed}")
    console.print(f"  Files changed: {report.changed}")
    console.print(f"  Files binary (copied): {report.binary}")
    console.print(f"  Files excluded: {report.skipped}")
    if report.failed:
        console.print(f"  [red]Files failed: {report.failed}[/red]")
        for path, error in sorted(report.errors.items()):
            console.print(f"    {escape(path)}: {escape(error.message)}")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging.",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Rewrite repository content for broadcast to target repositories."""
    setup_logging(verbose)


@app.command()
def transform(
    file: Path = typer.Argument(
        ...,
        help="File to transform.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    source: str = typer.Option(
        ...,
        "--source",
        "-s",
        help="Source repository (org/name).",
    ),
    target: str = typer.Option(
        ...,
        "--target",
        "-t",
        help="Target repository (org/name).",
    ),
    var: list[str] | None = typer.Option(
        None,
        "--var",
        help="Template variable KEY=VALUE (repeatable).",
    ),
    security_email: str | None = typer.Option(
        None,
        "--security-email",
        help="Rewrite a security email: SOURCE=TARGET.",
    ),
    support_email: str | None = typer.Option(
        None,
        "--support-email",
        help="Rewrite a support email: SOURCE=TARGET.",
    ),
    dest_path: str | None = typer.Option(
        None,
        "--dest-path",
        help="Destination path in the target repo (drives file-type rules). [default: file name]",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the result here instead of stdout.",
    ),
) -> None:
    """Transform one file for a target repository.

    \b
    EXAMPLES:
      repo-broadcast transform go.mod --source org/old --target org/new
      repo-broadcast transform README.md -s org/tmpl -t org/svc --var SERVICE=svc
    """
    for option, repo in (("--source", source), ("--target", target)):
        if split_repo(repo) is None:
            raise typer.BadParameter(f"expected org/name, got {repo!r}", param_hint=option)

    variables = parse_assignments(var, "--var")
    src_security, dst_security = parse_email_pair(security_email, "--security-email")
    src_support, dst_support = parse_email_pair(support_email, "--support-email")

    project = ProjectConfig(
        source_repo=source,
        security_email=src_security,
        support_email=src_support,
    )
    target_config = TargetConfig(
        repo=target,
        variables=variables,
        security_email=dst_security,
        support_email=dst_support,
    )

    cache = RegexCache()
    chain = build_chain(target_config, cache, detect_binary=True)
    context = target_config.to_context(dest_path or file.name, project)

    try:
        content = file.read_bytes()
    except OSError as e:
        err_console.print(f"[red]Error reading {file}: {e}[/red]")
        raise typer.Exit(1) from None

    result = transform_file(chain, content, context)
    if result.error is not None:
        err_console.print(f"[red]Error: {escape(str(result.error))}[/red]")
        raise typer.Exit(1)

    if output is None:
        typer.echo(result.content, nl=False)
        return

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(result.content)
    except OSError as e:
        err_console.print(f"[red]Error writing {output}: {e}[/red]")
        raise typer.Exit(1) from None

    status = "binary, copied" if result.binary else ("changed" if result.changed else "unchanged")
    err_console.print(f"[green]Wrote {output} ({status})[/green]")


@app.command()
def apply(
    path: Path = typer.Argument(
        ...,
        help="Local checkout of the source repository.",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
    target: str = typer.Option(
        ...,
        "--target",
        "-t",
        help="Target repository (org/name) as listed in the config file.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file. [default: search the source checkout]",
        exists=True,
        dir_okay=False,
    ),
    source: str | None = typer.Option(
        None,
        "--source",
        "-s",
        help="Source repository (org/name). Overrides source_repo from config.",
    ),
    output_dir: Path = typer.Option(
        Path("./out"),
        "--output-dir",
        "-o",
        help="Root of the target working tree.",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        help="Worker threads per directory. [default: executor default]",
    ),
    no_binary_detection: bool = typer.Option(
        False,
        "--no-binary-detection",
        help="Run the chain on every file, including binary ones.",
    ),
) -> None:
    """Transform every directory mapping configured for a target.

    \b
    EXAMPLES:
      repo-broadcast apply ./template-repo --target org/service
      repo-broadcast apply . -t org/service -c broadcast.yml -o ../service
    """
    project = load_config(path, config)
    target_config = project.get_target(target)
    if target_config is None:
        err_console.print(f"[red]Error: no target {target!r} in config[/red]")
        raise typer.Exit(1)

    merged = merge_cli_with_config(
        project,
        source_repo=source,
        detect_binary=False if no_binary_detection else None,
    )
    if not merged["source_repo"] or split_repo(merged["source_repo"]) is None:
        err_console.print("[red]Error: a source repository (org/name) is required[/red]")
        raise typer.Exit(1)

    project = dataclasses.replace(project, source_repo=merged["source_repo"])

    if not target_config.directories:
        console.print(f"[yellow]No directory mappings configured for {target}[/yellow]")
        return

    cache = RegexCache(
        max_size=merged["cache_max_size"],
        common_patterns=COMMON_PATTERNS if merged["precompile_patterns"] else (),
    )
    chain = build_chain(target_config, cache, detect_binary=merged["detect_binary"])
    base_context = target_config.to_context("", project)

    failed = 0
    try:
        for mapping in target_config.directories:
            source_dir = path / mapping.src
            if not source_dir.is_dir():
                err_console.print(f"[yellow]Skipping missing directory {mapping.src}[/yellow]")
                continue

            with create_spinner_progress() as progress:
                progress.add_task(f"Transforming {mapping.src}...", total=None)
                report = transform_directory(
                    chain,
                    source_dir,
                    output_dir,
                    base_context,
                    mapping,
                    max_workers=workers,
                    skip_binary=merged["detect_binary"],
                )

            print_report(f"{mapping.src} -> {mapping.dest}", report)
            failed += report.failed
    except TransformError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    stats = cache.get_stats()
    console.print(
        f"\n[dim]Pattern cache: {stats.size} patterns, {stats.hits} hits, {stats.misses} misses[/dim]"
    )

    if failed:
        raise typer.Exit(1)


@app.command()
def patterns() -> None:
    """Compile the common patterns and show cache statistics."""
    cache = RegexCache(common_patterns=())
    compiled, errors = cache.precompile_patterns(COMMON_PATTERNS)

    console.print(f"\n[bold]Common patterns ({compiled} compiled)[/bold]\n")
    for pattern in COMMON_PATTERNS:
        console.print(f"  {pattern}", markup=False, highlight=False)

    for error in errors:
        console.print(f"[red]  {escape(str(error))}[/red]")

    stats = cache.get_stats()
    console.print("\n[cyan]Statistics:[/cyan]")
    console.print(f"  Cached patterns: {stats.size}")
    console.print(f"  Hits: {stats.hits}")
    console.print(f"  Misses: {stats.misses}")

    if errors:
        raise typer.Exit(1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
