"""Scan compose files and report host port collisions."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from . import __version__
from .config import FAIL_ON_LEVELS, OUTPUT_FORMATS, ConfigError, Settings, load_config
from .format import (
    format_json,
    format_markdown,
    format_runtime_markdown,
    format_runtime_text,
    format_suggestions_markdown,
    format_suggestions_text,
    format_text,
)
from .models import ScanResult, Severity
from .profiles import format_profiles, load_profiles
from .registry import ISSUE_INFO
from .scanner import ComposeFileError, RuntimeProbeError, find_runtime_conflicts, scan, scan_runtime
from .scanner.runtime import RuntimeResult
from .suggest import conflicted_ports, suggest_free_ports

logger = logging.getLogger(__name__)

# Subcommands; anything else in first position is treated as a scan path
_SUBCOMMANDS = {"scan", "profiles", "explain", "version"}
_ROOT_FLAGS = {"--help", "-h", "--install-completion", "--show-completion"}


def _err(msg: str) -> None:
    """Raise a styled error (red box). Used for all CLI errors."""
    raise typer.BadParameter(msg)


def _preprocess_argv() -> None:
    """`portcheck`, `portcheck ./dir` and `portcheck --strict` all mean `portcheck scan ...`."""
    argv = sys.argv[1:]
    if argv and (argv[0] in _SUBCOMMANDS or argv[0] in _ROOT_FLAGS):
        return
    sys.argv[1:] = ["scan", *argv]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


app = typer.Typer(help="Detect host port collisions in Docker Compose files before you launch them.")


@app.command("scan")
def scan_cmd(
    path: Path = typer.Argument(Path("."), file_okay=False, dir_okay=True, help="Directory to scan (default: .)"),
    output_format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: text, json, markdown"),
    json_out: bool = typer.Option(False, "--json", "-j", help="Shortcut for --format json"),
    markdown_out: bool = typer.Option(False, "--markdown", "-m", help="Shortcut for --format markdown"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 when issues at or above --fail-on are found"),
    fail_on: Optional[str] = typer.Option(None, "--fail-on", help="In strict mode: fail on this severity or higher (error/warning/info)"),
    runtime: bool = typer.Option(False, "--runtime", help="Also check ports held by running containers"),
    suggest: bool = typer.Option(False, "--suggest", help="Suggest free alternative ports for collisions"),
    profile: Optional[List[str]] = typer.Option(None, "--profile", "-P", help="Compose profile(s) to activate"),
    show_host_ip: bool = typer.Option(False, "--show-host-ip", help="List host IP of every binding"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", dir_okay=False, help="Settings file (default: .portcheck.yaml in PATH)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and issue types in text output"),
) -> None:
    """Scan compose files for port conflicts."""
    _configure_logging(verbose)
    try:
        settings = load_config(path, config)
    except ConfigError as e:
        _err(str(e))

    fmt = _resolve_format(output_format, json_out, markdown_out, settings)
    threshold = (fail_on or settings.fail_on).lower()
    if threshold not in FAIL_ON_LEVELS:
        _err(f"--fail-on must be one of {', '.join(FAIL_ON_LEVELS)}")
    active_profiles = list(profile) if profile else settings.profiles

    try:
        result = scan(path, active_profiles=active_profiles, ignore_ports=settings.ignore_ports)
    except NotADirectoryError as e:
        _err(str(e))

    runtime_result = _runtime_check(result) if runtime else None

    suggestions = None
    if suggest:
        ports = conflicted_ports(result.issues)
        if ports:
            suggestions = suggest_free_ports(ports)

    if fmt == "json":
        typer.echo(format_json(result, runtime_result, suggestions))
    elif fmt == "markdown":
        typer.echo(format_markdown(result))
        if runtime_result is not None:
            typer.echo()
            typer.echo(format_runtime_markdown(runtime_result))
        if suggestions:
            typer.echo()
            typer.echo(format_suggestions_markdown(suggestions))
    else:
        typer.echo(format_text(result, show_host_ip=show_host_ip, verbose=verbose))
        if runtime_result is not None:
            typer.echo(format_runtime_text(runtime_result))
        if suggestions:
            typer.echo(format_suggestions_text(suggestions))

    if strict:
        _strict_exit(result, runtime_result, threshold)


def _resolve_format(output_format: Optional[str], json_out: bool, markdown_out: bool, settings: Settings) -> str:
    if json_out:
        return "json"
    if markdown_out:
        return "markdown"
    fmt = (output_format or settings.format).lower()
    if fmt not in OUTPUT_FORMATS:
        _err(f"Unknown format: {fmt}\nAvailable: {', '.join(OUTPUT_FORMATS)}")
    return fmt


def _runtime_check(result: ScanResult) -> Optional[RuntimeResult]:
    """Run the docker probe; failures are reported, not fatal."""
    try:
        runtime_result = scan_runtime()
    except RuntimeProbeError as e:
        typer.echo(f"Warning: runtime scan failed: {e}", err=True)
        return None
    runtime_result.conflicts = find_runtime_conflicts(result, runtime_result)
    return runtime_result


def _strict_exit(result: ScanResult, runtime_result: Optional[RuntimeResult], fail_on: str) -> None:
    """Exit 1 if any issue meets fail_on. Runtime conflicts count as errors."""
    threshold = Severity(fail_on)
    if result.issues_at_or_above(threshold):
        raise typer.Exit(1)
    if runtime_result is not None and runtime_result.conflicts:
        raise typer.Exit(1)


@app.command("profiles")
def profiles_cmd(
    path: Path = typer.Argument(Path("."), file_okay=False, dir_okay=True, help="Directory to scan"),
) -> None:
    """List compose profiles and the services in each."""
    try:
        config = load_profiles(path)
    except NotADirectoryError as e:
        _err(str(e))
    except ComposeFileError as e:
        _err(f"Failed to parse {e}")
    typer.echo(format_profiles(config))


@app.command("explain")
def explain_cmd(
    kind: str = typer.Argument(..., help="Issue type to explain, or 'list'"),
) -> None:
    """Explain an issue type."""
    if kind in ("list", "types"):
        typer.echo("Issue types:")
        for name in ISSUE_INFO:
            typer.echo(f"  {name}")
        typer.echo("\nUse: portcheck explain <type>")
        return
    info = ISSUE_INFO.get(kind)
    if not info:
        _err(f"Unknown issue type: {kind}\nAvailable: {', '.join(ISSUE_INFO)}")
    typer.echo(f"Issue: {kind}")
    typer.echo(f"Severity: {info['severity']}")
    typer.echo(f"Description: {info['description']}")
    typer.echo(f"When: {info['when']}")
    typer.echo(f"Fix: {info['fix']}")


@app.command("version")
def version_cmd() -> None:
    """Print version information."""
    typer.echo(f"portcheck {__version__}")


def _main() -> None:
    """Entry point: route bare paths and flags to `scan`, then run app."""
    _preprocess_argv()
    app()


if __name__ == "__main__":
    _main()
