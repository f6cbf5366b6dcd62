"""Boxed terminal text, JSON and Markdown output."""

from __future__ import annotations

import json
import os
import shutil
from typing import List

import click

from .models import Binding, Issue, ScanResult, Severity
from .scanner.runtime import RuntimeResult

SECTION_TITLES = {
    Severity.ERROR: ("ERRORS", "red"),
    Severity.WARNING: ("WARNINGS", "yellow"),
    Severity.INFO: ("INFO", None),
}
MARKDOWN_ICONS = {Severity.ERROR: "🔴", Severity.WARNING: "🟡", Severity.INFO: "🔵"}


def _get_width() -> int:
    try:
        return min(72, shutil.get_terminal_size((72, 24)).columns)
    except OSError:
        return 72


def _wrap(text: str, indent: int = 0, width: int = 72) -> List[str]:
    """Wrap text to width, first line has indent, following lines +2."""
    prefix = " " * indent
    extra = "  "
    lines = []
    rest = text
    first = True
    while rest:
        max_len = width - (indent if first else indent + len(extra))
        if len(rest) <= max_len:
            lines.append(prefix + rest)
            break
        break_at = rest.rfind(" ", 0, max_len + 1)
        if break_at <= 0:
            break_at = max_len
        chunk = rest[:break_at].strip()
        rest = rest[break_at:].strip()
        lines.append(prefix + chunk)
        prefix = " " * indent + extra
        first = False
    return lines


def _rel(file: str, root: str) -> str:
    """File relative to the scan root when it lives under it."""
    if not root:
        return file
    try:
        rel = os.path.relpath(file, root)
    except ValueError:
        return file
    return file if rel.startswith("..") else rel


def _binding_line(b: Binding, root: str) -> str:
    return f"→ {b} in {_rel(b.source, root)} ({b.service})"


def _group_by_severity(issues: List[Issue]) -> dict[Severity, List[Issue]]:
    groups: dict[Severity, List[Issue]] = {s: [] for s in SECTION_TITLES}
    for issue in issues:
        groups[issue.severity].append(issue)
    return groups


def _summary(result: ScanResult) -> str:
    return (
        f"{len(result.compose_files)} compose file(s) · "
        f"{len(result.bindings)} port binding(s) · "
        f"{len(result.issues)} issue(s)"
    )


def format_text(result: ScanResult, show_host_ip: bool = False, verbose: bool = False) -> str:
    """Build the human terminal report as a single string."""
    width = _get_width()
    lines = []

    lines.append("┌" + "─" * (width - 2) + "┐")
    lines.append(" portcheck · host port collisions")
    lines.append("─" * width)
    lines.append(f" Scanned  {result.path}")
    summary_color = "red" if result.issues_at_or_above(Severity.ERROR) else ("yellow" if result.issues else "green")
    lines.append(click.style(f" {_summary(result)}", fg=summary_color))
    lines.append("─" * width)

    if result.issues:
        for severity, issues in _group_by_severity(result.issues).items():
            if not issues:
                continue
            title, color = SECTION_TITLES[severity]
            bullet = "●" if severity == Severity.ERROR else "○"
            lines.append(click.style(f" {title}", fg=color, bold=True))
            for issue in issues:
                text = f"{bullet} Port {issue.port}: {issue.description}" if issue.port else f"{bullet} {issue.description}"
                if verbose:
                    text = f"{text} [{issue.kind.value}]"
                for ln in _wrap(text, indent=2, width=width):
                    lines.append(click.style(ln, fg=color))
                for b in issue.bindings:
                    for ln in _wrap(_binding_line(b, result.path), indent=4, width=width):
                        lines.append(click.style(ln, dim=True))
    else:
        lines.append(click.style(" No port conflicts detected.", fg="green"))

    if show_host_ip and result.bindings:
        lines.append("─" * width)
        lines.append(" HOST IP BINDINGS")
        for b in result.bindings:
            host_ip = b.host_address or "0.0.0.0 (all interfaces)"
            lines.append(f"  {b.service}: {host_ip} -> {b.host_port}:{b.container_port}")

    lines.append("─" * width)
    footer = " Run with --json for machine output  ·  --strict for exit codes"
    if len(footer) > width:
        footer = " --json  ·  --strict  ·  --help"
    lines.append(click.style(footer, dim=True))
    lines.append("└" + "─" * (width - 2) + "┘")
    return "\n".join(lines)


def format_json(
    result: ScanResult,
    runtime: RuntimeResult | None = None,
    suggestions: dict[int, int] | None = None,
) -> str:
    """JSON output for piping/CI."""
    output: dict = {"result": result.to_dict()}
    if runtime is not None:
        output["runtime"] = runtime.to_dict()
    if suggestions is not None:
        output["suggestions"] = {str(port): alt for port, alt in suggestions.items()}
    return json.dumps(output, indent=2)


def format_markdown(result: ScanResult) -> str:
    """Markdown report for docs/PRs."""
    lines = ["# Port Check Report", "", f"**Path:** `{result.path}`", ""]
    lines += [
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Compose files scanned | {len(result.compose_files)} |",
        f"| Total port bindings | {len(result.bindings)} |",
        f"| Issues found | {len(result.issues)} |",
        "",
    ]

    if not result.issues:
        lines += ["✅ **No port conflicts detected!**", ""]
    else:
        lines += [
            "## Issues",
            "",
            "| Severity | Port | Type | Description |",
            "|----------|------|------|-------------|",
        ]
        for issue in result.issues:
            icon = MARKDOWN_ICONS[issue.severity]
            lines.append(f"| {icon} {issue.severity.value} | {issue.port} | {issue.kind.value} | {issue.description} |")
        lines.append("")

    if result.bindings:
        lines += [
            "## All Port Bindings",
            "",
            "| Host Port | Container Port | Service | File |",
            "|-----------|----------------|---------|------|",
        ]
        for b in result.bindings:
            lines.append(f"| {b.host_port} | {b.container_port} | {b.service} | `{_rel(b.source, result.path)}` |")
    return "\n".join(lines)


def format_runtime_text(runtime: RuntimeResult) -> str:
    if not runtime.docker_running:
        return click.style(" Docker daemon is not running; runtime scan skipped.", fg="yellow")
    lines = [" RUNTIME STATUS", f"  Running containers: {len(runtime.containers)}"]
    if runtime.conflicts:
        lines.append("  Conflicts:")
        for c in runtime.conflicts:
            lines.append(click.style(f"    ● {c.message}", fg="red"))
    return "\n".join(lines)


def format_runtime_markdown(runtime: RuntimeResult) -> str:
    lines = ["# Runtime Port Scan", ""]
    if not runtime.docker_running:
        lines.append("⚠️ Docker daemon is not running")
        return "\n".join(lines)
    lines += [f"**Containers Found:** {len(runtime.containers)}", f"**Scan Time:** {runtime.scan_time}", ""]
    if runtime.containers:
        lines += ["## Running Containers", "", "| Container | Image | Ports |", "|-----------|-------|-------|"]
        for c in runtime.containers:
            ports = ", ".join(
                f"{p.host_port}:{p.container_port}/{p.protocol}" for p in c.ports if p.host_port > 0
            )
            lines.append(f"| {c.name} | {c.image} | {ports or '-'} |")
        lines.append("")
    if runtime.conflicts:
        lines += ["## Conflicts", ""]
        lines.extend(f"- **Port {c.port}**: {c.message}" for c in runtime.conflicts)
    return "\n".join(lines)


def format_suggestions_text(suggestions: dict[int, int]) -> str:
    lines = [" SUGGESTED ALTERNATIVES"]
    lines.extend(f"  Port {old} → {new}" for old, new in sorted(suggestions.items()))
    return "\n".join(lines)


def format_suggestions_markdown(suggestions: dict[int, int]) -> str:
    lines = ["## Port Suggestions", ""]
    lines.extend(f"- Port {old} → {new}" for old, new in sorted(suggestions.items()))
    return "\n".join(lines)
