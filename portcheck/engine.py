"""Conflict analyzer — groups bindings by host port and runs the rules in order."""

import logging
from typing import Iterable

from .models import Binding, Issue, IssueKind, ScanResult
from .rules import collision, common_port, privileged

logger = logging.getLogger(__name__)


def build_port_index(bindings: Iterable[Binding]) -> dict[int, list[Binding]]:
    """host port -> bindings. Runtime-assigned ports (0) are left out."""
    index: dict[int, list[Binding]] = {}
    for b in bindings:
        if b.host_port > 0:
            index.setdefault(b.host_port, []).append(b)
    return index


def sort_issues(issues: Iterable[Issue]) -> list[Issue]:
    """Errors first, then warnings, then info; ascending port within each."""
    return sorted(issues, key=lambda i: (i.severity.rank, i.port))


def find_issues(bindings: list[Binding], port_index: dict[int, list[Binding]] | None = None) -> list[Issue]:
    """Run grouping, privileged and common-port rules. Returns sorted issues."""
    if port_index is None:
        port_index = build_port_index(bindings)
    issues = collision.check(port_index)
    issues.extend(privileged.check(bindings))
    collided = {i.port for i in issues if i.kind == IssueKind.COLLISION}
    issues.extend(common_port.check(bindings, collided))
    return sort_issues(issues)


def analyze(
    bindings: Iterable[Binding],
    path: str = "",
    compose_files: Iterable[str] = (),
    extra_issues: Iterable[Issue] = (),
    ignore_ports: Iterable[int] = (),
) -> ScanResult:
    """
    Build the ScanResult for one scan.

    extra_issues carries findings made upstream (parse errors, profile
    collisions); they are merged and sorted with the rule output. Issues on
    ignore_ports are dropped.
    """
    bindings = list(bindings)
    port_index = build_port_index(bindings)
    issues = find_issues(bindings, port_index)
    issues.extend(extra_issues)

    ignored = set(ignore_ports)
    if ignored:
        before = len(issues)
        issues = [i for i in issues if i.port not in ignored]
        logger.debug("Ignored %d issue(s) on ports %s", before - len(issues), sorted(ignored))

    logger.debug("Analyzed %d binding(s) on %d host port(s)", len(bindings), len(port_index))
    return ScanResult(
        path=path,
        compose_files=list(compose_files),
        bindings=bindings,
        port_index=port_index,
        issues=sort_issues(issues),
    )
