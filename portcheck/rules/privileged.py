"""Rule: host ports below 1024 need root (or a tuned sysctl) to bind."""

from ..models import Binding, Issue, IssueKind, Severity

PRIVILEGED_LIMIT = 1024


def check(bindings: list[Binding]) -> list[Issue]:
    return [
        Issue(
            severity=Severity.WARNING,
            kind=IssueKind.PRIVILEGED,
            port=b.host_port,
            description=f"Port {b.host_port} is privileged (requires root/sudo)",
            bindings=[b],
        )
        for b in bindings
        if 0 < b.host_port < PRIVILEGED_LIMIT
    ]
