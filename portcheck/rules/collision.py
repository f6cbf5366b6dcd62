"""Rule: several bindings on one host port."""

from ..models import Binding, Issue, IssueKind, Severity


def check(port_index: dict[int, list[Binding]]) -> list[Issue]:
    """
    Wildcard binds contend with anything else on the port -> collision (error).
    Only specific addresses, all different interfaces -> potential collision (warning).
    """
    issues: list[Issue] = []
    for port in sorted(port_index):
        bindings = port_index[port]
        if port <= 0 or len(bindings) < 2:
            continue
        wildcard = [b for b in bindings if b.is_wildcard]
        specific = [b for b in bindings if not b.is_wildcard]

        if len(wildcard) > 1 or (wildcard and specific):
            issues.append(Issue(
                severity=Severity.ERROR,
                kind=IssueKind.COLLISION,
                port=port,
                description=f"Port {port} bound by multiple services",
                bindings=list(bindings),
            ))
        elif len(specific) > 1:
            issues.append(Issue(
                severity=Severity.WARNING,
                kind=IssueKind.POTENTIAL_COLLISION,
                port=port,
                description=f"Port {port} bound multiple times with specific IPs",
                bindings=list(bindings),
            ))
    return issues
