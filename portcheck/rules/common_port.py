"""Rule: wildcard binds on ports that well-known host services usually own."""

from ..models import Binding, Issue, IssueKind, Severity

COMMON_PORTS = {
    22: "SSH",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    443: "HTTPS",
    3306: "MySQL",
    5432: "PostgreSQL",
    6379: "Redis",
    8080: "HTTP Alternate",
    27017: "MongoDB",
}


def check(bindings: list[Binding], collided_ports: set[int]) -> list[Issue]:
    """Skip ports that already carry a collision error."""
    issues = []
    for b in bindings:
        label = COMMON_PORTS.get(b.host_port)
        if label is None or not b.is_wildcard or b.host_port in collided_ports:
            continue
        issues.append(Issue(
            severity=Severity.INFO,
            kind=IssueKind.COMMON_PORT,
            port=b.host_port,
            description=f"Port {b.host_port} is commonly used by {label}",
            bindings=[b],
        ))
    return issues
