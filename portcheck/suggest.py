"""Free-port suggestions for conflicted host ports."""

import logging
from typing import Iterable

from .models import PORT_MAX, Issue, IssueKind
from .scanner.host import find_free_port, is_port_in_use

logger = logging.getLogger(__name__)

# Conventional fallbacks, tried before scanning upward
PORT_ALTERNATIVES = {
    80: [8080, 8000, 8081, 9080],
    443: [8443, 4443, 9443],
    3000: [3001, 3002, 3003],
    3306: [3307, 3308, 33060],
    5000: [5001, 5002, 5003],
    5432: [5433, 5434, 54320],
    6379: [6380, 6381, 6382],
    8080: [8081, 8082, 8090, 9080],
    27017: [27018, 27019, 27020],
}
NEARBY_ATTEMPTS = 100
SUGGESTED_KINDS = (IssueKind.COLLISION, IssueKind.PROFILE_COLLISION)


def port_alternatives(port: int) -> list[int]:
    """Table entries for port, then port+1000 and port+10000 (if still a valid port)."""
    alternatives = list(PORT_ALTERNATIVES.get(port, []))
    for offset in (1000, 10000):
        candidate = port + offset
        if candidate <= PORT_MAX and candidate not in alternatives:
            alternatives.append(candidate)
    return alternatives


def conflicted_ports(issues: Iterable[Issue]) -> list[int]:
    """Distinct ports of collision issues, in issue order."""
    ports: list[int] = []
    for issue in issues:
        if issue.kind in SUGGESTED_KINDS and issue.port > 0 and issue.port not in ports:
            ports.append(issue.port)
    return ports


def suggest_free_ports(ports: Iterable[int]) -> dict[int, int]:
    """port -> a currently free alternative. Ports with no free alternative are left out."""
    suggestions: dict[int, int] = {}
    for port in ports:
        for alt in port_alternatives(port):
            if not is_port_in_use(alt):
                suggestions[port] = alt
                break
        else:
            free = find_free_port(port + 1, NEARBY_ATTEMPTS)
            if free is not None:
                suggestions[port] = free
            else:
                logger.info("No free alternative found for port %d", port)
    return suggestions
