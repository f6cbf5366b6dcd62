"""Bindings, issues and the scan result."""

from dataclasses import dataclass, field
from enum import Enum

WILDCARD_ADDRESSES = ("", "0.0.0.0")
PORT_MAX = 65535


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class IssueKind(str, Enum):
    COLLISION = "collision"
    POTENTIAL_COLLISION = "potential_collision"
    PRIVILEGED = "privileged"
    COMMON_PORT = "common_port"
    PROFILE_COLLISION = "profile_collision"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class Binding:
    """One host port mapped into a container, as declared in a compose file."""

    host_port: int  # 0 = assigned by the runtime
    container_port: int
    service: str
    source: str  # compose file path
    protocol: str = "tcp"
    host_address: str = ""  # "" or 0.0.0.0 = all interfaces
    raw: str = ""  # literal from the compose file

    @property
    def is_wildcard(self) -> bool:
        return self.host_address in WILDCARD_ADDRESSES

    def __str__(self) -> str:
        text = f"{self.host_port}:{self.container_port}"
        if self.host_address:
            text = f"{self.host_address}:{text}"
        if self.protocol != "tcp":
            text += f"/{self.protocol}"
        return text

    def to_dict(self) -> dict:
        data = {
            "host_port": self.host_port,
            "container_port": self.container_port,
            "protocol": self.protocol,
            "service": self.service,
            "file": self.source,
        }
        if self.host_address:
            data["host_ip"] = self.host_address
        return data


@dataclass
class Issue:
    """A single detected problem."""

    severity: Severity
    kind: IssueKind
    port: int
    description: str
    bindings: list[Binding] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "severity": self.severity.value,
            "type": self.kind.value,
            "port": self.port,
            "description": self.description,
        }
        if self.bindings:
            data["bindings"] = [b.to_dict() for b in self.bindings]
        return data


@dataclass
class ScanResult:
    """Everything one scan found. Built by engine.analyze, read-only afterwards."""

    path: str
    compose_files: list[str] = field(default_factory=list)
    bindings: list[Binding] = field(default_factory=list)
    port_index: dict[int, list[Binding]] = field(default_factory=dict)
    issues: list[Issue] = field(default_factory=list)

    def has_issues(self) -> bool:
        return bool(self.issues)

    def issues_at_or_above(self, severity: Severity) -> list[Issue]:
        return [i for i in self.issues if i.severity.rank <= severity.rank]

    def grouped_by_file(self) -> dict[str, list[Binding]]:
        grouped: dict[str, list[Binding]] = {}
        for b in self.bindings:
            grouped.setdefault(b.source, []).append(b)
        return grouped

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "compose_files": list(self.compose_files),
            "total_ports": len(self.bindings),
            "issues": [i.to_dict() for i in self.issues],
            "bindings": [b.to_dict() for b in self.bindings],
        }
