"""Runtime probe — which host ports running containers already hold."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..models import ScanResult

logger = logging.getLogger(__name__)

COMPOSE_SERVICE_LABEL = "com.docker.compose.service"
LEADING_INT_RE = re.compile(r"^\s*(\d+)")


class RuntimeProbeError(RuntimeError):
    """The container runtime answered but its listing could not be read."""


@dataclass
class ContainerPort:
    host_ip: str = ""
    host_port: int = 0
    container_port: int = 0
    protocol: str = "tcp"


@dataclass
class Container:
    id: str
    name: str
    image: str = ""
    state: str = ""
    ports: list[ContainerPort] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class RuntimeConflict:
    port: int
    compose_service: str
    runtime_info: str  # container name
    message: str
    type: str = "already_in_use"

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "compose_service": self.compose_service,
            "runtime_info": self.runtime_info,
            "type": self.type,
            "message": self.message,
        }


@dataclass
class RuntimeResult:
    docker_running: bool = False
    containers: list[Container] = field(default_factory=list)
    used_ports: dict[int, list[Container]] = field(default_factory=dict)
    conflicts: list[RuntimeConflict] = field(default_factory=list)
    scan_time: str = ""

    def to_dict(self) -> dict:
        return {
            "docker_running": self.docker_running,
            "scan_time": self.scan_time,
            "containers": [
                {
                    "id": c.id,
                    "name": c.name,
                    "image": c.image,
                    "state": c.state,
                    "ports": [
                        {
                            "host_ip": p.host_ip,
                            "host_port": p.host_port,
                            "container_port": p.container_port,
                            "protocol": p.protocol,
                        }
                        for p in c.ports
                    ],
                }
                for c in self.containers
            ],
            "used_ports": {str(port): [c.name for c in cs] for port, cs in sorted(self.used_ports.items())},
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


def _leading_int(text: str) -> int:
    m = LEADING_INT_RE.match(text)
    return int(m.group(1)) if m else 0


def parse_port_mapping(text: str) -> ContainerPort | None:
    """'0.0.0.0:8080->80/tcp' or ':::8080->80/tcp'. Unpublished ('80/tcp') gives None."""
    host_part, sep, container_part = text.strip().partition("->")
    if not sep:
        return None
    port = ContainerPort()
    number, _, protocol = container_part.partition("/")
    port.container_port = _leading_int(number)
    if protocol:
        port.protocol = protocol.strip()
    host_ip, colon, host_port = host_part.rpartition(":")
    if colon:
        port.host_ip = host_ip
        port.host_port = _leading_int(host_port)
    return port


def parse_ports(text: str) -> list[ContainerPort]:
    if not text:
        return []
    ports = []
    for part in text.split(","):
        p = parse_port_mapping(part)
        if p is not None:
            ports.append(p)
    return ports


def parse_labels(text: str) -> dict[str, str]:
    """'a=b,c=d' -> {'a': 'b', 'c': 'd'}."""
    labels: dict[str, str] = {}
    if not text:
        return labels
    for part in text.split(","):
        key, sep, value = part.partition("=")
        if sep:
            labels[key] = value
    return labels


def _docker_available() -> bool:
    try:
        result = subprocess.run(
            ["docker", "version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def scan_runtime() -> RuntimeResult:
    """List running containers via `docker ps`. A missing or stopped daemon is not an error."""
    result = RuntimeResult(scan_time=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))
    if not _docker_available():
        logger.info("Docker is not available; skipping runtime scan")
        return result
    result.docker_running = True

    try:
        proc = subprocess.run(
            ["docker", "ps", "--format", "{{json .}}"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except subprocess.TimeoutExpired as e:
        raise RuntimeProbeError("docker ps timed out") from e
    if proc.returncode != 0:
        raise RuntimeProbeError(f"failed to list containers: {proc.stderr.strip() or proc.returncode}")

    for line in proc.stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Unreadable docker ps line: %s", line)
            continue
        container = Container(
            id=str(data.get("ID") or data.get("Id") or "")[:12],
            name=str(data.get("Names", "")).lstrip("/"),
            image=str(data.get("Image", "")),
            state=str(data.get("State", "")),
            ports=parse_ports(str(data.get("Ports", ""))),
            labels=parse_labels(str(data.get("Labels", ""))),
        )
        result.containers.append(container)
        for p in container.ports:
            if p.host_port <= 0:
                continue
            holders = result.used_ports.setdefault(p.host_port, [])
            if container not in holders:
                holders.append(container)

    logger.debug("Runtime scan: %d container(s), %d host port(s) in use", len(result.containers), len(result.used_ports))
    return result


def is_likely_from_compose(container: Container, service: str) -> bool:
    """A running container that is probably this compose service itself."""
    if service.lower() in container.name.lower():
        return True
    label = container.labels.get(COMPOSE_SERVICE_LABEL)
    return label is not None and label.lower() == service.lower()


def find_runtime_conflicts(scan_result: ScanResult, runtime: RuntimeResult) -> list[RuntimeConflict]:
    """Compose host ports already held by some other running container."""
    if not runtime.docker_running:
        return []
    conflicts = []
    for port in sorted(runtime.used_ports):
        for binding in scan_result.port_index.get(port, []):
            for container in runtime.used_ports[port]:
                if is_likely_from_compose(container, binding.service):
                    continue
                conflicts.append(RuntimeConflict(
                    port=port,
                    compose_service=binding.service,
                    runtime_info=container.name,
                    message=f"Port {port} (for {binding.service}) is already used by container {container.name}",
                ))
    return conflicts
