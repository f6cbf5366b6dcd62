"""Turn one compose `ports` entry into a Binding (or None)."""

import re
from typing import Any, Optional

from .models import PORT_MAX, Binding

# [IP:]HOST[:CONTAINER][/PROTO]
PORT_RE = re.compile(
    r"^(?:(\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}):)?(\d+)(?::(\d+))?(?:/(tcp|udp))?$",
    re.ASCII,
)
DIGITS_RE = re.compile(r"^[0-9]+$")
PROTOCOLS = ("tcp", "udp")


def normalize(raw: Any, service: str, source: str) -> Optional[Binding]:
    """
    Turn a raw `ports` entry into a Binding.

    Accepts an int, a short-syntax string ("3000", "8080:80",
    "127.0.0.1:8080:80", any of those with /tcp or /udp) or a long-syntax
    mapping (target/published/protocol/host_ip). Returns None for anything
    else, for entries whose host port resolves to 0, and for ports above
    65535. Never raises.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        binding = _from_int(raw, service, source)
    elif isinstance(raw, str):
        binding = _from_string(raw, service, source)
    elif isinstance(raw, dict):
        binding = _from_mapping(raw, service, source)
    else:
        return None
    if binding is None or binding.host_port <= 0:
        return None
    if binding.host_port > PORT_MAX or not 0 <= binding.container_port <= PORT_MAX:
        return None
    return binding


def _from_int(value: int, service: str, source: str) -> Binding:
    return Binding(
        host_port=value,
        container_port=value,
        service=service,
        source=source,
        raw=str(value),
    )


def _from_string(value: str, service: str, source: str) -> Optional[Binding]:
    m = PORT_RE.match(value.strip())
    if not m:
        return None
    host_ip, host, container, protocol = m.groups()
    host_port = int(host)
    return Binding(
        host_port=host_port,
        container_port=int(container) if container else host_port,
        service=service,
        source=source,
        protocol=protocol or "tcp",
        host_address=host_ip or "",
        raw=value,
    )


def _from_mapping(value: dict, service: str, source: str) -> Optional[Binding]:
    target = _as_port(value.get("target"))
    if target is None:
        return None
    published = value.get("published")
    host_port = 0 if published is None else _as_port(published)
    if host_port is None:
        return None

    protocol = value.get("protocol", "tcp")
    if not isinstance(protocol, str) or protocol.lower() not in PROTOCOLS:
        return None
    host_ip = value.get("host_ip") or ""
    if not isinstance(host_ip, str):
        return None

    raw = f"{host_port}:{target}"
    if host_ip:
        raw = f"{host_ip}:{raw}"
    return Binding(
        host_port=host_port,
        container_port=target,
        service=service,
        source=source,
        protocol=protocol.lower(),
        host_address=host_ip,
        raw=raw,
    )


def _as_port(value: Any) -> Optional[int]:
    """Int or digit-only string -> int. Ranges and ${VAR} give None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and DIGITS_RE.match(value.strip()):
        return int(value.strip())
    return None
