"""Host bind probes: is a port free on this machine right now."""

import socket

from ..models import PORT_MAX


def is_port_in_use(port: int, host: str = "") -> bool:
    """Check if a TCP port is already bound, by trying to bind it ourselves."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((host, port))
            return False
    except OSError:
        return True


def check_ports_in_use(ports: list[int]) -> dict[int, bool]:
    """port -> True if something already holds it."""
    return {port: is_port_in_use(port) for port in ports}


def find_free_port(start: int, max_attempts: int = 100) -> int | None:
    """First free port in [start, start + max_attempts)."""
    for port in range(start, min(start + max_attempts, PORT_MAX + 1)):
        if not is_port_in_use(port):
            return port
    return None
