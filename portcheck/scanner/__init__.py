"""Compose scanner and runtime probes."""

from .compose import ComposeFileError, scan
from .runtime import RuntimeProbeError, find_runtime_conflicts, scan_runtime

__all__ = ["scan", "scan_runtime", "find_runtime_conflicts", "ComposeFileError", "RuntimeProbeError"]
