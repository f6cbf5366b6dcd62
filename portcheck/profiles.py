"""Profile overlay — which host ports collide once a given set of compose profiles is active."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .models import Binding, Issue, IssueKind, Severity
from .normalize import normalize

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"


@dataclass
class ProfileService:
    name: str
    file: str
    ports: list[Any] = field(default_factory=list)  # raw `ports` entries
    profiles: list[str] = field(default_factory=list)
    env_files: list[str] = field(default_factory=list)


@dataclass
class Profile:
    name: str
    services: list[ProfileService] = field(default_factory=list)


@dataclass
class ServiceClaim:
    """One active service claiming a host port."""

    service: str
    profile: str
    binding: Binding


@dataclass
class PortConflict:
    port: int
    claims: list[ServiceClaim] = field(default_factory=list)


@dataclass
class ProfilesConfig:
    profiles: dict[str, Profile] = field(
        default_factory=lambda: {DEFAULT_PROFILE: Profile(name=DEFAULT_PROFILE)}
    )
    files: list[str] = field(default_factory=list)

    def list_profiles(self) -> list[str]:
        """Profile names, `default` first."""
        return [DEFAULT_PROFILE] + sorted(n for n in self.profiles if n != DEFAULT_PROFILE)

    def active_services(self, active_profiles: Iterable[str]) -> list[tuple[str, ProfileService]]:
        """(profile, service) pairs for `default` plus the given profiles."""
        names = [DEFAULT_PROFILE]
        for name in active_profiles:
            if name not in names:
                names.append(name)
        pairs = []
        for name in names:
            profile = self.profiles.get(name)
            if profile is None:
                logger.debug("Profile %r is not declared by any service", name)
                continue
            pairs.extend((name, svc) for svc in profile.services)
        return pairs

    def get_active_ports(self, active_profiles: Iterable[str]) -> list[Any]:
        """Raw port entries of every active service, first occurrence wins."""
        ports: list[Any] = []
        for _, svc in self.active_services(active_profiles):
            for port in svc.ports:
                if port not in ports:
                    ports.append(port)
        return ports

    def detect_port_conflicts(self, active_profiles: Iterable[str]) -> list[PortConflict]:
        """
        Host ports claimed by more than one active service.

        No wildcard/specific split here: nothing is bound yet, so interface
        asymmetry can't be judged. A service reachable through two active
        profiles is counted once.
        """
        claims_by_port: dict[int, list[ServiceClaim]] = {}
        seen: set[tuple[str, str, str]] = set()
        for profile_name, svc in self.active_services(active_profiles):
            for raw in svc.ports:
                binding = normalize(raw, svc.name, svc.file)
                if binding is None:
                    continue
                key = (svc.file, svc.name, binding.raw)
                if key in seen:
                    continue
                seen.add(key)
                claims_by_port.setdefault(binding.host_port, []).append(
                    ServiceClaim(service=svc.name, profile=profile_name, binding=binding)
                )

        conflicts = []
        for port in sorted(claims_by_port):
            claims = claims_by_port[port]
            owners = {(c.binding.source, c.service) for c in claims}
            if len(owners) > 1:
                conflicts.append(PortConflict(port=port, claims=claims))
        return conflicts


def _env_files(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        files = []
        for item in value:
            if isinstance(item, str):
                files.append(item)
            elif isinstance(item, dict) and isinstance(item.get("path"), str):
                files.append(item["path"])
        return files
    return []


def profiles_from_documents(documents: Iterable[tuple[str, dict]]) -> ProfilesConfig:
    """Bucket the services of already-loaded compose documents by profile."""
    config = ProfilesConfig()
    for file, data in documents:
        config.files.append(file)
        services = data.get("services") or {}
        if not isinstance(services, dict):
            continue
        for name, svc in services.items():
            if not isinstance(svc, dict):
                continue
            ports = svc.get("ports") or []
            declared = svc.get("profiles") or []
            if not isinstance(ports, list):
                ports = []
            if not isinstance(declared, list):
                declared = []
            ps = ProfileService(
                name=str(name),
                file=file,
                ports=list(ports),
                profiles=[str(p) for p in declared],
                env_files=_env_files(svc.get("env_file")),
            )
            for profile_name in ps.profiles or [DEFAULT_PROFILE]:
                profile = config.profiles.setdefault(profile_name, Profile(name=profile_name))
                profile.services.append(ps)
    return config


def load_profiles(path: str | Path) -> ProfilesConfig:
    """Discover and load compose files under path. Raises ComposeFileError on a bad file."""
    from .scanner.compose import discover_compose_files, load_compose_file

    root = Path(path)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    documents = [(str(f), load_compose_file(f)) for f in discover_compose_files(root)]
    return profiles_from_documents(documents)


def profile_issues(config: ProfilesConfig, active_profiles: Iterable[str]) -> list[Issue]:
    """Turn detected profile conflicts into profile_collision errors."""
    issues = []
    for conflict in config.detect_port_conflicts(active_profiles):
        owners = ", ".join(f"{c.service} ({c.profile})" for c in conflict.claims)
        issues.append(Issue(
            severity=Severity.ERROR,
            kind=IssueKind.PROFILE_COLLISION,
            port=conflict.port,
            description=f"Profile conflict on port {conflict.port}: {owners}",
            bindings=[c.binding for c in conflict.claims],
        ))
    return issues


def format_profiles(config: ProfilesConfig) -> str:
    """Markdown listing of every profile and its services."""
    lines = ["# Compose Profiles", ""]
    for name in config.list_profiles():
        profile = config.profiles[name]
        lines.append(f"## Profile: {name}")
        if not profile.services:
            lines.append("  (no services)")
        for svc in profile.services:
            entry = f"  - **{svc.name}**"
            if svc.ports:
                entry += f" [ports: {', '.join(str(p) for p in svc.ports)}]"
            if svc.env_files:
                entry += f" [env: {', '.join(svc.env_files)}]"
            lines.append(entry)
        lines.append("")
    return "\n".join(lines)
