"""Find compose files, load them, and feed their ports to the normalizer."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml

from ..engine import analyze
from ..models import Binding, Issue, IssueKind, ScanResult, Severity
from ..normalize import normalize
from ..profiles import profile_issues, profiles_from_documents

logger = logging.getLogger(__name__)

COMPOSE_PATTERNS = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
    "docker-compose.*.yml",
    "docker-compose.*.yaml",
)
SUBDIR_NAMES = COMPOSE_PATTERNS[:4]  # only the standard names one level down
SKIP_DIRS = {".git", "__pycache__", ".venv", "venv", "node_modules", ".tox", "build", "dist", "eggs"}
MAX_COMPOSE_FILES = 50

YAML_INT_TAG = "tag:yaml.org,2002:int"
# SafeLoader's int pattern minus the YAML 1.1 base-60 form
INT_RE = re.compile(
    r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""",
    re.X,
)


class ComposeLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted `- 53:53` a string, as compose itself does."""


ComposeLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != YAML_INT_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ComposeLoader.add_implicit_resolver(YAML_INT_TAG, INT_RE, list("-+0123456789"))


class ComposeFileError(Exception):
    """A compose file could not be read or is not a compose document."""

    def __init__(self, path: Path | str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


def discover_compose_files(root: Path) -> list[Path]:
    """Compose files in root (all patterns) and its immediate subdirectories (standard names)."""
    found: list[Path] = []
    seen: set[Path] = set()

    def add(p: Path) -> bool:
        if p in seen:
            return True
        if len(found) >= MAX_COMPOSE_FILES:
            logger.warning("Stopped after %d compose files under %s", MAX_COMPOSE_FILES, root)
            return False
        seen.add(p)
        found.append(p)
        return True

    for pattern in COMPOSE_PATTERNS:
        for p in sorted(root.glob(pattern)):
            if p.is_file() and not add(p):
                return found

    for entry in sorted(root.iterdir()):
        if not entry.is_dir() or entry.name in SKIP_DIRS:
            continue
        for name in SUBDIR_NAMES:
            candidate = entry / name
            if candidate.is_file() and not add(candidate):
                return found

    logger.debug("Found %d compose file(s) under %s", len(found), root)
    return found


def load_compose_file(path: Path) -> dict:
    """Parse one compose file. Empty files load as {}."""
    try:
        data = yaml.load(path.read_text(), Loader=ComposeLoader)
    except OSError as e:
        raise ComposeFileError(path, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise ComposeFileError(path, "not valid UTF-8 text") from e
    except yaml.YAMLError as e:
        raise ComposeFileError(path, f"invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ComposeFileError(path, "top level is not a mapping")
    services = data.get("services")
    if services is not None and not isinstance(services, dict):
        raise ComposeFileError(path, "`services` is not a mapping")
    return data


def iter_port_declarations(data: dict) -> Iterator[tuple[str, Any]]:
    """(service, raw entry) for every `ports` entry. `expose` never binds the host and is ignored."""
    services = data.get("services") or {}
    for name, svc in services.items():
        if not isinstance(svc, dict):
            continue
        ports = svc.get("ports")
        if ports is None:
            continue
        if not isinstance(ports, list):
            logger.debug("Service %s: `ports` is not a list, skipped", name)
            continue
        for raw in ports:
            yield str(name), raw


def collect_bindings(data: dict, source: str) -> list[Binding]:
    bindings = []
    for service, raw in iter_port_declarations(data):
        binding = normalize(raw, service, source)
        if binding is None:
            logger.debug("%s: skipped port %r of service %s", source, raw, service)
            continue
        bindings.append(binding)
    return bindings


def scan(
    path: str | Path,
    active_profiles: Iterable[str] | None = None,
    ignore_ports: Iterable[int] = (),
) -> ScanResult:
    """Scan a directory for compose files and analyze their host ports."""
    root = Path(path)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    files = discover_compose_files(root)
    bindings: list[Binding] = []
    upstream: list[Issue] = []
    documents: list[tuple[str, dict]] = []

    for f in files:
        try:
            data = load_compose_file(f)
        except ComposeFileError as e:
            logger.warning("Failed to parse %s", e)
            upstream.append(Issue(
                severity=Severity.WARNING,
                kind=IssueKind.PARSE_ERROR,
                port=0,
                description=f"Failed to parse {e.path}: {e.reason}",
            ))
            continue
        documents.append((str(f), data))
        bindings.extend(collect_bindings(data, str(f)))

    active = list(active_profiles or [])
    if active:
        upstream.extend(profile_issues(profiles_from_documents(documents), active))

    return analyze(
        bindings,
        path=str(root),
        compose_files=[str(f) for f in files],
        extra_issues=upstream,
        ignore_ports=ignore_ports,
    )
