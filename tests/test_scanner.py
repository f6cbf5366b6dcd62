"""Tests for compose discovery and the full scan pipeline."""

import tempfile
from pathlib import Path

import pytest

from portcheck.models import IssueKind, Severity
from portcheck.scanner import ComposeFileError, scan
from portcheck.scanner.compose import discover_compose_files, iter_port_declarations, load_compose_file


def _write(d, name: str, text: str) -> Path:
    p = Path(d) / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text)
    return p


def test_scan_no_files():
    with tempfile.TemporaryDirectory() as d:
        result = scan(d)
        assert result.compose_files == []
        assert result.bindings == []
        assert result.issues == []


def test_scan_missing_root_raises():
    with tempfile.TemporaryDirectory() as d:
        with pytest.raises(NotADirectoryError):
            scan(Path(d) / "nope")


def test_scan_basic_ports():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web:
    image: nginx
    ports:
      - "8080:80"
  api:
    image: node
    ports:
      - "3000:3000"
""")
        result = scan(d)
        assert len(result.bindings) == 2
        pairs = {(b.host_port, b.container_port, b.service) for b in result.bindings}
        assert pairs == {(8080, 80, "web"), (3000, 3000, "api")}


def test_scan_collision():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web1:
    image: nginx
    ports:
      - "8080:80"
  web2:
    image: nginx
    ports:
      - "8080:80"
""")
        result = scan(d)
        collisions = [i for i in result.issues if i.kind == IssueKind.COLLISION]
        assert len(collisions) == 1
        assert collisions[0].port == 8080
        assert len(collisions[0].bindings) == 2


def test_scan_privileged_ports():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web:
    image: nginx
    ports:
      - "80:80"
      - "443:443"
""")
        result = scan(d)
        assert [i.kind for i in result.issues].count(IssueKind.PRIVILEGED) == 2


def test_scan_mixed_syntax():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  mixed:
    image: test
    ports:
      - 3000
      - "4000:4000"
      - "5000:5000/udp"
      - target: 6000
        published: 6001
        protocol: tcp
      - "${HOST_PORT:-8080}:80"
      - "8000-8005:8000-8005"
      - "0:80"
""")
        result = scan(d)
        assert sorted(b.host_port for b in result.bindings) == [3000, 4000, 5000, 6001]


def test_scan_cross_file_collision():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "services:\n  web:\n    ports:\n      - \"8080:80\"\n")
        _write(d, "docker-compose.dev.yml", "services:\n  api:\n    ports:\n      - \"8080:3000\"\n")
        result = scan(d)
        assert len(result.compose_files) == 2
        collision = [i for i in result.issues if i.kind == IssueKind.COLLISION and i.port == 8080]
        assert len(collision) == 1
        assert {b.source for b in collision[0].bindings} == set(result.compose_files)


def test_scan_expose_is_not_a_binding():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  internal:
    image: test
    expose:
      - "8080"
  web:
    image: test
    ports:
      - "8080:80"
""")
        result = scan(d)
        assert len(result.bindings) == 1
        assert result.bindings[0].service == "web"
        assert not any(i.kind == IssueKind.COLLISION for i in result.issues)


def test_scan_healthcheck_ports_ignored():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web:
    image: test
    ports:
      - "8080:80"
    healthcheck:
      test: ["CMD", "curl", "-f", "http://localhost:80/health"]
""")
        assert len(scan(d).bindings) == 1


def test_scan_empty_ports_section():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "services:\n  web:\n    image: test\n    ports: []\n")
        result = scan(d)
        assert result.bindings == []
        assert result.issues == []


def test_scan_malformed_yaml_is_parse_error():
    """A broken file becomes a parse_error warning; other files still get scanned."""
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "{{invalid}}")
        _write(d, "compose.yaml", "services:\n  web:\n    ports:\n      - \"9000:9000\"\n")
        result = scan(d)
        errors = [i for i in result.issues if i.kind == IssueKind.PARSE_ERROR]
        assert len(errors) == 1
        assert errors[0].severity == Severity.WARNING
        assert "docker-compose.yml" in errors[0].description
        assert [b.host_port for b in result.bindings] == [9000]


def test_scan_services_not_a_mapping_is_parse_error():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "services:\n  - web\n")
        result = scan(d)
        assert [i.kind for i in result.issues] == [IssueKind.PARSE_ERROR]


def test_scan_nested_compose_one_level():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "api/docker-compose.yml", "services:\n  api:\n    ports:\n      - \"3000:3000\"\n")
        _write(d, "services/deep/docker-compose.yml", "services:\n  deep:\n    ports:\n      - \"4000:4000\"\n")
        _write(d, "node_modules/docker-compose.yml", "services:\n  junk:\n    ports:\n      - \"5000:5000\"\n")
        result = scan(d)
        assert [b.service for b in result.bindings] == ["api"]


def test_subdirectories_only_use_standard_names():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.override.yml", "services: {}\n")
        _write(d, "sub/docker-compose.override.yml", "services: {}\n")
        _write(d, "sub/compose.yaml", "services: {}\n")
        names = [str(p.relative_to(d)) for p in discover_compose_files(Path(d))]
        assert names == ["docker-compose.override.yml", str(Path("sub") / "compose.yaml")]


def test_scan_both_extensions():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "services:\n  web:\n    ports:\n      - \"8080:80\"\n")
        _write(d, "docker-compose.yaml", "services:\n  web:\n    ports:\n      - \"8080:80\"\n")
        result = scan(d)
        assert len(result.compose_files) == 2
        assert any(i.kind == IssueKind.COLLISION for i in result.issues)


def test_scan_multiple_interfaces():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  multi:
    image: test
    ports:
      - "127.0.0.1:8080:80"
      - "0.0.0.0:8080:80"
      - "192.168.1.1:8080:80"
""")
        result = scan(d)
        assert len(result.bindings) == 3
        assert [i.kind for i in result.issues if i.port == 8080] == [IssueKind.COLLISION]


def test_scan_profiled_services_counted_without_profiles():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web:
    ports:
      - "8080:80"
  debug:
    profiles: [debug]
    ports:
      - "8080:8080"
""")
        result = scan(d)
        assert len(result.bindings) == 2
        assert not any(i.kind == IssueKind.PROFILE_COLLISION for i in result.issues)


def test_scan_with_active_profiles_adds_profile_collisions():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  web:
    ports:
      - "9090:80"
  debug:
    profiles: [dev]
    ports:
      - "9090:9090"
""")
        result = scan(d, active_profiles=["dev"])
        profile = [i for i in result.issues if i.kind == IssueKind.PROFILE_COLLISION]
        assert len(profile) == 1
        assert profile[0].port == 9090
        assert profile[0].severity == Severity.ERROR


def test_scan_ignore_ports():
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", "services:\n  a:\n    ports: [\"80:80\"]\n  b:\n    ports: [\"80:80\"]\n")
        result = scan(d, ignore_ports=[80])
        assert result.issues == []
        assert len(result.bindings) == 2


def test_load_compose_file_errors():
    with tempfile.TemporaryDirectory() as d:
        with pytest.raises(ComposeFileError):
            load_compose_file(_write(d, "a.yml", "- just\n- a list\n"))
        with pytest.raises(ComposeFileError):
            load_compose_file(Path(d) / "missing.yml")
        assert load_compose_file(_write(d, "empty.yml", "")) == {}


def test_iter_port_declarations_skips_bad_sections():
    data = {
        "services": {
            "a": {"ports": "8080:80"},
            "b": None,
            "c": {"ports": ["1000:1000", {"target": 80, "published": 8080}]},
        }
    }
    assert list(iter_port_declarations(data)) == [
        ("c", "1000:1000"),
        ("c", {"target": 80, "published": 8080}),
    ]


def test_scan_unquoted_short_syntax():
    """Unquoted `- 53:53` is a port mapping, not a YAML 1.1 base-60 number."""
    with tempfile.TemporaryDirectory() as d:
        _write(d, "docker-compose.yml", """services:
  dns:
    ports:
      - 53:53
  git:
    ports:
      - 2222:22
  dns2:
    ports:
      - 53:53
""")
        result = scan(d)
        assert sorted(b.host_port for b in result.bindings) == [53, 53, 2222]
        collisions = [i for i in result.issues if i.kind == IssueKind.COLLISION]
        assert [i.port for i in collisions] == [53]
        assert [i.port for i in result.issues if i.kind == IssueKind.PRIVILEGED] == [53, 53]


def test_load_compose_file_keeps_colon_ports_as_text():
    with tempfile.TemporaryDirectory() as d:
        data = load_compose_file(_write(d, "c.yml", "services:\n  a:\n    ports:\n      - 2222:22\n      - 3000\n      - 0x10\n"))
        assert data["services"]["a"]["ports"] == ["2222:22", 3000, 16]
