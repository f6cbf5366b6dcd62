"""Tests for the CLI: scan, --strict, formats, profiles, explain."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from portcheck import cli
from portcheck.cli import app
from portcheck.registry import ISSUE_INFO
from portcheck.scanner.runtime import Container, RuntimeResult

runner = CliRunner()

COLLIDING = """services:
  web1:
    ports:
      - "8080:80"
  web2:
    ports:
      - "8080:80"
"""


def _repo(tmp_path: Path, text: str, name: str = "docker-compose.yml") -> Path:
    (tmp_path / name).write_text(text)
    return tmp_path


def test_scan_text_output(tmp_path):
    result = runner.invoke(app, ["scan", str(_repo(tmp_path, COLLIDING))])
    assert result.exit_code == 0
    assert "Port 8080 bound by multiple services" in result.stdout


def test_strict_fails_on_collision(tmp_path):
    result = runner.invoke(app, ["scan", str(_repo(tmp_path, COLLIDING)), "--strict"])
    assert result.exit_code == 1


def test_strict_ignores_advisories_by_default(tmp_path):
    repo = _repo(tmp_path, 'services:\n  web:\n    ports:\n      - "80:80"\n')
    assert runner.invoke(app, ["scan", str(repo), "--strict"]).exit_code == 0
    assert runner.invoke(app, ["scan", str(repo), "--strict", "--fail-on", "warning"]).exit_code == 1


def test_invalid_fail_on(tmp_path):
    result = runner.invoke(app, ["scan", str(tmp_path), "--fail-on", "sometimes"])
    assert result.exit_code == 2


def test_json_output(tmp_path):
    result = runner.invoke(app, ["scan", str(_repo(tmp_path, COLLIDING)), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["result"]["total_ports"] == 2
    assert data["result"]["issues"][0]["type"] == "collision"


def test_markdown_output(tmp_path):
    result = runner.invoke(app, ["scan", str(_repo(tmp_path, COLLIDING)), "--format", "markdown"])
    assert result.exit_code == 0
    assert result.stdout.startswith("# Port Check Report")


def test_unknown_format(tmp_path):
    assert runner.invoke(app, ["scan", str(tmp_path), "-f", "xml"]).exit_code == 2


def test_missing_directory(tmp_path):
    result = runner.invoke(app, ["scan", str(tmp_path / "missing")])
    assert result.exit_code == 2


def test_profile_flag(tmp_path):
    repo = _repo(tmp_path, """services:
  web:
    ports: ["9090:80"]
  debug:
    profiles: [dev]
    ports: ["9090:9090"]
""")
    result = runner.invoke(app, ["scan", str(repo), "--json", "--profile", "dev"])
    types = [i["type"] for i in json.loads(result.stdout)["result"]["issues"]]
    assert "profile_collision" in types


def test_config_file_applies(tmp_path):
    repo = _repo(tmp_path, COLLIDING)
    (repo / ".portcheck.yaml").write_text("ignore_ports: [8080]\nformat: json\n")
    result = runner.invoke(app, ["scan", str(repo), "--strict"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["result"]["issues"] == []


def test_suggest(tmp_path):
    with patch("portcheck.cli.suggest_free_ports", return_value={8080: 8081}) as suggest:
        result = runner.invoke(app, ["scan", str(_repo(tmp_path, COLLIDING)), "--suggest", "--json"])
    suggest.assert_called_once_with([8080])
    assert json.loads(result.stdout)["suggestions"] == {"8080": 8081}


def test_runtime_conflict_fails_strict(tmp_path):
    repo = _repo(tmp_path, 'services:\n  web:\n    ports: ["8080:80"]\n')
    other = Container(id="1", name="legacy-proxy")
    runtime = RuntimeResult(docker_running=True, containers=[other], used_ports={8080: [other]})
    with patch("portcheck.cli.scan_runtime", return_value=runtime):
        result = runner.invoke(app, ["scan", str(repo), "--runtime", "--strict"])
    assert "already used by container legacy-proxy" in result.stdout
    assert result.exit_code == 1


def test_profiles_command(tmp_path):
    repo = _repo(tmp_path, "services:\n  mail:\n    profiles: [tools]\n    ports: [\"8025:8025\"]\n")
    result = runner.invoke(app, ["profiles", str(repo)])
    assert result.exit_code == 0
    assert "## Profile: tools" in result.stdout


def test_explain():
    result = runner.invoke(app, ["explain", "collision"])
    assert result.exit_code == 0
    assert "Severity: error" in result.stdout
    assert runner.invoke(app, ["explain", "nonsense"]).exit_code == 2
    assert "profile_collision" in runner.invoke(app, ["explain", "list"]).stdout


def test_explain_registry():
    """Every issue type has a registry entry."""
    for kind in ("collision", "potential_collision", "privileged", "common_port", "profile_collision", "parse_error"):
        assert kind in ISSUE_INFO
    for info in ISSUE_INFO.values():
        assert set(info) == {"severity", "description", "when", "fix"}


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert result.stdout.startswith("portcheck ")


@pytest.mark.parametrize(
    "argv, expected",
    [
        ([], ["scan"]),
        (["./proj", "--strict"], ["scan", "./proj", "--strict"]),
        (["--json"], ["scan", "--json"]),
        (["profiles", "."], ["profiles", "."]),
        (["--help"], ["--help"]),
    ],
)
def test_preprocess_argv(argv, expected):
    with patch.object(sys, "argv", ["portcheck", *argv]):
        cli._preprocess_argv()
        assert sys.argv[1:] == expected


def test_err_is_a_usage_error(tmp_path):
    """CLI errors raise typer's BadParameter so they exit 2 as usage errors."""
    with pytest.raises(typer.BadParameter):
        cli._err("bad input")
    result = runner.invoke(app, ["profiles", str(tmp_path / "missing")])
    assert result.exit_code == 2
