# tests/test_cli.py
"""
Tests for the confcat click CLI.
"""

import json
import os

import pytest
import toml
from click.testing import CliRunner

from confcat.cli import cli


@pytest.fixture
def app_toml(tmp_path):
    data = {
        "ktor": {
            "server": {"host": "0.0.0.0", "port": 9000, "tags": ["a", "b"]},
            "logging": {"level": "warning", "sinks": "debug, info"},
        }
    }
    path = tmp_path / "app.toml"
    path.write_text(toml.dumps(data))
    return str(path)


@pytest.fixture
def fixtures_on_path(monkeypatch):
    monkeypatch.syspath_prepend(os.path.dirname(__file__))


def run(*args, **kwargs):
    return CliRunner().invoke(cli, ["--no-dotenv", *args], **kwargs)


class TestInspect:
    """get / exists / dump."""

    def test_get(self, app_toml):
        result = run("-c", app_toml, "get", "ktor.server.port")
        assert result.exit_code == 0
        assert json.loads(result.output) == 9000

    def test_get_missing(self, app_toml):
        result = run("-c", app_toml, "get", "ktor.nope")
        assert result.exit_code == 1
        assert "Key not found" in result.output

    def test_exists(self, app_toml):
        assert run("-c", app_toml, "exists", "ktor.server").exit_code == 0
        missing = run("-c", app_toml, "exists", "ktor.client")
        assert missing.exit_code == 1
        assert "false" in missing.output

    def test_dump_with_overrides(self, app_toml):
        result = run("-c", app_toml, "--overrides", "ktor.server.port:1234", "dump")
        assert result.exit_code == 0
        assert json.loads(result.output)["ktor"]["server"]["port"] == 1234

    def test_env_prefix(self, app_toml, monkeypatch):
        monkeypatch.setenv("CLITEST__KTOR__SERVER__HOST", "example.org")
        result = run("-c", app_toml, "-p", "CLITEST", "get", "ktor.server.host")
        assert json.loads(result.output) == "example.org"

    def test_mandatory_missing(self, app_toml):
        result = run("-c", app_toml, "--mandatory", "ktor.db.url", "dump")
        assert result.exit_code == 1
        assert "Missing mandatory configuration keys: ktor.db.url" in result.output


class TestCatalogCommand:
    """Materializing a catalog from the command line."""

    def test_derived_mappings(self, app_toml, fixtures_on_path):
        result = run("-c", app_toml, "catalog", "catalog_fixtures:AppCatalog", "--key-path", "ktor")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {
            "server": {"host": "0.0.0.0", "port": 9000, "tags": ["a", "b"]},
            "logging": {"level": "WARNING", "sinks": ["DEBUG", "INFO"], "file": None},
        }

    def test_explicit_maps(self, app_toml, fixtures_on_path):
        result = run(
            "-c", app_toml, "catalog", "catalog_fixtures:AppCatalog",
            "--map", "ktor.server=server",
            "--map", "ktor.logging=Logging",
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["server"]["port"] == 9000

    def test_explicit_maps_skip_unmapped_plain_fields(self, app_toml, fixtures_on_path):
        result = run(
            "-c", app_toml, "catalog", "catalog_fixtures:LabelledCatalog",
            "--map", "ktor.server=server",
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["label"] == "default"
        assert data["server"]["host"] == "0.0.0.0"

    def test_derived_mappings_need_dataclass_fields(self, app_toml, fixtures_on_path):
        result = run("-c", app_toml, "catalog", "catalog_fixtures:LabelledCatalog", "--key-path", "ktor")
        assert result.exit_code == 1
        assert "not a dataclass section" in result.output

    def test_invalid_map(self, app_toml, fixtures_on_path):
        result = run("-c", app_toml, "catalog", "catalog_fixtures:AppCatalog", "--map", "ktor.server")
        assert result.exit_code == 1
        assert "Invalid --map binding" in result.output

    def test_configuration_error(self, app_toml, fixtures_on_path):
        result = run(
            "-c", app_toml, "--overrides", "ktor.server.port:abc",
            "catalog", "catalog_fixtures:AppCatalog", "--key-path", "ktor",
        )
        assert result.exit_code == 1
        assert "Invalid int value" in result.output

    def test_bad_target(self, app_toml):
        result = run("-c", app_toml, "catalog", "no_such_module_xyz:Catalog")
        assert result.exit_code == 1
        assert "Cannot import" in result.output
