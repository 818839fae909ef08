"""Tests for the YAML and in-memory config stores."""

import os
import stat
from unittest.mock import patch

import pytest
import yaml

from odata_mcp.config import Settings
from odata_mcp.store import MemoryConfigStore, YamlConfigStore


class TestYamlConfigStore:
    def test_missing_file_loads_empty(self, tmp_path):
        assert YamlConfigStore(tmp_path / "config.yaml").load() == {}

    def test_malformed_yaml_loads_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("connections: [unclosed\n")
        assert YamlConfigStore(path).load() == {}

    def test_non_mapping_loads_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        assert YamlConfigStore(path).load() == {}

    def test_save_creates_parent_and_restricts_mode(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        store = YamlConfigStore(path)

        store.save({"connections": {"prod": {"server": "s"}}})

        assert store.load() == {"connections": {"prod": {"server": "s"}}}
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_record_settings_never_writes_password(self, tmp_path):
        path = tmp_path / "config.yaml"
        store = YamlConfigStore(path)
        store.save({"connections": {"prod": {"server": "s"}}})
        settings = Settings(
            odata_server="https://fms.example.com",
            odata_database="Sales",
            odata_user="admin",
            odata_password="hunter2",
            mcp_transport="http",
            mcp_port=8080,
        )

        store.record_settings(settings)

        data = yaml.safe_load(path.read_text())
        assert data["server"] == {"transport": "http", "host": "localhost", "port": 8080}
        assert data["odata"]["server"] == "https://fms.example.com"
        assert data["odata"]["timeout"] == 30000
        assert data["connections"] == {"prod": {"server": "s"}}
        assert "hunter2" not in path.read_text()


class TestMemoryConfigStore:
    def test_load_returns_a_copy(self):
        store = MemoryConfigStore({"connections": {}})
        data = store.load()
        data["connections"]["prod"] = {}
        assert store.load() == {"connections": {}}

    def test_save(self):
        store = MemoryConfigStore()
        store.save({"default_connection": "prod"})
        assert store.data == {"default_connection": "prod"}


class TestAtomicSave:
    def test_no_temp_files_left_behind(self, tmp_path):
        store = YamlConfigStore(tmp_path / "config.yaml")

        store.save({"a": 1})
        store.save({"a": 2})

        assert [p.name for p in tmp_path.iterdir()] == ["config.yaml"]

    def test_failed_write_keeps_previous_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        store = YamlConfigStore(path)
        store.save({"connections": {"prod": {"server": "s"}}})

        with patch("odata_mcp.store.yaml.safe_dump", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                store.save({"connections": {}})

        assert store.load() == {"connections": {"prod": {"server": "s"}}}
        assert [p.name for p in tmp_path.iterdir()] == ["config.yaml"]

    def test_file_is_private_from_creation(self, tmp_path):
        path = tmp_path / "config.yaml"
        seen_modes = []
        real_dump = yaml.safe_dump

        def dump_and_inspect(data, stream, **kwargs):
            seen_modes.append(stat.S_IMODE(os.fstat(stream.fileno()).st_mode))
            return real_dump(data, stream, **kwargs)

        with patch("odata_mcp.store.yaml.safe_dump", side_effect=dump_and_inspect):
            YamlConfigStore(path).save({"connections": {"prod": {"password": "hunter2"}}})

        assert seen_modes == [0o600]
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
