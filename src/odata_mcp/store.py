"""File-backed configuration store (``~/.odata-mcp/config.yaml``)."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import yaml

if TYPE_CHECKING:
    from odata_mcp.config import Settings

logger = logging.getLogger(__name__)


class ConfigStore(Protocol):
    """Persistence used by the connection registry."""

    def load(self) -> dict[str, Any]: ...

    def save(self, data: dict[str, Any]) -> None: ...


class YamlConfigStore:
    """Stores the whole config document as one YAML file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        """Load config from file; missing or unreadable files yield ``{}``."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not read {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {self.path}: expected a mapping at the top level")
            return {}
        return data

    def save(self, data: dict[str, Any]) -> None:
        """Save config atomically, readable by the owner only (it holds passwords).

        The document is written to a sibling temp file (created 0600 by
        ``mkstemp``) and renamed over the target, so readers in this or any
        other process see either the old or the new file, never a partial one.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_name, self.path)
        except Exception:
            logger.error(f"Could not write {self.path}; leaving previous file in place")
            try:
                os.unlink(tmp_name)
            except OSError as e:
                logger.warning(f"Could not remove temp file {tmp_name}: {e}")
            raise

    def record_settings(self, settings: Settings) -> None:
        """Write the transport and baseline connection settings.

        The baseline password stays in the environment and is never written.
        """
        data = self.load()
        data["server"] = {
            "transport": settings.mcp_transport,
            "host": settings.mcp_host,
            "port": settings.mcp_port,
        }
        data["odata"] = {
            "server": settings.odata_server,
            "database": settings.odata_database,
            "user": settings.odata_user,
            "verify_ssl": settings.odata_verify_ssl,
            "timeout": settings.odata_timeout,
        }
        self.save(data)


class MemoryConfigStore:
    """In-process store for ephemeral registries and tests."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data or {}

    def load(self) -> dict[str, Any]:
        return yaml.safe_load(yaml.safe_dump(self.data)) or {}

    def save(self, data: dict[str, Any]) -> None:
        self.data = yaml.safe_load(yaml.safe_dump(data)) or {}


__all__ = ["ConfigStore", "MemoryConfigStore", "YamlConfigStore"]
