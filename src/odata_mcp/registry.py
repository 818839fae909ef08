"""Registry of named OData connections.

Connections live in the ``connections`` mapping of the config store, keyed by
name, next to a ``default_connection`` pointer.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from odata_mcp.errors import ConfigError
from odata_mcp.models import RESERVED_KEY_PREFIX, Connection
from odata_mcp.store import ConfigStore

logger = logging.getLogger(__name__)

CONNECTIONS_KEY = "connections"
DEFAULT_KEY = "default_connection"


class ConnectionRegistry:
    """Add, remove, list and look up named connections.

    Thread-safe: every read and every read-modify-write of the store happens
    under one lock.
    """

    def __init__(self, store: ConfigStore) -> None:
        self._store = store
        self._lock = threading.Lock()

    @staticmethod
    def _connections(data: dict[str, Any]) -> dict[str, Any]:
        connections = data.get(CONNECTIONS_KEY)
        return connections if isinstance(connections, dict) else {}

    @staticmethod
    def _build(name: str, entry: Any) -> Connection | None:
        if not isinstance(entry, dict):
            return None
        return Connection(
            name=name,
            server=str(entry.get("server") or ""),
            database=str(entry.get("database") or ""),
            user=str(entry.get("user") or ""),
            password=str(entry.get("password") or ""),
        )

    def add(self, name: str, connection: Connection) -> Connection:
        """Register a new connection.

        Raises:
            ConfigError: If the name is taken or a required field is empty.
        """
        if not name:
            raise ConfigError("Connection name is required")
        if name.startswith(RESERVED_KEY_PREFIX):
            raise ConfigError(f'Connection names may not start with "{RESERVED_KEY_PREFIX}"')
        missing = connection.missing_fields()
        if missing:
            raise ConfigError(
                f"{missing[0].capitalize()} is required"
                if len(missing) == 1
                else f"Missing required fields: {', '.join(missing)}"
            )

        with self._lock:
            data = self._store.load()
            connections = self._connections(data)
            if name in connections:
                raise ConfigError(f'Connection "{name}" already exists')
            connections[name] = connection.to_storage_dict()
            data[CONNECTIONS_KEY] = connections
            self._store.save(data)

        logger.info(f"Added connection: {name}")
        return connection.model_copy(update={"name": name})

    def remove(self, name: str) -> None:
        """Remove a connection, clearing the default pointer if it was the default.

        Raises:
            ConfigError: If no such connection exists.
        """
        with self._lock:
            data = self._store.load()
            connections = self._connections(data)
            if name not in connections:
                raise ConfigError(f'Connection "{name}" not found')
            del connections[name]
            data[CONNECTIONS_KEY] = connections
            if data.get(DEFAULT_KEY) == name:
                data.pop(DEFAULT_KEY)
                logger.info(f"Cleared default connection: {name}")
            self._store.save(data)

        logger.info(f"Removed connection: {name}")

    def _load(self) -> dict[str, Any]:
        with self._lock:
            return self._store.load()

    def get(self, name: str) -> Connection | None:
        if not name:
            return None
        entry = self._connections(self._load()).get(name)
        return self._build(name, entry)

    def exists(self, name: str) -> bool:
        return self.get(name) is not None

    def list(self) -> list[Connection]:
        connections = self._connections(self._load())
        built = (self._build(name, entry) for name, entry in connections.items())
        return [conn for conn in built if conn is not None]

    def set_default(self, name: str) -> None:
        """Flag a connection as default.

        Raises:
            ConfigError: If no such connection exists.
        """
        with self._lock:
            data = self._store.load()
            if name not in self._connections(data):
                raise ConfigError(f'Connection "{name}" not found')
            data[DEFAULT_KEY] = name
            self._store.save(data)

        logger.info(f"Default connection set to: {name}")

    @staticmethod
    def _default_name(data: dict[str, Any]) -> str | None:
        name = data.get(DEFAULT_KEY)
        if not name or name not in ConnectionRegistry._connections(data):
            return None
        return name

    def get_default_name(self) -> str | None:
        return self._default_name(self._load())

    def get_default(self) -> Connection | None:
        """Resolve the default pointer and its entry from one snapshot."""
        data = self._load()
        name = self._default_name(data)
        return self._build(name, self._connections(data).get(name)) if name else None


__all__ = ["ConnectionRegistry"]
