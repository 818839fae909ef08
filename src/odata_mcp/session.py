"""Session manager: cached OData clients and the current connection.

A ``SessionManager`` is built once per server process and handed to the tool
router. It keeps exactly one ``ClientHandle`` per connection key and at most
one "current" key. Keys are either registered connection names or synthetic
``$inline-N`` keys for ad-hoc sessions.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from odata_mcp.client import DEFAULT_TIMEOUT, ODataClient
from odata_mcp.errors import ConfigError
from odata_mcp.models import ADHOC_KEY_PREFIX, BASELINE_CONNECTION_NAME, Connection
from odata_mcp.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Connection, bool, float], Any]

# Process-wide so ad-hoc keys stay unique across SessionManager instances.
_adhoc_counter = itertools.count(1)


@dataclass(frozen=True)
class ClientHandle:
    """One connection's credentials and transport options bound to a client."""

    key: str
    connection: Connection
    client: Any
    verify_ssl: bool
    timeout: float
    adhoc: bool = False


def _default_factory(connection: Connection, verify_ssl: bool, timeout: float) -> ODataClient:
    return ODataClient.from_connection(connection, verify_ssl=verify_ssl, timeout=timeout)


class SessionManager:
    """Owns the process-local session state."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: ClientFactory | None = None,
        baseline: Connection | None = None,
    ) -> None:
        self.registry = registry
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self._factory = client_factory or _default_factory
        self._baseline = baseline
        self._clients: dict[str, ClientHandle] = {}
        self._current_key: str | None = None
        self._lock = threading.RLock()

    # -- Accessors ----------------------------------------------------------

    @property
    def current_key(self) -> str | None:
        return self._current_key

    def get_handle(self, key: str) -> ClientHandle | None:
        with self._lock:
            return self._clients.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._clients)

    # -- Construction -------------------------------------------------------

    def _build(
        self,
        key: str,
        connection: Connection,
        verify_ssl: bool | None,
        timeout: float | None,
        adhoc: bool = False,
    ) -> ClientHandle:
        verify = self.verify_ssl if verify_ssl is None else verify_ssl
        seconds = self.timeout if timeout is None else timeout
        handle = ClientHandle(
            key=key,
            connection=connection,
            client=self._factory(connection, verify, seconds),
            verify_ssl=verify,
            timeout=seconds,
            adhoc=adhoc,
        )
        self._clients[key] = handle
        self._current_key = key
        return handle

    def get_or_create_client(
        self,
        connection_name: str,
        verify_ssl: bool | None = None,
        timeout: float | None = None,
    ) -> ClientHandle:
        """Return the cached handle for a named connection, creating it once.

        Transport options are ignored when a handle already exists; evict it
        first to rebuild with different options. A newly built handle becomes
        current.

        Raises:
            ConfigError: If the connection is not registered.
        """
        with self._lock:
            handle = self._clients.get(connection_name)
            if handle is not None:
                return handle

            connection = self.registry.get(connection_name)
            if connection is None:
                raise ConfigError(f'Connection "{connection_name}" not found')

            handle = self._build(connection_name, connection, verify_ssl, timeout)

        logger.debug(f"Created OData client for connection: {connection_name}")
        return handle

    def create_adhoc_client(
        self,
        connection: Connection,
        verify_ssl: bool | None = None,
        timeout: float | None = None,
    ) -> ClientHandle:
        """Build a client from inline credentials under a fresh key.

        The registry is never touched; the handle becomes current.
        """
        with self._lock:
            key = f"{ADHOC_KEY_PREFIX}{next(_adhoc_counter)}"
            while key in self._clients:
                key = f"{ADHOC_KEY_PREFIX}{next(_adhoc_counter)}"
            adhoc = connection.model_copy(update={"name": key})
            handle = self._build(key, adhoc, verify_ssl, timeout, adhoc=True)

        logger.debug(f"Created inline OData client: {key}")
        return handle

    # -- Current selection --------------------------------------------------

    def get_current_client(self) -> ClientHandle | None:
        """Return the current handle, promoting a default when none is set.

        With nothing current the registry default is promoted; failing that,
        the environment baseline connection (if complete). Returns None when
        neither exists.
        """
        with self._lock:
            if self._current_key is None:
                default = self.registry.get_default()
                if default is not None:
                    return self.get_or_create_client(default.name)
                if self._baseline is not None:
                    handle = self._clients.get(BASELINE_CONNECTION_NAME)
                    if handle is None:
                        handle = self._build(BASELINE_CONNECTION_NAME, self._baseline, None, None)
                    self._current_key = BASELINE_CONNECTION_NAME
                    return handle
                return None
            return self._clients.get(self._current_key)

    def set_current(self, connection_name: str) -> ClientHandle:
        """Switch to a registered connection.

        Raises:
            ConfigError: If the connection is not registered.
        """
        with self._lock:
            if self.registry.get(connection_name) is None:
                raise ConfigError(f'Connection "{connection_name}" not found')
            handle = self.get_or_create_client(connection_name)
            self._current_key = connection_name

        logger.info(f"Switched to connection: {connection_name}")
        return handle

    def test_connection(self, connection_name: str) -> bool:
        """Test a named connection; never raises."""
        try:
            handle = self.get_or_create_client(connection_name)
            return bool(handle.client.test_connection())
        except Exception as e:
            logger.error(f"Connection test failed for {connection_name}: {e}")
            return False

    # -- Eviction -----------------------------------------------------------

    def evict(self, connection_name: str) -> None:
        with self._lock:
            handle = self._clients.pop(connection_name, None)
            if self._current_key == connection_name:
                self._current_key = None
        if handle is not None:
            _close(handle)
        logger.debug(f"Removed OData client: {connection_name}")

    def clear_all(self) -> None:
        with self._lock:
            handles = list(self._clients.values())
            self._clients.clear()
            self._current_key = None
        for handle in handles:
            _close(handle)
        logger.debug("Cleared all cached OData clients")


def _close(handle: ClientHandle) -> None:
    close = getattr(handle.client, "close", None)
    if callable(close):
        close()


__all__ = ["ClientHandle", "SessionManager"]
