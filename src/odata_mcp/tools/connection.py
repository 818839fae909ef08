"""Connection tools: ad-hoc connect, switching and inspecting the session."""

import logging

from odata_mcp.errors import ValidationError
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.session import SessionManager
from odata_mcp.tools.models import ConnectRequest, EmptyRequest, NameRequest, ToolResult

logger = logging.getLogger(__name__)


def _connect(
    session: SessionManager, registry: ConnectionRegistry, request: ConnectRequest
) -> ToolResult:
    """Connect with inline credentials (temporary, never saved)."""
    connection = request.connection()
    missing = connection.missing_fields()
    if missing:
        raise ValidationError(f"Missing required arguments: {', '.join(missing)}")

    handle = session.create_adhoc_client(connection)
    if handle.client.test_connection():
        return ToolResult(
            text=f"Connected to {connection.address} as {connection.user}"
        )
    logger.warning(f"Inline connection test failed for {connection.address}")
    return ToolResult.error(
        f"Failed to connect to {connection.address}. "
        "Please check your credentials and server URL."
    )


def _set_connection(
    session: SessionManager, registry: ConnectionRegistry, request: NameRequest
) -> ToolResult:
    """Switch to a saved connection; a failed test is reported but not fatal."""
    session.set_current(request.name)
    if session.test_connection(request.name):
        return ToolResult(text=f"Switched to connection: {request.name}")
    return ToolResult(
        text=f"Switched to connection: {request.name} (warning: connection test failed)"
    )


def _list_connections(
    session: SessionManager, registry: ConnectionRegistry, request: EmptyRequest
) -> ToolResult:
    connections = registry.list()
    if not connections:
        return ToolResult(
            text="No configured connections found. Use config_add_connection to add a "
            "connection or connect for a temporary connection."
        )

    current = session.current_key
    lines = []
    for conn in connections:
        marker = " (active)" if conn.name == current else ""
        lines.append(f"- {conn.name}{marker}: {conn.address} (user: {conn.user})")
    return ToolResult(text="Configured connections:\n" + "\n".join(lines))


def _get_current_connection(
    session: SessionManager, registry: ConnectionRegistry, request: EmptyRequest
) -> ToolResult:
    key = session.current_key
    handle = session.get_handle(key) if key else None
    if handle is None:
        return ToolResult(
            text="No active connection. Use connect or set_connection to establish a connection."
        )

    conn = handle.connection
    if handle.adhoc:
        header = f"Active connection: {key} (inline/temporary)"
    elif registry.get(key) is None:
        header = f"Active connection: {key} (environment)"
    else:
        header = f"Current connection: {key}"
    return ToolResult(
        text=f"{header}\nServer: {conn.server}\nDatabase: {conn.database}\nUser: {conn.user}"
    )


# name -> (request model, handler)
CONNECTION_TOOLS = {
    "connect": (ConnectRequest, _connect),
    "set_connection": (NameRequest, _set_connection),
    "list_connections": (EmptyRequest, _list_connections),
    "get_current_connection": (EmptyRequest, _get_current_connection),
}
