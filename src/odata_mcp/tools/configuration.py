"""Configuration tools: manage the persisted connection registry."""

from odata_mcp.models import PASSWORD_MASK
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.session import SessionManager
from odata_mcp.tools.models import AddConnectionRequest, EmptyRequest, NameRequest, ToolResult


def _config_add_connection(
    session: SessionManager, registry: ConnectionRegistry, request: AddConnectionRequest
) -> ToolResult:
    """Add a connection (saved permanently)."""
    conn = registry.add(request.name, request.connection(request.name))
    return ToolResult(
        text=f'Connection "{conn.name}" added successfully.\n'
        f"Server: {conn.server}\nDatabase: {conn.database}\nUser: {conn.user}"
    )


def _config_remove_connection(
    session: SessionManager, registry: ConnectionRegistry, request: NameRequest
) -> ToolResult:
    """Remove a saved connection and drop its cached client."""
    registry.remove(request.name)
    session.evict(request.name)
    return ToolResult(text=f'Connection "{request.name}" removed successfully.')


def _config_list_connections(
    session: SessionManager, registry: ConnectionRegistry, request: EmptyRequest
) -> ToolResult:
    connections = registry.list()
    if not connections:
        return ToolResult(
            text="No saved connections found. Use config_add_connection to add a connection."
        )

    default_name = registry.get_default_name()
    lines = []
    for conn in connections:
        marker = " (default)" if conn.name == default_name else ""
        lines.append(f"- {conn.name}{marker}: {conn.address} (user: {conn.user})")
    return ToolResult(text="Saved connections:\n" + "\n".join(lines))


def _config_get_connection(
    session: SessionManager, registry: ConnectionRegistry, request: NameRequest
) -> ToolResult:
    conn = registry.get(request.name)
    if conn is None:
        return ToolResult.error(f'Connection "{request.name}" not found.')

    marker = " (default)" if conn.name == registry.get_default_name() else ""
    return ToolResult(
        text=f"Connection: {conn.name}{marker}\nServer: {conn.server}\n"
        f"Database: {conn.database}\nUser: {conn.user}\nPassword: {PASSWORD_MASK}"
    )


def _config_set_default_connection(
    session: SessionManager, registry: ConnectionRegistry, request: NameRequest
) -> ToolResult:
    registry.set_default(request.name)
    return ToolResult(text=f"Default connection set to: {request.name}")


# name -> (request model, handler)
CONFIGURATION_TOOLS = {
    "config_add_connection": (AddConnectionRequest, _config_add_connection),
    "config_remove_connection": (NameRequest, _config_remove_connection),
    "config_list_connections": (EmptyRequest, _config_list_connections),
    "config_get_connection": (NameRequest, _config_get_connection),
    "config_set_default_connection": (NameRequest, _config_set_default_connection),
}
