"""FastMCP server for odata-mcp."""

import asyncio
import logging
import sys
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from odata_mcp.config import Settings, get_settings
from odata_mcp.models import BatchOperation
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.session import SessionManager
from odata_mcp.store import YamlConfigStore
from odata_mcp.tools import OperationRouter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

INSTRUCTIONS = """
Query and edit tables of a hosted database through its OData service.

GETTING CONNECTED:
- connect(server, database, user, password) opens a temporary session.
- set_connection(name) switches to a saved connection.
- config_add_connection(...) saves a connection for later sessions; the
  default connection (config_set_default_connection) is used automatically.

EXPLORING:
1. list_tables() to see the tables
2. describe_table(table) to see a table's fields
3. query_records(table, filter=..., select=..., top=...) to read data

OData QUERY SYNTAX:
- filter: Age gt 25 and City eq 'Boston'
- orderby: LastName asc
- select: FirstName,LastName
- top/skip: paging; count=true adds the total number of matches

Record keys (recordId) are sent quoted, e.g. Contacts('42').
""".strip()


async def _forward(router: OperationRouter, name: str, arguments: dict[str, Any]) -> str:
    """Run one dispatch in a worker thread; error envelopes become ToolError."""
    result = await asyncio.to_thread(router.dispatch, name, arguments)
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(router: OperationRouter) -> FastMCP:
    """Create the MCP server with every tool bound to ``router``."""
    server = FastMCP(name="odata-mcp", instructions=INSTRUCTIONS)

    # =========================================================================
    # Metadata and query tools
    # =========================================================================

    async def _get_service_document() -> str:
        """Get the service document listing all tables (entity sets)."""
        return await _forward(router, "get_service_document", {})

    async def _get_metadata() -> str:
        """Get the $metadata XML describing tables, fields and types."""
        return await _forward(router, "get_metadata", {})

    async def _list_tables() -> str:
        """List all tables in the current database."""
        return await _forward(router, "list_tables", {})

    async def _describe_table(table: str) -> str:
        """List a table's fields with type, max length and nullability."""
        return await _forward(router, "describe_table", {"table": table})

    async def _query_records(
        table: str,
        filter: str | None = None,
        select: str | None = None,
        orderby: str | None = None,
        top: int | None = None,
        skip: int | None = None,
        expand: str | None = None,
        count: bool | None = None,
    ) -> str:
        """Query records with OData options ($filter, $select, $orderby, $top, $skip, $expand, $count)."""
        return await _forward(
            router,
            "query_records",
            {
                "table": table,
                "filter": filter,
                "select": select,
                "orderby": orderby,
                "top": top,
                "skip": skip,
                "expand": expand,
                "count": count,
            },
        )

    async def _get_record(
        table: str,
        recordId: str,
        select: str | None = None,
        expand: str | None = None,
    ) -> str:
        """Get one record by its key."""
        return await _forward(
            router,
            "get_record",
            {"table": table, "recordId": recordId, "select": select, "expand": expand},
        )

    async def _get_records(table: str, top: int | None = None, skip: int | None = None) -> str:
        """Get records from a table with simple paging."""
        return await _forward(router, "get_records", {"table": table, "top": top, "skip": skip})

    async def _count_records(table: str, filter: str | None = None) -> str:
        """Count the records in a table, optionally filtered."""
        return await _forward(router, "count_records", {"table": table, "filter": filter})

    async def _create_record(table: str, data: dict[str, Any]) -> str:
        """Create a record from field values."""
        return await _forward(router, "create_record", {"table": table, "data": data})

    async def _update_record(table: str, recordId: str, data: dict[str, Any]) -> str:
        """Update fields of an existing record."""
        return await _forward(
            router, "update_record", {"table": table, "recordId": recordId, "data": data}
        )

    async def _delete_record(table: str, recordId: str) -> str:
        """Delete a record by its key."""
        return await _forward(router, "delete_record", {"table": table, "recordId": recordId})

    async def _batch_operations(operations: list[BatchOperation]) -> str:
        """Run several GET/POST/PATCH/DELETE requests in order.

        Each operation succeeds or fails on its own; URLs may be relative to
        the database root (e.g. "Contacts('1')").
        """
        return await _forward(
            router,
            "batch_operations",
            {"operations": [op.model_dump() for op in operations]},
        )

    server.tool(name="get_service_document")(_get_service_document)
    server.tool(name="get_metadata")(_get_metadata)
    server.tool(name="list_tables")(_list_tables)
    server.tool(name="describe_table")(_describe_table)
    server.tool(name="query_records")(_query_records)
    server.tool(name="get_record")(_get_record)
    server.tool(name="get_records")(_get_records)
    server.tool(name="count_records")(_count_records)
    server.tool(name="create_record")(_create_record)
    server.tool(name="update_record")(_update_record)
    server.tool(name="delete_record")(_delete_record)
    server.tool(name="batch_operations")(_batch_operations)

    # =========================================================================
    # Session tools
    # =========================================================================

    async def _connect(server: str, database: str, user: str, password: str) -> str:
        """Connect with credentials for this session only (nothing is saved)."""
        return await _forward(
            router,
            "connect",
            {"server": server, "database": database, "user": user, "password": password},
        )

    async def _set_connection(name: str) -> str:
        """Switch to a saved connection."""
        return await _forward(router, "set_connection", {"name": name})

    async def _list_connections() -> str:
        """List saved connections and mark the active one."""
        return await _forward(router, "list_connections", {})

    async def _get_current_connection() -> str:
        """Show the active connection."""
        return await _forward(router, "get_current_connection", {})

    server.tool(name="connect")(_connect)
    server.tool(name="set_connection")(_set_connection)
    server.tool(name="list_connections")(_list_connections)
    server.tool(name="get_current_connection")(_get_current_connection)

    # =========================================================================
    # Saved connection management
    # =========================================================================

    async def _config_add_connection(
        name: str, server: str, database: str, user: str, password: str
    ) -> str:
        """Save a named connection to the config file."""
        return await _forward(
            router,
            "config_add_connection",
            {
                "name": name,
                "server": server,
                "database": database,
                "user": user,
                "password": password,
            },
        )

    async def _config_remove_connection(name: str) -> str:
        """Delete a saved connection."""
        return await _forward(router, "config_remove_connection", {"name": name})

    async def _config_list_connections() -> str:
        """List saved connections (passwords masked)."""
        return await _forward(router, "config_list_connections", {})

    async def _config_get_connection(name: str) -> str:
        """Show one saved connection (password masked)."""
        return await _forward(router, "config_get_connection", {"name": name})

    async def _config_set_default_connection(name: str) -> str:
        """Make a saved connection the default for new sessions."""
        return await _forward(router, "config_set_default_connection", {"name": name})

    server.tool(name="config_add_connection")(_config_add_connection)
    server.tool(name="config_remove_connection")(_config_remove_connection)
    server.tool(name="config_list_connections")(_config_list_connections)
    server.tool(name="config_get_connection")(_config_get_connection)
    server.tool(name="config_set_default_connection")(_config_set_default_connection)

    return server


def build_router(settings: Settings) -> OperationRouter:
    """Wire store, registry and session for one server process."""
    store = YamlConfigStore(settings.get_config_file())
    registry = ConnectionRegistry(store)
    session = SessionManager(
        registry,
        verify_ssl=settings.odata_verify_ssl,
        timeout=settings.timeout_seconds,
        baseline=settings.baseline_connection(),
    )
    return OperationRouter(session, registry)


def _configure_logging(settings: Settings) -> None:
    """Configure logging before anything else.

    Logs go to stderr so they never mix with the stdio transport.
    """
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT, stream=sys.stderr)

    if settings.log_file:
        log_file = settings.get_log_file()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def main():
    """Run the MCP server."""
    settings = get_settings()
    _configure_logging(settings)
    logger = logging.getLogger(__name__)

    problems = settings.validation_errors()
    if problems:
        for problem in problems:
            logger.error(f"Configuration error: {problem}")
        sys.exit(1)

    store = YamlConfigStore(settings.get_config_file())
    try:
        store.record_settings(settings)
    except OSError as e:
        logger.warning(f"Could not write {store.path}: {e}")

    mcp = create_server(build_router(settings))

    baseline = settings.baseline_connection()
    logger.info(
        f"Starting odata-mcp ({settings.mcp_transport}); "
        f"environment connection: {baseline.address if baseline else 'none'}"
    )

    if settings.mcp_transport in ("http", "sse"):
        mcp.run(
            transport=settings.mcp_transport,
            host=settings.mcp_host,
            port=settings.mcp_port,
            path=settings.mcp_path,
        )
    else:
        # Default: stdio for local clients
        mcp.run()


if __name__ == "__main__":
    main()
