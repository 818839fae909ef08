"""Route tool calls by name to their handler group.

The router validates arguments, resolves the active client for query tools,
and turns every failure into an error envelope. It is the only place where
exceptions are caught and rendered for the caller.
"""

import logging
from typing import Any

import pydantic

from odata_mcp.errors import ValidationError
from odata_mcp.parser import format_error
from odata_mcp.registry import ConnectionRegistry
from odata_mcp.session import SessionManager
from odata_mcp.tools.configuration import CONFIGURATION_TOOLS
from odata_mcp.tools.connection import CONNECTION_TOOLS
from odata_mcp.tools.models import ToolRequest, ToolResult
from odata_mcp.tools.odata import ODATA_TOOLS

logger = logging.getLogger(__name__)

CONFIG_TOOL_PREFIX = "config_"

NO_ACTIVE_CONNECTION = (
    "No active connection. Please set a connection first using set_connection or connect."
)

TOOL_NAMES = [*ODATA_TOOLS, *CONNECTION_TOOLS, *CONFIGURATION_TOOLS]


def _validate(model: type[ToolRequest], arguments: dict[str, Any] | None) -> ToolRequest:
    try:
        return model.model_validate(arguments or {})
    except pydantic.ValidationError as e:
        problems = []
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "arguments"
            problems.append(f"{field}: {err['msg']}")
        raise ValidationError(f"Invalid arguments: {'; '.join(problems)}") from None


class OperationRouter:
    """Dispatch a tool call to the query, connection or configuration group."""

    def __init__(self, session: SessionManager, registry: ConnectionRegistry) -> None:
        self.session = session
        self.registry = registry

    def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        # Argument values may carry passwords; only keys are logged.
        logger.info(f"Tool call: {name} (args: {sorted(arguments or {})})")
        try:
            if name.startswith(CONFIG_TOOL_PREFIX):
                return self._run_managed(CONFIGURATION_TOOLS, name, arguments)
            if name in CONNECTION_TOOLS:
                return self._run_managed(CONNECTION_TOOLS, name, arguments)
            if name in ODATA_TOOLS:
                return self._run_query(name, arguments)
            return ToolResult.error(f"Unknown tool: {name}")
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return ToolResult.error(format_error(e))

    def _run_managed(self, tools: dict, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        if name not in tools:
            return ToolResult.error(f"Unknown tool: {name}")
        model, handler = tools[name]
        request = _validate(model, arguments)
        return handler(self.session, self.registry, request)

    def _run_query(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        model, handler = ODATA_TOOLS[name]
        handle = self.session.get_current_client()
        if handle is None:
            return ToolResult.error(NO_ACTIVE_CONNECTION)
        request = _validate(model, arguments)
        return handler(handle.client, request)


__all__ = ["NO_ACTIVE_CONNECTION", "OperationRouter", "TOOL_NAMES"]
