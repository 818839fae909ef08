"""MCP tool handlers and the router that dispatches to them."""

from odata_mcp.tools.models import ToolResult
from odata_mcp.tools.router import NO_ACTIVE_CONNECTION, TOOL_NAMES, OperationRouter

__all__ = ["NO_ACTIVE_CONNECTION", "OperationRouter", "TOOL_NAMES", "ToolResult"]
