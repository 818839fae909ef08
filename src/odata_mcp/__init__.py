"""odata-mcp: an MCP server for OData tabular data services."""
