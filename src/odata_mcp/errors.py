"""Error taxonomy shared by the client, registry and tool router."""


class ODataMCPError(Exception):
    """Base class for all odata-mcp errors."""

    pass


class ConfigError(ODataMCPError):
    """Connection registry invariant violated (duplicate, missing, incomplete)."""

    pass


class ValidationError(ODataMCPError):
    """Tool arguments are missing or malformed."""

    pass


class TransportError(ODataMCPError):
    """The request was sent but no response came back (network, timeout, TLS)."""

    pass


class RemoteError(ODataMCPError):
    """The remote OData service answered with a non-2xx status.

    ``code`` is the OData error code when the body carried a structured
    error, otherwise the HTTP status code.
    """

    def __init__(
        self,
        code: str | int,
        message: str,
        status: int | None = None,
        structured: bool | None = None,
    ):
        self.code = code
        self.message = message
        self.status = status if status is not None else (code if isinstance(code, int) else None)
        self.structured = structured if structured is not None else not isinstance(code, int)
        super().__init__(self._render())

    def _render(self) -> str:
        if self.structured:
            return f"OData Error [{self.code}]: {self.message}"
        return f"HTTP {self.code}: {self.message}"


__all__ = [
    "ConfigError",
    "ODataMCPError",
    "RemoteError",
    "TransportError",
    "ValidationError",
]
