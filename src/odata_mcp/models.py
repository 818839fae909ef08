"""Shared data models: connections, record sets, schema fields and batch entries."""

from typing import Any

from pydantic import BaseModel, Field, SecretStr

PASSWORD_MASK = "******"

# Keys with this prefix are protocol annotations, not record fields.
RESERVED_METADATA_PREFIX = "@odata"

# Session keys that are not registered connection names start with this
# character, which registered names may not use.
RESERVED_KEY_PREFIX = "$"
BASELINE_CONNECTION_NAME = f"{RESERVED_KEY_PREFIX}env"
ADHOC_KEY_PREFIX = f"{RESERVED_KEY_PREFIX}inline-"


class Connection(BaseModel):
    """A named credential set for one remote database.

    The password is a ``SecretStr`` so that reprs, logs and ``model_dump()``
    never carry it in clear text.
    """

    name: str = Field(default="", description="Unique connection name")
    server: str = Field(default="", description="Server URL, e.g. https://fms.example.com")
    database: str = Field(default="", description="Hosted database name")
    user: str = Field(default="", description="Account name")
    password: SecretStr = Field(default=SecretStr(""), description="Account password")

    @property
    def address(self) -> str:
        return f"{self.server}/{self.database}"

    def missing_fields(self) -> list[str]:
        """Names of required credential fields that are empty."""
        values = {
            "server": self.server,
            "database": self.database,
            "user": self.user,
            "password": self.password.get_secret_value(),
        }
        return [key for key, value in values.items() if not value]

    def to_public_dict(self) -> dict[str, str]:
        """Display form with the password replaced by a fixed mask."""
        return {
            "name": self.name,
            "server": self.server,
            "database": self.database,
            "user": self.user,
            "password": PASSWORD_MASK,
        }

    def to_storage_dict(self) -> dict[str, str]:
        """Form persisted in the config file (clear-text password, no name)."""
        return {
            "server": self.server,
            "database": self.database,
            "user": self.user,
            "password": self.password.get_secret_value(),
        }


class QueryOptions(BaseModel):
    """OData system query options. ``None`` means "omit from the query"."""

    filter: str | None = None
    select: str | None = None
    orderby: str | None = None
    top: int | None = None
    skip: int | None = None
    expand: str | None = None
    count: bool | None = None


class RecordSet(BaseModel):
    """A collection response: ``@odata.context``, ``@odata.count`` and ``value``."""

    context: str = ""
    count: int | None = None
    items: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "RecordSet":
        if not isinstance(payload, dict):
            return cls()
        items = payload.get("value")
        count = payload.get("@odata.count")
        return cls(
            context=str(payload.get("@odata.context") or ""),
            count=count if isinstance(count, int) and not isinstance(count, bool) else None,
            items=[item for item in items if isinstance(item, dict)]
            if isinstance(items, list)
            else [],
        )


class FieldInfo(BaseModel):
    """A property declaration extracted from the schema document."""

    name: str
    type: str = ""
    nullable: bool = True
    max_length: int | None = None


class BatchOperation(BaseModel):
    """One sub-request of a best-effort batch."""

    method: str = "GET"
    url: str
    data: dict[str, Any] | None = None


class BatchResult(BaseModel):
    """Outcome of one batch sub-request."""

    success: bool
    status: int
    data: Any = None
    error: str | None = None


__all__ = [
    "BatchOperation",
    "BatchResult",
    "Connection",
    "FieldInfo",
    "PASSWORD_MASK",
    "QueryOptions",
    "RESERVED_METADATA_PREFIX",
    "RecordSet",
]
