"""Request models for each tool and the uniform result envelope."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from odata_mcp.models import BatchOperation, Connection, QueryOptions


class ToolResult(BaseModel):
    """Uniform tool outcome: one text block plus an error flag."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(text=text, is_error=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


class ToolRequest(BaseModel):
    """Base for tool arguments; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EmptyRequest(ToolRequest):
    pass


class TableRequest(ToolRequest):
    table: str = Field(..., min_length=1, description="Table/entity set name")


class QueryRecordsRequest(TableRequest):
    filter: str | None = Field(default=None, description="OData $filter expression")
    select: str | None = Field(default=None, description="Comma-separated fields to return")
    orderby: str | None = Field(default=None, description="OData $orderby expression")
    top: int | None = Field(default=None, ge=0, description="Maximum records to return")
    skip: int | None = Field(default=None, ge=0, description="Records to skip")
    expand: str | None = Field(default=None, description="Navigation properties to expand")
    count: bool | None = Field(default=None, description="Include the total matching count")

    def options(self) -> QueryOptions:
        return QueryOptions(
            filter=self.filter,
            select=self.select,
            orderby=self.orderby,
            top=self.top,
            skip=self.skip,
            expand=self.expand,
            count=self.count,
        )


class GetRecordsRequest(TableRequest):
    top: int | None = Field(default=None, ge=0)
    skip: int | None = Field(default=None, ge=0)


class RecordRequest(TableRequest):
    record_id: str = Field(..., min_length=1, alias="recordId", description="Record key")


class GetRecordRequest(RecordRequest):
    select: str | None = None
    expand: str | None = None


class CountRecordsRequest(TableRequest):
    filter: str | None = None


class CreateRecordRequest(TableRequest):
    data: dict[str, Any] = Field(..., description="Field values for the new record")


class UpdateRecordRequest(RecordRequest):
    data: dict[str, Any] = Field(..., description="Field values to change")


class BatchRequest(ToolRequest):
    operations: list[BatchOperation] = Field(..., min_length=1)


class ConnectRequest(ToolRequest):
    server: str = Field(..., min_length=1)
    database: str = Field(..., min_length=1)
    user: str = Field(..., min_length=1)
    password: SecretStr = Field(..., description="Account password")

    def connection(self, name: str = "") -> Connection:
        return Connection(
            name=name,
            server=self.server,
            database=self.database,
            user=self.user,
            password=self.password,
        )


class NameRequest(ToolRequest):
    name: str = Field(..., min_length=1, description="Connection name")


class AddConnectionRequest(ConnectRequest):
    name: str = Field(..., min_length=1)


__all__ = [
    "AddConnectionRequest",
    "BatchRequest",
    "ConnectRequest",
    "CountRecordsRequest",
    "CreateRecordRequest",
    "EmptyRequest",
    "GetRecordRequest",
    "GetRecordsRequest",
    "NameRequest",
    "QueryRecordsRequest",
    "RecordRequest",
    "TableRequest",
    "ToolRequest",
    "ToolResult",
    "UpdateRecordRequest",
]
