"""Query, metadata and CRUD tools. Each handler receives the active client."""

from odata_mcp.client import ODataClient
from odata_mcp.models import QueryOptions
from odata_mcp.parser import (
    extract_fields,
    extract_table_names,
    format_batch_summary,
    format_fields,
    format_record,
    format_record_set,
    format_response,
    summarize,
)
from odata_mcp.tools.models import (
    BatchRequest,
    CountRecordsRequest,
    CreateRecordRequest,
    EmptyRequest,
    GetRecordRequest,
    GetRecordsRequest,
    QueryRecordsRequest,
    RecordRequest,
    TableRequest,
    ToolResult,
    UpdateRecordRequest,
)


def _get_service_document(client: ODataClient, request: EmptyRequest) -> ToolResult:
    """Get the service document listing every entity set in the database."""
    return ToolResult(text=format_response(client.get_service_document()))


def _get_metadata(client: ODataClient, request: EmptyRequest) -> ToolResult:
    """Get the $metadata (EDMX/XML) document describing tables and fields."""
    return ToolResult(text=client.get_metadata())


def _list_tables(client: ODataClient, request: EmptyRequest) -> ToolResult:
    """List the entity sets declared in the metadata document."""
    tables = extract_table_names(client.get_metadata())
    if not tables:
        return ToolResult(text="No tables found in the metadata document.")
    return ToolResult(text="Available tables:\n" + "\n".join(tables))


def _describe_table(client: ODataClient, request: TableRequest) -> ToolResult:
    """List a table's fields with type, length and nullability."""
    fields = extract_fields(client.get_metadata(), request.table)
    return ToolResult(text=format_fields(request.table, fields))


def _records_result(record_set) -> ToolResult:
    return ToolResult(text=f"{summarize(record_set)}\n\n{format_record_set(record_set)}")


def _query_records(client: ODataClient, request: QueryRecordsRequest) -> ToolResult:
    """Query a table with $filter, $select, $orderby, $top, $skip, $expand, $count."""
    return _records_result(client.query_records(request.table, request.options()))


def _get_records(client: ODataClient, request: GetRecordsRequest) -> ToolResult:
    """Page through a table without filters."""
    options = QueryOptions(top=request.top, skip=request.skip)
    return _records_result(client.query_records(request.table, options))


def _get_record(client: ODataClient, request: GetRecordRequest) -> ToolResult:
    record = client.get_record(
        request.table,
        request.record_id,
        select=request.select,
        expand=request.expand,
    )
    return ToolResult(text=format_record(record))


def _count_records(client: ODataClient, request: CountRecordsRequest) -> ToolResult:
    count = client.count_records(request.table, request.filter)
    return ToolResult(text=f"Total records in {request.table}: {count}")


def _create_record(client: ODataClient, request: CreateRecordRequest) -> ToolResult:
    record = client.create_record(request.table, request.data)
    return ToolResult(text=f"Record created successfully:\n{format_record(record)}")


def _update_record(client: ODataClient, request: UpdateRecordRequest) -> ToolResult:
    client.update_record(request.table, request.record_id, request.data)
    return ToolResult(
        text=f"Record {request.record_id} in {request.table} updated successfully"
    )


def _delete_record(client: ODataClient, request: RecordRequest) -> ToolResult:
    client.delete_record(request.table, request.record_id)
    return ToolResult(text=f"Record {request.record_id} deleted from {request.table}")


def _batch_operations(client: ODataClient, request: BatchRequest) -> ToolResult:
    """Run operations one after another; failures do not stop the rest."""
    results = client.batch(request.operations)
    return ToolResult(text=format_batch_summary(results))


# name -> (request model, handler)
ODATA_TOOLS = {
    "get_service_document": (EmptyRequest, _get_service_document),
    "get_metadata": (EmptyRequest, _get_metadata),
    "list_tables": (EmptyRequest, _list_tables),
    "describe_table": (TableRequest, _describe_table),
    "query_records": (QueryRecordsRequest, _query_records),
    "get_record": (GetRecordRequest, _get_record),
    "get_records": (GetRecordsRequest, _get_records),
    "count_records": (CountRecordsRequest, _count_records),
    "create_record": (CreateRecordRequest, _create_record),
    "update_record": (UpdateRecordRequest, _update_record),
    "delete_record": (RecordRequest, _delete_record),
    "batch_operations": (BatchRequest, _batch_operations),
}
