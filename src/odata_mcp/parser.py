"""Shape OData payloads into compact text for tool output.

Everything here is pure. Schema extraction is lightweight pattern matching
over the ``$metadata`` document rather than a full EDMX parse, and returns an
empty result instead of raising on anything it does not recognise.
"""

import json
import re
from typing import Any, Iterable

from odata_mcp.models import RESERVED_METADATA_PREFIX, BatchResult, FieldInfo, RecordSet

_ENTITY_SET_RE = re.compile(r"<EntitySet\b([^>]*)>", re.IGNORECASE)
_ENTITY_TYPE_RE = re.compile(
    r"<EntityType\b([^>]*?)(/>|>(.*?)</EntityType\s*>)",
    re.IGNORECASE | re.DOTALL,
)
_PROPERTY_RE = re.compile(r"<Property\b([^>]*?)/?>", re.IGNORECASE)
_ATTRIBUTE_RE = re.compile(r"""([\w:.]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""")


def _attributes(fragment: str) -> dict[str, str]:
    attrs = {}
    for match in _ATTRIBUTE_RE.finditer(fragment):
        double, single = match.group(2), match.group(3)
        attrs[match.group(1)] = double if double is not None else single
    return attrs


def format_response(data: Any, pretty: bool = True) -> str:
    """Serialize any JSON-compatible payload."""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return json.dumps(data, ensure_ascii=False, default=str)


def format_record_set(record_set: RecordSet, include_context: bool = False) -> str:
    """Render ``{count, records[, context]}``; ``count`` is left out when unknown."""
    result: dict[str, Any] = {}
    if record_set.count is not None:
        result["count"] = record_set.count
    result["records"] = record_set.items
    if include_context:
        result["context"] = record_set.context
    return format_response(result)


def summarize(record_set: RecordSet) -> str:
    """One-line summary, e.g. ``Returned 10 record(s) (100 total matching records)``."""
    returned = len(record_set.items)
    summary = f"Returned {returned} record(s)"
    if record_set.count is not None and record_set.count != returned:
        summary += f" ({record_set.count} total matching records)"
    return summary


def format_record(record: dict[str, Any]) -> str:
    return format_response(record)


def format_error(error: BaseException) -> str:
    return f"Error: {error}"


def extract_field_names(record: dict[str, Any]) -> list[str]:
    """Record keys minus the ``@odata.*`` annotations."""
    if not isinstance(record, dict):
        return []
    return [key for key in record if not str(key).startswith(RESERVED_METADATA_PREFIX)]


def extract_table_names(metadata: str) -> list[str]:
    """EntitySet names in document order (duplicates kept)."""
    if not isinstance(metadata, str):
        return []
    tables = []
    for match in _ENTITY_SET_RE.finditer(metadata):
        name = _attributes(match.group(1)).get("Name")
        if name:
            tables.append(name)
    return tables


def extract_fields(metadata: str, table_name: str) -> list[FieldInfo]:
    """Property declarations of the first EntityType named ``table_name``.

    The name comparison is case-insensitive. ``nullable`` defaults to True
    unless the property says ``Nullable="false"``; ``max_length`` is only set
    for numeric ``MaxLength`` values.
    """
    if not isinstance(metadata, str) or not table_name:
        return []

    for match in _ENTITY_TYPE_RE.finditer(metadata):
        name = _attributes(match.group(1)).get("Name", "")
        if name.lower() != table_name.lower():
            continue
        return _parse_properties(match.group(3) or "")
    return []


def _parse_properties(body: str) -> list[FieldInfo]:
    fields = []
    for match in _PROPERTY_RE.finditer(body):
        attrs = _attributes(match.group(1))
        name = attrs.get("Name")
        if not name:
            continue
        max_length = attrs.get("MaxLength", "")
        fields.append(
            FieldInfo(
                name=name,
                type=attrs.get("Type", ""),
                nullable=attrs.get("Nullable", "").lower() != "false",
                max_length=int(max_length) if max_length.isdigit() else None,
            )
        )
    return fields


def format_fields(table_name: str, fields: Iterable[FieldInfo]) -> str:
    lines = []
    for field in fields:
        line = f"- {field.name}: {field.type}"
        if field.max_length is not None:
            line += f"({field.max_length})"
        if not field.nullable:
            line += " NOT NULL"
        lines.append(line)
    if not lines:
        return f"No fields found for table '{table_name}'."
    return f"Fields in {table_name}:\n" + "\n".join(lines)


def format_batch_summary(results: list[BatchResult]) -> str:
    """Render ``{total, successful, failed, results}``."""
    successful = sum(1 for r in results if r.success)
    summary = {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "results": [r.model_dump(exclude_none=True) for r in results],
    }
    return format_response(summary)


__all__ = [
    "extract_field_names",
    "extract_fields",
    "extract_table_names",
    "format_batch_summary",
    "format_error",
    "format_fields",
    "format_record",
    "format_record_set",
    "format_response",
    "summarize",
]
