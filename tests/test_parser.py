"""Tests for response shaping and schema extraction."""

import json

from odata_mcp.errors import RemoteError
from odata_mcp.models import BatchResult, RecordSet
from odata_mcp.parser import (
    extract_field_names,
    extract_fields,
    extract_table_names,
    format_batch_summary,
    format_error,
    format_fields,
    format_record_set,
    format_response,
    summarize,
)


class TestFormatResponse:
    def test_pretty_by_default(self):
        assert format_response({"a": 1}) == '{\n  "a": 1\n}'

    def test_compact(self):
        assert format_response({"a": 1}, pretty=False) == '{"a": 1}'

    def test_non_ascii_kept(self):
        assert "Zoë" in format_response({"name": "Zoë"})


class TestRecordSets:
    def test_from_payload(self):
        rs = RecordSet.from_payload(
            {"@odata.context": "ctx", "@odata.count": 5, "value": [{"ID": 1}, "junk"]}
        )
        assert rs.context == "ctx"
        assert rs.count == 5
        assert rs.items == [{"ID": 1}]

    def test_from_payload_tolerates_garbage(self):
        assert RecordSet.from_payload("oops").items == []
        assert RecordSet.from_payload({"@odata.count": True}).count is None

    def test_format_record_set_omits_unknown_count(self):
        rendered = json.loads(format_record_set(RecordSet(items=[{"ID": 1}])))
        assert rendered == {"records": [{"ID": 1}]}

    def test_format_record_set_with_count_and_context(self):
        rs = RecordSet(context="ctx", count=3, items=[])
        rendered = json.loads(format_record_set(rs, include_context=True))
        assert rendered == {"count": 3, "records": [], "context": "ctx"}

    def test_summary_with_total(self):
        rs = RecordSet(count=100, items=[{"ID": i} for i in range(10)])
        assert summarize(rs) == "Returned 10 record(s) (100 total matching records)"

    def test_summary_without_total(self):
        assert summarize(RecordSet(items=[{}, {}])) == "Returned 2 record(s)"

    def test_summary_when_total_matches(self):
        assert summarize(RecordSet(count=2, items=[{}, {}])) == "Returned 2 record(s)"


class TestFieldNames:
    def test_skips_odata_annotations(self):
        record = {"@odata.etag": "W/1", "@odata.id": "x", "ID": 1, "Name": "Ada"}
        assert extract_field_names(record) == ["ID", "Name"]

    def test_non_dict(self):
        assert extract_field_names(None) == []


class TestSchemaExtraction:
    def test_table_names_in_document_order(self, metadata_xml):
        assert extract_table_names(metadata_xml) == ["Contacts", "Invoices"]

    def test_table_names_of_garbage(self):
        assert extract_table_names("not xml at all") == []
        assert extract_table_names(None) == []

    def test_fields(self, metadata_xml):
        fields = extract_fields(metadata_xml, "Contacts")

        assert [f.name for f in fields] == ["ID", "FirstName", "Notes"]
        assert fields[0].type == "Edm.Decimal"
        assert fields[0].nullable is False
        assert fields[1].max_length == 100
        assert fields[1].nullable is True
        assert fields[2].max_length is None

    def test_fields_case_insensitive(self, metadata_xml):
        assert [f.name for f in extract_fields(metadata_xml, "invoices")] == ["Total"]

    def test_fields_of_unknown_table(self, metadata_xml):
        assert extract_fields(metadata_xml, "Nope") == []

    def test_non_numeric_max_length_ignored(self):
        xml = '<EntityType Name="T"><Property Name="Body" Type="Edm.String" MaxLength="max"/></EntityType>'
        assert extract_fields(xml, "T")[0].max_length is None

    def test_duplicate_entity_sets_kept(self):
        xml = '<EntitySet Name="Contacts"/><EntitySet Name="Contacts"/><EntitySet Name="Notes"/>'
        assert extract_table_names(xml) == ["Contacts", "Contacts", "Notes"]

    def test_first_matching_entity_type_wins(self):
        xml = (
            '<EntityType Name="Contacts"><Property Name="First" Type="Edm.String"/></EntityType>'
            '<EntityType Name="contacts"><Property Name="Second" Type="Edm.String"/></EntityType>'
        )
        assert [f.name for f in extract_fields(xml, "CONTACTS")] == ["First"]

    def test_fields_of_malformed_input(self):
        assert extract_fields("<EntityType Name=\"Contacts\"><Property", "Contacts") == []
        assert extract_fields("not xml at all", "Contacts") == []
        assert extract_fields(None, "Contacts") == []
        assert extract_fields(b"<EntityType Name=\"Contacts\"/>", "Contacts") == []

    def test_format_fields(self, metadata_xml):
        text = format_fields("Contacts", extract_fields(metadata_xml, "Contacts"))
        assert text == (
            "Fields in Contacts:\n"
            "- ID: Edm.Decimal NOT NULL\n"
            "- FirstName: Edm.String(100)\n"
            "- Notes: Edm.String"
        )

    def test_format_no_fields(self):
        assert format_fields("Nope", []) == "No fields found for table 'Nope'."


class TestErrorsAndBatch:
    def test_format_error(self):
        error = RemoteError("-1023", "Table not found")
        assert format_error(error) == "Error: OData Error [-1023]: Table not found"

    def test_format_http_error(self):
        assert format_error(RemoteError(401, "Unauthorized")) == "Error: HTTP 401: Unauthorized"

    def test_batch_summary(self):
        results = [
            BatchResult(success=True, status=200, data={"ID": 1}),
            BatchResult(success=False, status=404, error="missing"),
            BatchResult(success=True, status=204),
        ]

        summary = json.loads(format_batch_summary(results))

        assert summary["total"] == 3
        assert summary["successful"] == 2
        assert summary["failed"] == 1
        assert summary["results"][1] == {"success": False, "status": 404, "error": "missing"}
        assert summary["results"][2] == {"success": True, "status": 204}
