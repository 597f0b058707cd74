# ==============================================
# Tests for option validation and dry runs
# ==============================================

import pytest

from cdcrow.core import ComputedColumn, Rule
from cdcrow.validation import dry_run, is_source_valid, validate_with_warnings


SPECIFIED = {"mode": "specified", "field-paths": "$.a,$.b", "field-names": "a,b"}


class TestIsSourceValid:
    def test_valid(self):
        assert is_source_valid(SPECIFIED) is True
        assert is_source_valid({}) is True

    @pytest.mark.parametrize("options", [
        {"mode": "specified", "field-paths": "$.a,$.b", "field-names": "a"},
        {"mode": "streaming"},
        {"computed-columns": "y=explode(ts)"},
    ])
    def test_invalid(self, options):
        assert is_source_valid(options) is False


class TestValidateWithWarnings:
    def test_clean(self):
        report = validate_with_warnings(SPECIFIED)
        assert report == {"ok": True, "errors": [], "warnings": []}

    def test_configuration_error(self):
        report = validate_with_warnings({"mode": "nope"})
        assert report["ok"] is False
        assert "nope" in report["errors"][0]

    def test_unknown_keys(self):
        report = validate_with_warnings({"mode": "dynamic", "fields": "a"})
        assert report["ok"] is True
        assert "fields" in report["warnings"][0]

    def test_computed_reference_outside_names(self):
        column = ComputedColumn.of("yr", "created", Rule().year())
        report = validate_with_warnings(SPECIFIED, [column])
        assert report["ok"] is True
        assert any("'created'" in w for w in report["warnings"])

    def test_computed_replaces_field(self):
        column = ComputedColumn.of("a", "a", Rule().upper())
        report = validate_with_warnings(SPECIFIED, [column])
        assert any("replaces" in w for w in report["warnings"])

    def test_paths_ignored_in_dynamic_mode(self):
        report = validate_with_warnings({"mode": "dynamic", "field-paths": "$.a"})
        assert any("ignored in DYNAMIC mode" in w for w in report["warnings"])

    def test_static_case_collision(self):
        options = {"mode": "specified", "field-paths": "$.a,$.b", "field-names": "Id,id", "case-sensitive": "false"}
        report = validate_with_warnings(options)
        assert report["ok"] is False
        assert "'id'" in report["errors"][0]


class TestDryRun:
    def test_configuration_stage(self):
        result = dry_run({"mode": "nope"}, [])
        assert result["ok"] is False
        assert result["stage"] == "configuration"

    def test_reports_rows_and_failures(self, make_event):
        sample = [
            make_event("insert", {"a": 1}),
            {"operationType": "drop", "ns": {"db": "shop", "coll": "orders"}},
            make_event("delete"),
        ]
        result = dry_run({}, sample)
        assert result["ok"] is False
        assert result["stage"] == "extraction"
        assert [r["kind"] for r in result["rows"]] == ["INSERT", "DELETE"]
        assert result["rows"][0]["table"] == "shop.orders"
        assert result["failures"] == [
            {"index": 1, "error_type": "UnsupportedOperationError", "error": "Unknown record operation: drop"}
        ]
        assert result["field_types"] == {"_id": "STRING", "a": "STRING"}
        assert result["primary_keys"] == ["_id"]
