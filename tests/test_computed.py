# ==============================================
# Tests for computed columns and built-in operations
# ==============================================

import logging

import pytest

from cdcrow.core import (
    ComputedColumn,
    ConfigurationError,
    DataType,
    ExtractorConfig,
    Rule,
    RowExtractor,
    get_registry,
)
from cdcrow.core.computed import java_pattern_to_strftime


TS = "2024-07-01T12:34:56Z"


@pytest.fixture
def evaluate(make_document):
    """Evaluate one rule against a single source value through a DYNAMIC extractor."""
    def run(rule, value, *, config=None):
        extractor = RowExtractor(computed_columns=[ComputedColumn.of("out", "src", rule)], config=config)
        fields = {} if value is None else {"src": value}
        return extractor.extract_row(make_document(fields))["out"]
    return run


# ==============================================
# Date parts
# ==============================================

class TestDateParts:
    @pytest.mark.parametrize("part, expected", [
        ("year", "2024"), ("month", "7"), ("day", "1"),
        ("hour", "12"), ("minute", "34"), ("second", "56"),
    ])
    def test_iso_text(self, evaluate, part, expected):
        assert evaluate(getattr(Rule(), part)(), TS) == expected

    def test_extended_json_date(self, evaluate):
        assert evaluate(Rule().hour(), {"$date": 1719837296000}) == "12"

    def test_extended_json_number_long(self, evaluate):
        assert evaluate(Rule().year(), {"$date": {"$numberLong": "1719837296000"}}) == "2024"

    def test_epoch_millis(self, evaluate):
        assert evaluate(Rule().minute(), 1719837296000) == "34"

    def test_explicit_input_format(self, evaluate):
        assert evaluate(Rule().day("%d/%m/%Y"), "05/03/2021") == "5"

    def test_unparseable_is_null(self, evaluate):
        assert evaluate(Rule().year(), "not a date") is None

    @pytest.mark.parametrize("word", ["now", "today", "Tomorrow"])
    def test_relative_words_are_not_dates(self, evaluate, word):
        assert evaluate(Rule().year(), word) is None

    def test_declared_as_int(self):
        assert ComputedColumn.of("y", "ts", Rule().year()).column_type is DataType.INT


# ==============================================
# String operations
# ==============================================

class TestStringOperations:
    def test_date_format(self, evaluate):
        assert evaluate(Rule().date_format("%Y-%m"), TS) == "2024-07"

    def test_substring(self, evaluate):
        assert evaluate(Rule().substring(0, 3), "ABCDEF") == "ABC"
        assert evaluate(Rule().substring(2), "ABCDEF") == "CDEF"

    def test_substring_start_out_of_range_is_null(self, evaluate):
        assert evaluate(Rule().substring(10), "ABC") is None

    @pytest.mark.parametrize("value, width, expected", [
        ("1234", 100, "1200"),
        ("-7", 5, "-10"),
        ("12.345", 10, "12.340"),
        ("abcdef", 3, "abc"),
    ])
    def test_truncate(self, evaluate, value, width, expected):
        assert evaluate(Rule().truncate(width), value) == expected

    def test_upper_lower_trim(self, evaluate):
        assert evaluate(Rule().upper(), "gold") == "GOLD"
        assert evaluate(Rule().lower(), "GOLD") == "gold"
        assert evaluate(Rule().trim(), "  gold ") == "gold"

    def test_const(self, evaluate):
        assert evaluate(Rule().const("web"), "anything") == "web"

    def test_absent_value_passes_through(self, evaluate):
        assert evaluate(Rule().upper(), None) is None


# ==============================================
# Tail operations and error policy
# ==============================================

class TestTailOperations:
    def test_default_for_absent_value(self, evaluate):
        assert evaluate(Rule().upper().default("n/a"), None) == "n/a"

    def test_cast(self, evaluate):
        assert evaluate(Rule().trim().cast("float"), " 3 ") == "3.0"
        assert evaluate(Rule().lower().cast("bool"), "YES") == "true"

    def test_failed_cast_is_null(self, evaluate):
        assert evaluate(Rule().trim().cast("int"), "abc") is None

    def test_on_error_default(self, evaluate):
        assert evaluate(Rule().substring(10).default("-").on_error("default"), "ABC") == "-"

    def test_on_error_raise(self, evaluate):
        with pytest.raises(ValueError, match="out of range"):
            evaluate(Rule().substring(10).on_error("raise"), "ABC")

    def test_on_error_warn(self, evaluate, caplog):
        with caplog.at_level(logging.WARNING, logger="cdcrow.core.engine"):
            assert evaluate(Rule().substring(10).on_error("warn"), "ABC") is None
        assert "Rule error for column 'out'" in caplog.text

    def test_extractor_wide_default_policy(self, evaluate):
        with pytest.raises(ValueError):
            evaluate(Rule().substring(10), "ABC", config=ExtractorConfig(default_on_error="raise"))

    def test_rule_errors_are_counted(self, evaluate):
        counts = {}
        config = ExtractorConfig(metrics_increment=lambda name, n: counts.__setitem__(name, counts.get(name, 0) + n))
        evaluate(Rule().substring(10), "ABC", config=config)
        assert counts["extractor.rule_errors"] == 1


# ==============================================
# User-defined functions
# ==============================================

class TestUdf:
    def test_udf_with_arguments(self, evaluate, udfs):
        udfs("mask", lambda value, keep: value[: int(keep)] + "*" * (len(value) - int(keep)))
        assert evaluate(Rule().udf("mask", 2), "secret") == "se****"

    def test_udf_receives_none_for_absent_field(self, evaluate, udfs):
        udfs("present", lambda value: value is not None)
        assert evaluate(Rule().udf("present"), None) == "false"

    def test_unknown_udf_is_null(self, evaluate):
        assert evaluate(Rule().udf("does_not_exist"), "x") is None

    def test_udf_exception_propagates_with_raise(self, evaluate, udfs):
        udfs("boom", lambda value: 1 / 0)
        with pytest.raises(ZeroDivisionError):
            evaluate(Rule().udf("boom").on_error("raise"), "x")

    def test_custom_operation(self, make_document):
        registry = get_registry()
        registry.register("reverse", lambda rule, value, tail: tail(value[::-1] if value else None, rule))
        column = ComputedColumn("rev", "src", {"reverse": {}})
        row = RowExtractor(computed_columns=[column]).extract_row(make_document({"src": "abc"}))
        assert row["rev"] == "cba"


# ==============================================
# Descriptors and expressions
# ==============================================

class TestComputedColumnDescriptor:
    def test_rule_is_copied_on_construction(self, make_document):
        rule = {"upper": {}}
        column = ComputedColumn.of("u", "a", rule)
        extractor = RowExtractor(computed_columns=[column])

        rule.pop("upper")
        rule["lower"] = {}

        assert column.rule == {"upper": {}}
        assert extractor.extract_row(make_document({"a": "Ab"}))["u"] == "AB"

    def test_of_accepts_rule_builder_and_dict(self):
        a = ComputedColumn.of("u", "name", Rule().upper())
        b = ComputedColumn.of("u", "name", {"upper": {}})
        assert a == b

    def test_cast_sets_type(self):
        assert ComputedColumn.of("n", "a", Rule().trim().cast("int")).column_type is DataType.BIGINT

    def test_explicit_type_wins(self):
        column = ComputedColumn.of("ts", "a", Rule().trim(), "timestamp")
        assert column.column_type is DataType.TIMESTAMP

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            ComputedColumn.of("x", "a", Rule().trim(), "uuid")

    @pytest.mark.parametrize("name, ref, rule", [("", "a", {}), ("x", "", {}), ("x", "a", [])])
    def test_invalid_descriptor(self, name, ref, rule):
        with pytest.raises(ConfigurationError):
            ComputedColumn(name, ref, rule)

    def test_parse_date_part(self):
        column = ComputedColumn.parse("order_year = year(created_at)")
        assert column.name == "order_year"
        assert column.field_reference == "created_at"
        assert column.rule == {"year": {}}
        assert column.column_type is DataType.INT

    def test_parse_date_format(self):
        column = ComputedColumn.parse("part=date_format(created_at,yyyy-MM-dd HH:mm)")
        assert column.rule == {"date_format": {"fmt": "%Y-%m-%d %H:%M"}}
        assert column.column_type is DataType.STRING

    def test_parse_substring_and_truncate(self):
        assert ComputedColumn.parse("p=substring(code,1,3)").rule == {"substring": {"start": 1, "end": 3}}
        assert ComputedColumn.parse("b=truncate(amount,100)").rule == {"truncate": {"width": 100}}

    def test_parse_udf(self, udfs):
        udfs("mask", lambda value, keep: value)
        column = ComputedColumn.parse("m=mask(email,2)")
        assert column.rule == {"udf": {"name": "mask", "args": ["2"]}}

    @pytest.mark.parametrize("expression", [
        "nonsense",
        "x=explode(a)",
        "x=year()",
        "x=year(a,b)",
        "x=substring(a)",
        "x=truncate(a,wide)",
        "x=date_format(a)",
        "x=date_format(a,dd MMM yyyy)",
        "x=date_format(a,HH:mm:ss.SSS)",
    ])
    def test_parse_invalid(self, expression):
        with pytest.raises(ConfigurationError):
            ComputedColumn.parse(expression)

    @pytest.mark.parametrize("pattern, expected", [
        ("yyyy-MM-dd", "%Y-%m-%d"),
        ("yyyyMMddHH", "%Y%m%d%H"),
        ("HH:mm:ss", "%H:%M:%S"),
        ("yyyy-MM-dd'T'HH:mm:ss", "%Y-%m-%dT%H:%M:%S"),
        ("dd''yy", "%d'%y"),
        ("%Y", "%Y"),
    ])
    def test_java_patterns(self, pattern, expected):
        assert java_pattern_to_strftime(pattern) == expected

    @pytest.mark.parametrize("pattern", ["HH:mm:ss.SSS", "dd MMM yyyy", "EEE", "yyyy'T"])
    def test_untranslatable_java_patterns(self, pattern):
        with pytest.raises(ValueError):
            java_pattern_to_strftime(pattern)


class TestRuleBuilder:
    def test_build_returns_copy(self):
        rule = Rule().const({"a": 1})
        built = rule.build()
        built["const"]["a"] = 2
        assert rule.build() == {"const": {"a": 1}}

    @pytest.mark.parametrize("call", [
        lambda: Rule().substring(-1),
        lambda: Rule().truncate(0),
        lambda: Rule().cast("date"),
        lambda: Rule().on_error("ignore"),
        lambda: Rule().udf(""),
        lambda: Rule().year().upper(),
        lambda: Rule().trim().default("x").substring(1),
    ])
    def test_invalid_arguments(self, call):
        with pytest.raises(ValueError):
            call()
