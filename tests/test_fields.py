"""Flexible field decoding (text, identifiers, timestamps) and model round trips."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from treasuredata.core.domain.fields import (
    FlexibleText,
    compact_json,
    decode_flexible_int,
    decode_flexible_text,
    loads,
    parse_timestamp,
)
from treasuredata.core.domain.models import Job, JobStatus, Table
from treasuredata.core.domain.workflow import Workflow
from treasuredata.core.errors import MalformedFieldError, MalformedTimestampError


class TestFlexibleText:
    def test_null_is_absent(self):
        text = FlexibleText.decode(None)
        assert text.value is None
        assert not text.is_present
        assert text.as_text() == ""

    def test_string_kept_verbatim(self):
        assert decode_flexible_text("SELECT 1") == "SELECT 1"
        assert decode_flexible_text("") == ""

    def test_numbers_become_decimal_text(self):
        assert decode_flexible_text(42) == "42"
        assert decode_flexible_text(loads("1.50")) == "1.50"

    def test_object_becomes_compact_json(self):
        assert decode_flexible_text({"sql": "SELECT 1"}) == '{"sql":"SELECT 1"}'

    @pytest.mark.parametrize("raw", [True, [1, 2]])
    def test_boolean_and_array_are_rejected(self, raw):
        with pytest.raises(MalformedFieldError):
            decode_flexible_text(raw, "query")

    def test_equality_with_plain_strings(self):
        assert FlexibleText("abc") == "abc"
        assert FlexibleText(None) == None  # noqa: E711

    def test_absent_encodes_to_null(self):
        assert FlexibleText.decode(None).encode() is None
        assert json.loads(Job(job_id="1").model_dump_json())["query"] is None

    def test_integer_reencodes_as_string(self):
        assert FlexibleText.decode(42).encode() == "42"
        dumped = json.loads(Job.model_validate({"job_id": "1", "query": 42}).model_dump_json())
        assert dumped["query"] == "42"

    @pytest.mark.parametrize("raw", [None, "SELECT 1", ""])
    def test_decode_of_encode_is_identity(self, raw):
        text = FlexibleText.decode(raw)
        assert FlexibleText.decode(text.encode()) == text

        job = Job.model_validate({"job_id": "1", "query": raw})
        assert Job.model_validate_json(job.model_dump_json()).query == text

    def test_object_text_decodes_again_to_itself(self):
        first = decode_flexible_text(loads('{"sql":"SELECT 1","limit":10,"ratio":1.50}'))
        assert first == '{"sql":"SELECT 1","limit":10,"ratio":1.50}'
        assert decode_flexible_text(loads(first)) == first
        assert decode_flexible_text(first) == first

    def test_object_numbers_keep_their_literal(self):
        text = decode_flexible_text(loads('{"x":1e400,"y":1.50,"z":[0.10,{"w":2.0}]}'))
        assert text == '{"x":1e400,"y":1.50,"z":[0.10,{"w":2.0}]}'
        assert json.loads(text)["y"] == 1.5

    def test_compact_json_of_plain_values(self):
        assert compact_json({"a": [1, "é", None, True]}) == '{"a":[1,"é",null,true]}'


class TestFlexibleInt:
    @pytest.mark.parametrize("raw, expected", [(5, 5), ("5", 5), ("", None), ("null", None), (None, None), (3.0, 3)])
    def test_accepted_shapes(self, raw, expected):
        assert decode_flexible_int(raw) == expected

    def test_non_numeric_string(self):
        with pytest.raises(MalformedFieldError):
            decode_flexible_int("abc", "last_log_timestamp")


class TestTimestamps:
    def test_epoch_and_rfc3339_agree(self):
        expected = datetime(2025, 1, 10, 17, 5, 37, tzinfo=timezone.utc)
        assert parse_timestamp(1736528737) == expected
        assert parse_timestamp("1736528737") == expected
        assert parse_timestamp("2025-01-10T17:05:37Z") == expected

    def test_fractional_epoch_is_truncated(self):
        parsed = parse_timestamp(loads("1736528737.9"))
        assert parsed == datetime(2025, 1, 10, 17, 5, 37, tzinfo=timezone.utc)
        assert parsed.microsecond == 0

    def test_legacy_utc_form(self):
        assert parse_timestamp("2020-06-11 10:25:10 UTC") == datetime(2020, 6, 11, 10, 25, 10, tzinfo=timezone.utc)

    def test_fraction_and_offset(self):
        parsed = parse_timestamp("2025-01-10T17:05:37.123+09:00")
        assert parsed.microsecond == 123000
        assert parsed.utcoffset() == timedelta(hours=9)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_values(self, raw):
        assert parse_timestamp(raw) is None

    @pytest.mark.parametrize("raw", ["yesterday", True, "2025-13-45T00:00:00Z"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedTimestampError):
            parse_timestamp(raw, "created_at")


class TestModels:
    def test_job_with_object_query_and_numeric_id(self):
        job = Job.model_validate(
            {
                "job_id": 12345,
                "query": {"sql": "SELECT 1"},
                "status": "success",
                "created_at": "2020-06-11 10:25:10 UTC",
                "unknown_field": "ignored",
            }
        )
        assert job.job_id == "12345"
        assert job.query == '{"sql":"SELECT 1"}'
        assert job.created_at == datetime(2020, 6, 11, 10, 25, 10, tzinfo=timezone.utc)
        assert "unknown_field" not in job.model_dump()

        dumped = job.model_dump(mode="json")
        assert dumped["query"] == '{"sql":"SELECT 1"}'
        assert dumped["created_at"] == "2020-06-11T10:25:10+00:00"

    @pytest.mark.parametrize("literal", ["1.50", "12345678901234567890.5", "1e400"])
    def test_model_from_raw_json_keeps_number_text(self, literal):
        job = Job.model_validate_json(f'{{"job_id":"1","query":{literal}}}')
        assert job.query == literal
        assert json.loads(job.model_dump_json())["query"] == literal

    def test_model_from_raw_json_bytes(self):
        status = JobStatus.model_validate_json(b'{"job_id":99,"status":"success","start_at":1736528737}')
        assert status.job_id == "99"
        assert status.start_at.year == 2025

    def test_job_with_boolean_query_fails(self):
        with pytest.raises(MalformedFieldError):
            Job.model_validate({"job_id": "1", "query": True})

    def test_job_status_epoch_timestamps(self):
        status = JobStatus.model_validate({"job_id": "7", "status": "running", "start_at": 1736528737})
        assert status.start_at.year == 2025

    def test_table_flexible_last_log_timestamp(self):
        table = Table.model_validate({"name": "www_access", "last_log_timestamp": "1736528737"})
        assert table.last_log_timestamp == 1736528737

    def test_workflow_identifier_as_number(self):
        wf = Workflow.model_validate({"id": 42, "name": "daily", "project": {"id": "7", "name": "etl"}})
        assert wf.id == "42"
        assert wf.project.id == "7"
