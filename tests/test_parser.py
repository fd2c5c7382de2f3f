"""Tests for JSONL parser module."""

import pytest
from datetime import datetime, timezone

from session_inspect.parser import (
    extract_text_content,
    first_text,
    iter_records,
    iter_tool_calls,
    parse_jsonl,
    parse_jsonl_file,
    parse_timestamp,
    tool_call_arguments,
)


class TestParseJsonl:
    """Tests for parse_jsonl function."""

    def test_parse_valid_jsonl(self, sample_text):
        """Parse sample_session.jsonl correctly."""
        result = parse_jsonl(sample_text)

        assert len(result) == 13
        assert result.warnings == []
        assert result[0].type == 'session'
        assert result[0].id == 'test-session-001'

    def test_preserves_input_order(self, sample_text):
        """Records come back in line order."""
        ids = [r.id for r in parse_jsonl(sample_text)]
        assert ids[:5] == ['test-session-001', 'mc1', 'tl1', 'cu1', 'u1']
        assert ids[-1] == 'a4'

    def test_keeps_raw_record(self, sample_text):
        """Each record keeps the decoded line."""
        record = parse_jsonl(sample_text)[5]
        assert record.raw['message']['stopReason'] == 'toolUse'
        assert record.line_number == 6

    def test_parse_malformed_skips_bad_lines(self, malformed_path):
        """Handle malformed.jsonl gracefully by skipping bad lines."""
        result = parse_jsonl(malformed_path.read_text())

        assert [r.id for r in result] == ['malformed-session', 'm2', 'm3', 'x1']
        assert [w.line_number for w in result.warnings] == [2, 5, 6]
        assert result.warnings[1].line == 'not json at all'
        assert 'not a JSON object' in result.warnings[2].reason

    def test_record_count_bounded_by_non_blank_lines(self, malformed_path, sample_text):
        """Record count never exceeds non-blank lines; equal when nothing is malformed."""
        malformed = malformed_path.read_text()
        non_blank = [line for line in malformed.split('\n') if line.strip()]
        assert len(parse_jsonl(malformed)) < len(non_blank)

        non_blank = [line for line in sample_text.split('\n') if line.strip()]
        assert len(parse_jsonl(sample_text)) == len(non_blank)

    def test_empty_and_whitespace_input(self):
        """Blank input yields no records and no warnings."""
        result = parse_jsonl("\n   \n\t\n")
        assert len(result) == 0
        assert result.warnings == []

    def test_mixed_schema_versions(self, sample_text, legacy_text):
        """Logs mixing both schema generations parse without warnings."""
        result = parse_jsonl(legacy_text + sample_text)
        assert len(result) == 18
        assert result.warnings == []

    def test_null_id_becomes_empty(self):
        result = parse_jsonl('{"type":"custom","id":null,"customType":"x"}')
        assert result[0].id == ''

    def test_line_separator_inside_string(self):
        """U+2028 inside a JSON string does not split the line."""
        text = '{"type":"message","id":"1","message":{"role":"user","content":[{"type":"text","text":"a\u2028b"}]}}'
        result = parse_jsonl(text)
        assert len(result) == 1
        assert first_text(result[0].content) == 'a\u2028b'


class TestParseJsonlFile:
    """Tests for streaming file parsing."""

    def test_streaming(self, sample_session_path):
        """Verify streaming yields records lazily."""
        gen = parse_jsonl_file(sample_session_path)
        first = next(gen)
        assert first.type == 'session'

    def test_collects_warnings(self, malformed_path):
        warnings = []
        records = list(parse_jsonl_file(malformed_path, warnings))
        assert len(records) == 4
        assert len(warnings) == 3

    def test_iter_records_without_warning_list(self):
        records = list(iter_records(['{"type":"custom","id":"c"}', '{oops']))
        assert [r.id for r in records] == ['c']


class TestParseTimestamp:
    """Tests for parse_timestamp function."""

    def test_iso_with_z(self):
        assert parse_timestamp('2024-01-01T00:00:00Z') == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_iso_with_millis(self):
        ts = parse_timestamp('2026-01-15T09:00:00.100Z')
        assert ts.microsecond == 100000

    def test_naive_iso_is_utc(self):
        assert parse_timestamp('2024-01-01T12:00:00').tzinfo == timezone.utc

    def test_unix_millis(self):
        assert parse_timestamp(1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize('value', ['not-a-date', '', None, True, {}, []])
    def test_invalid(self, value):
        assert parse_timestamp(value) is None


class TestContentHelpers:
    """Tests for content array helpers."""

    def test_first_text(self):
        content = [{'type': 'thinking', 'thinking': 'x'}, {'type': 'text', 'text': 'one'}, {'type': 'text', 'text': 'two'}]
        assert first_text(content) == 'one'
        assert first_text([]) == ''

    def test_extract_text_content(self):
        content = [{'type': 'text', 'text': 'one'}, {'type': 'toolCall', 'name': 'exec'}, {'type': 'text', 'text': 'two'}]
        assert extract_text_content(content) == 'one\ntwo'

    def test_tool_calls_both_generations(self):
        content = [
            {'type': 'toolCall', 'id': 'a', 'name': 'exec', 'arguments': {'command': 'ls'}},
            {'type': 'text', 'text': 'between'},
            {'type': 'tool_use', 'id': 'b', 'name': 'read', 'input': {'path': 'x'}},
        ]
        calls = list(iter_tool_calls(content))
        assert [c['name'] for c in calls] == ['exec', 'read']
        assert tool_call_arguments(calls[0]) == {'command': 'ls'}
        assert tool_call_arguments(calls[1]) == {'path': 'x'}
        assert tool_call_arguments({'type': 'toolCall'}) == {}
