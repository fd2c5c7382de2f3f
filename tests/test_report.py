"""Tests for plain-text report formatting."""

from datetime import datetime, timezone

from session_inspect.budget import BudgetConfig, MessageInput, simulate
from session_inspect.models import BudgetEvent, SessionStats, TimelineItem
from session_inspect.parser import parse_jsonl
from session_inspect.report import (
    format_budget_config,
    format_budget_summary,
    format_duration,
    format_event,
    format_matches,
    format_size,
    format_stats_report,
    format_timeline,
    format_timeline_line,
    summarize_item,
    timeline_to_json,
)
from session_inspect.search import MatchIndex
from session_inspect.stats import calculate_stats
from session_inspect.timeline import build_timeline


class TestFormatDuration:
    def test_seconds(self):
        assert format_duration(42000) == '42s'
        assert format_duration(0) == '0s'

    def test_minutes(self):
        assert format_duration(330000) == '5m 30s'

    def test_hours(self):
        assert format_duration(3900000) == '1h 5m'


def test_format_size():
    assert format_size(512) == '512 B'
    assert format_size(2048) == '2.0 KB'
    assert format_size(3 * 1024 * 1024) == '3.0 MB'


class TestFormatStatsReport:
    """Tests for format_stats_report function."""

    def test_report_sections(self, sample_text):
        report = format_stats_report(calculate_stats(parse_jsonl(sample_text)), title='test-ses')

        assert 'Session Statistics: test-ses' in report
        assert 'Duration: 5m 30s' in report
        assert 'Messages: 9' in report
        assert 'Total: 4,390' in report
        assert 'exec: 2' in report
        assert 'Runtime (1): exec' in report
        assert 'File System (1): read' in report

    def test_no_tools(self):
        report = format_stats_report(SessionStats())
        assert 'No tool calls.' in report
        assert 'Tool Groups' not in report


class TestTimelineFormatting:
    """Tests for timeline lines and JSON export."""

    def test_summarize_assistant(self, sample_text):
        items = build_timeline(parse_jsonl(sample_text))
        assert summarize_item(items[5]) == '[thinking] Sure, let me look. [tools: exec]'

    def test_summarize_tool_result(self, sample_text):
        items = build_timeline(parse_jsonl(sample_text))
        assert summarize_item(items[9]).startswith('exec (error) cat: missing.txt')

    def test_summarize_truncates(self):
        item = TimelineItem(id='u', type='user', timestamp=None, content='x' * 200)
        text = summarize_item(item, width=20)
        assert len(text) == 20
        assert text.endswith('...')

    def test_line_without_timestamp_or_tokens(self):
        item = TimelineItem(id='u', type='user', timestamp=None, content='hi')
        line = format_timeline_line(3, item)
        assert '-' * 19 in line
        assert 'tokens' not in line

    def test_line_with_tokens(self):
        item = TimelineItem(
            id='a', type='assistant', timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
            content=[{'type': 'text', 'text': 'ok'}], tokens=1280,
        )
        line = format_timeline_line(0, item)
        assert '2026-01-01 00:00:00' in line
        assert '[1,280 tokens]' in line

    def test_empty_timeline(self):
        assert format_timeline(()) == 'No messages to display.'

    def test_timeline_to_json(self, legacy_text):
        data = timeline_to_json(build_timeline(parse_jsonl(legacy_text)))
        assert data[0]['timestamp'] == '2024-01-01T00:00:00+00:00'
        assert data[2]['parentId'] == 'toolu_1'
        assert data[3]['timestamp'] is None
        assert data[1]['tokens'] == 150


class TestFormatMatches:
    def test_marks_focused_match(self, sample_text):
        items = build_timeline(parse_jsonl(sample_text))
        index = MatchIndex(items, 'toolresult')
        output = format_matches(items, index)

        assert "Matches for 'toolresult': 3 / 3" in output
        marked = [line for line in output.splitlines() if line.startswith('>')]
        assert len(marked) == 1
        assert 'missing.txt' in marked[0]

    def test_no_matches(self, sample_text):
        items = build_timeline(parse_jsonl(sample_text))
        assert format_matches(items, MatchIndex(items, 'zzz')) == "No matches for 'zzz'."


class TestBudgetFormatting:
    def test_format_event(self):
        event = BudgetEvent(
            kind='flush', description='Running silent agent turn',
            emitted_at=datetime(2026, 2, 14, 8, 30, 5, tzinfo=timezone.utc), accumulated_tokens=1,
        )
        assert format_event(event) == '[08:30:05] flush   Running silent agent turn'

    def test_summary_after_compaction(self):
        state = simulate([MessageInput(f"m{i}", 1000) for i in range(184)])
        summary = format_budget_summary(state, BudgetConfig())

        assert 'Current tokens: 25,000' in summary
        assert 'Usage: 12.5%' in summary
        assert 'Messages: 184 (164 compacted)' in summary
        assert 'Compactions: 1' in summary
        assert 'Compaction summary #1' in summary

    def test_format_budget_config(self):
        text = format_budget_config(BudgetConfig())
        assert 'contextWindow: 200000' in text
        assert 'hard threshold: 183616' in text
        assert 'soft threshold: 179616' in text
