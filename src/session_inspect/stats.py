"""Usage statistics over session records."""

from datetime import datetime
from typing import Iterable, Optional

from .models import SessionRecord, SessionStats
from .parser import iter_tool_calls, parse_timestamp
from .usage import resolve_usage


class StatsAccumulator:
    """
    Left-to-right reduction of records into SessionStats.

    Works on raw records rather than the timeline so that assistant content
    is counted exactly once. Every counter only grows as records are added,
    so the accumulator can follow a log that is still being written.
    """

    def __init__(self):
        self._stats = SessionStats()
        self._first: Optional[datetime] = None
        self._last: Optional[datetime] = None
        self._valid_timestamps = 0

    def add(self, record: SessionRecord) -> None:
        stats = self._stats

        timestamp = parse_timestamp(record.timestamp)
        if timestamp is not None:
            self._valid_timestamps += 1
            if self._first is None or timestamp < self._first:
                self._first = timestamp
            if self._last is None or timestamp > self._last:
                self._last = timestamp

        if record.type != 'message':
            return

        stats.total_messages += 1

        if record.role != 'assistant':
            return

        usage = resolve_usage(record.message.get('usage'))
        if usage is not None:
            stats.input_tokens += usage.input
            stats.output_tokens += usage.output
            stats.total_tokens += usage.total

        for call in iter_tool_calls(record.content):
            stats.tool_calls += 1
            name = call.get('name')
            if not isinstance(name, str):
                name = str(name)
            stats.tool_usage[name] = stats.tool_usage.get(name, 0) + 1

    def extend(self, records: Iterable[SessionRecord]) -> "StatsAccumulator":
        for record in records:
            self.add(record)
        return self

    @property
    def first_timestamp(self) -> Optional[datetime]:
        return self._first

    @property
    def last_timestamp(self) -> Optional[datetime]:
        return self._last

    @property
    def stats(self) -> SessionStats:
        """Snapshot of the counters so far."""
        duration = 0
        if self._valid_timestamps > 1:
            duration = int((self._last - self._first).total_seconds() * 1000)
        return SessionStats(
            total_messages=self._stats.total_messages,
            total_tokens=self._stats.total_tokens,
            input_tokens=self._stats.input_tokens,
            output_tokens=self._stats.output_tokens,
            tool_calls=self._stats.tool_calls,
            duration=duration,
            tool_usage=dict(self._stats.tool_usage),
        )


def calculate_stats(records: Iterable[SessionRecord]) -> SessionStats:
    """
    Calculate statistics for a session.

    Returns SessionStats with:
    - total_messages: all ``message`` records, any role
    - input_tokens / output_tokens / total_tokens: from assistant usage blocks
    - tool_calls / tool_usage: tool-call items in assistant messages, by name
    - duration: milliseconds between earliest and latest valid timestamp
    """
    return StatsAccumulator().extend(records).stats


def top_tools(stats: SessionStats, limit: Optional[int] = None) -> list[tuple[str, int]]:
    """Tool usage sorted by count (descending), then name."""
    ranked = sorted(stats.tool_usage.items(), key=lambda x: (-x[1], x[0]))
    return ranked[:limit] if limit is not None else ranked
