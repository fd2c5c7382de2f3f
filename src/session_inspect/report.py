"""Plain-text formatting of session data for the CLI."""

from typing import Optional
import json

from .budget import BudgetConfig, BudgetState
from .models import BudgetEvent, SessionInfo, SessionStats, TimelineItem
from .parser import iter_tool_calls
from .search import MatchIndex
from .stats import top_tools
from .toolgroups import group_tools


def format_duration(ms: int) -> str:
    """Format a duration in milliseconds as ``1h 5m``, ``3m 20s`` or ``42s``."""
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / 1024 / 1024:.1f} MB"
    if size >= 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size} B"


def format_sessions_list(sessions: list[SessionInfo]) -> str:
    lines = [f"Sessions: {len(sessions)}", ""]
    for info in sessions:
        modified = info.modified.strftime('%Y-%m-%d %H:%M')
        lines.append(f"  {info.id}  {format_size(info.size):>9}  {modified}")
    return '\n'.join(lines)


def format_stats_report(stats: SessionStats, title: Optional[str] = None) -> str:
    """
    Format session statistics as a human-readable report.
    """
    lines = []

    lines.append(f"Session Statistics{f': {title}' if title else ''}")
    lines.append("=" * 50)
    lines.append(f"Duration: {format_duration(stats.duration)}")
    lines.append(f"Messages: {stats.total_messages}")
    lines.append(f"Tool calls: {stats.tool_calls}")
    lines.append("")

    lines.append("Token Usage")
    lines.append("-" * 30)
    lines.append(f"  Total: {stats.total_tokens:,}")
    lines.append(f"  Input: {stats.input_tokens:,}")
    lines.append(f"  Output: {stats.output_tokens:,}")
    lines.append("")

    if not stats.tool_usage:
        lines.append("No tool calls.")
        return '\n'.join(lines)

    lines.append("Tool Usage")
    lines.append("-" * 30)
    for name, count in top_tools(stats):
        lines.append(f"  {name}: {count}")
    lines.append("")

    lines.append("Tool Groups")
    lines.append("-" * 30)
    for group in group_tools(stats.tool_usage):
        lines.append(f"  {group.display_name} ({group.count}): {', '.join(group.tools)}")

    return '\n'.join(lines)


def summarize_item(item: TimelineItem, width: int = 80) -> str:
    """One-line description of a timeline item's content."""
    content = item.content
    if item.type == 'user':
        text = content
    elif item.type == 'assistant':
        parts = []
        for block in content:
            if not isinstance(block, dict):
                continue
            kind = block.get('type')
            if kind == 'text':
                parts.append(block.get('text', ''))
            elif kind == 'thinking':
                parts.append('[thinking]')
        calls = [str(c.get('name')) for c in iter_tool_calls(content)]
        if calls:
            parts.append(f"[tools: {', '.join(calls)}]")
        text = ' '.join(p for p in parts if p)
    elif item.type == 'toolResult':
        name = content.get('toolName') or content.get('tool_use_id') or ''
        status = content.get('status') or ''
        result = content.get('content')
        if not isinstance(result, str):
            result = json.dumps(result, default=str)
        text = f"{name} ({status}) {result}" if status else f"{name} {result}"
    else:
        text = json.dumps(content, default=str)

    text = ' '.join(str(text).split())
    if len(text) > width:
        text = text[:width - 3] + '...'
    return text


def format_timeline_line(index: int, item: TimelineItem, marker: str = ' ') -> str:
    time_str = item.timestamp.strftime('%Y-%m-%d %H:%M:%S') if item.timestamp else '-' * 19
    tokens = f" [{item.tokens:,} tokens]" if item.tokens is not None else ''
    return f"{marker}{index:>4}  {time_str}  {item.type:<19} {summarize_item(item)}{tokens}"


def format_timeline(items: tuple[TimelineItem, ...]) -> str:
    if not items:
        return "No messages to display."
    return '\n'.join(format_timeline_line(i, item) for i, item in enumerate(items))


def timeline_to_json(items: tuple[TimelineItem, ...]) -> list[dict]:
    return [
        {
            'id': item.id,
            'type': item.type,
            'timestamp': item.timestamp.isoformat() if item.timestamp else None,
            'content': item.content,
            'tokens': item.tokens,
            'parentId': item.parent_id,
        }
        for item in items
    ]


def format_matches(items: tuple[TimelineItem, ...], index: MatchIndex) -> str:
    if not index.matches:
        return f"No matches for {index.query!r}."
    lines = [f"Matches for {index.query!r}: {index.label()}", ""]
    for position in index.matches:
        marker = '>' if position == index.current else ' '
        lines.append(format_timeline_line(position, items[position], marker))
    return '\n'.join(lines)


def format_event(event: BudgetEvent) -> str:
    time_str = event.emitted_at.strftime('%H:%M:%S')
    return f"[{time_str}] {event.kind:<7} {event.description}"


def format_budget_summary(state: BudgetState, config: BudgetConfig) -> str:
    lines = []
    lines.append("Simulation Summary")
    lines.append("=" * 50)
    lines.append(f"Current tokens: {state.accumulated_tokens:,}")
    lines.append(f"Context window: {config.context_window:,}")
    lines.append(f"Usage: {state.usage_percent(config):.1f}%")
    lines.append(f"Soft threshold: {config.soft_threshold:,}")
    lines.append(f"Hard threshold: {config.hard_threshold:,}")
    lines.append(f"Messages: {len(state.messages)} ({sum(1 for m in state.messages if m.compacted)} compacted)")
    lines.append(f"Memory flushes: {state.flush_count}")
    lines.append(f"Compactions: {state.compaction_count}")
    if state.summaries:
        lines.append("")
        lines.append(state.summaries[-1].text)
    return '\n'.join(lines)


def format_budget_config(config: BudgetConfig) -> str:
    lines = [
        f"contextWindow: {config.context_window}",
        f"reserveTokens: {config.reserve_tokens}",
        f"keepRecentTokens: {config.keep_recent_tokens}",
        f"softThresholdTokens: {config.soft_threshold_tokens}",
        f"hard threshold: {config.hard_threshold}",
        f"soft threshold: {config.soft_threshold}",
    ]
    return '\n'.join(lines)
