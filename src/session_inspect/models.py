"""Data models for session-inspect."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Literal, Optional


RecordType = Literal[
    "message", "tool_result", "custom", "thinking_level_change",
    "model_change", "session_start", "session", "compaction",
]

TimelineItemType = Literal[
    "user", "assistant", "toolResult", "custom", "thinkingLevelChange",
    "modelChange", "sessionStart", "compaction",
]

EventKind = Literal["message", "flush", "compact", "info"]


@dataclass(frozen=True)
class SessionRecord:
    """One decoded line of a session log."""
    type: str
    id: str
    timestamp: Any = None
    parent_id: Optional[str] = None
    message: Optional[dict] = None
    result: Optional[dict] = None
    line_number: int = 0
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict, line_number: int = 0) -> "SessionRecord":
        message = data.get('message')
        result = data.get('result')
        return cls(
            type=str(data.get('type', '')),
            id=str(data.get('id') or ''),
            timestamp=data.get('timestamp'),
            parent_id=data.get('parentId'),
            message=message if isinstance(message, dict) else None,
            result=result if isinstance(result, dict) else None,
            line_number=line_number,
            raw=data,
        )

    @property
    def role(self) -> Optional[str]:
        if self.message is None:
            return None
        return self.message.get('role')

    @property
    def content(self) -> list:
        """Content items of the message, or an empty list."""
        if self.message is None:
            return []
        content = self.message.get('content', [])
        return content if isinstance(content, list) else []


@dataclass(frozen=True)
class ParseWarning:
    """A non-fatal problem found while reading a session log."""
    line_number: int
    reason: str
    line: Optional[str] = None


@dataclass
class ParseResult:
    """Records decoded from a session log, plus warnings for skipped lines."""
    records: list[SessionRecord] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[SessionRecord]:
        return iter(self.records)

    def __getitem__(self, index):
        return self.records[index]


@dataclass(frozen=True)
class TimelineItem:
    """Normalized, render-agnostic event derived from one record.

    ``tokens`` is None when the record carried no usage block, which keeps
    "unknown" distinct from a measured zero.
    """
    id: str
    type: TimelineItemType
    timestamp: Optional[datetime]
    content: Any
    tokens: Optional[int] = None
    parent_id: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)


@dataclass
class SessionStats:
    """Aggregate usage counters for one session."""
    total_messages: int = 0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    tool_calls: int = 0
    duration: int = 0
    tool_usage: dict[str, int] = field(default_factory=dict)


@dataclass
class ToolGroup:
    """Tools of one category seen in a session."""
    name: str
    display_name: str
    tools: list[str]
    count: int


@dataclass
class SessionInfo:
    """A session file found in the sessions directory."""
    id: str
    filename: str
    path: Path
    size: int
    modified: datetime
    created: datetime


@dataclass
class SessionConfig:
    """Runtime metadata for a session, from the sessions.json index."""
    session_key: str
    session_id: str
    model: Optional[str] = None
    provider: Optional[str] = None
    context_tokens: Optional[int] = None
    skills: list[str] = field(default_factory=list)
    tools: list[str] = field(default_factory=list)
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class SessionView:
    """Everything the presentation layer needs for one session."""
    id: str
    path: str
    name: str
    records: list[SessionRecord]
    timeline: tuple[TimelineItem, ...]
    stats: SessionStats
    warnings: list[ParseWarning] = field(default_factory=list)
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    config: Optional[SessionConfig] = None


@dataclass(frozen=True)
class SimulatedMessage:
    """A message replayed through the context budget simulator."""
    index: int
    label: str
    tokens: int
    cumulative_tokens: int
    compacted: bool = False
    source_id: Optional[str] = None


@dataclass(frozen=True)
class CompactionSummary:
    """Fixed-cost pseudo-message standing in for compacted history."""
    id: str
    tokens: int
    compacted_count: int
    compacted_tokens: int
    kept_count: int
    kept_tokens: int

    @property
    def text(self) -> str:
        return (
            f"Compaction summary #{self.id.rsplit('-', 1)[-1]}\n"
            f"Compacted {self.compacted_count} messages ({self.compacted_tokens:,} tokens)\n"
            f"Kept the most recent {self.kept_count} messages"
        )


@dataclass(frozen=True)
class BudgetEvent:
    """One entry of the simulator's event log."""
    kind: EventKind
    description: str
    emitted_at: datetime
    accumulated_tokens: int
