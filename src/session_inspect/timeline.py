"""Normalization of session records into a unified timeline."""

from typing import Iterable, Optional
import logging

from .models import ParseWarning, SessionRecord, TimelineItem
from .parser import first_text, iter_tool_calls, parse_timestamp
from .usage import usage_total

logger = logging.getLogger(__name__)

DETAIL_KEYS = ('exitCode', 'durationMs', 'status')


def _user_item(record: SessionRecord) -> TimelineItem:
    # User turns are not billed, so tokens stay unset
    return TimelineItem(
        id=record.id,
        type='user',
        timestamp=parse_timestamp(record.timestamp),
        content=first_text(record.content),
        raw=record.raw,
    )


def _assistant_item(record: SessionRecord) -> TimelineItem:
    return TimelineItem(
        id=record.id,
        type='assistant',
        timestamp=parse_timestamp(record.timestamp),
        content=list(record.content),
        tokens=usage_total(record.message.get('usage')),
        raw=record.raw,
    )


def _execution_details(details) -> Optional[dict]:
    if not isinstance(details, dict):
        return None
    picked = {key: details[key] for key in DETAIL_KEYS if key in details}
    return picked or None


def _tool_result_message_item(record: SessionRecord) -> TimelineItem:
    msg = record.message
    tool_call_id = msg.get('toolCallId')
    return TimelineItem(
        id=record.id,
        type='toolResult',
        timestamp=parse_timestamp(record.timestamp),
        content={
            'tool_use_id': tool_call_id,
            'toolName': msg.get('toolName'),
            'content': first_text(record.content),
            'status': 'error' if msg.get('isError') else 'success',
            'details': _execution_details(msg.get('details')),
        },
        parent_id=tool_call_id,
        raw=record.raw,
    )


def _legacy_tool_result_item(record: SessionRecord) -> TimelineItem:
    return TimelineItem(
        id=record.id,
        type='toolResult',
        timestamp=parse_timestamp(record.timestamp),
        content=dict(record.result),
        parent_id=record.result.get('tool_use_id'),
        raw=record.raw,
    )


def _control_item(record: SessionRecord, item_type: str, keys: tuple) -> TimelineItem:
    return TimelineItem(
        id=record.id,
        type=item_type,
        timestamp=parse_timestamp(record.timestamp),
        content={key: record.raw.get(key) for key in keys},
        raw=record.raw,
    )


def _session_start_item(record: SessionRecord) -> TimelineItem:
    # The runtime's own header record ("session") carries the session id as its id
    session_id = record.raw.get('sessionId', record.id)
    content = {'sessionId': session_id}
    for key in ('version', 'cwd'):
        if key in record.raw:
            content[key] = record.raw[key]
    return TimelineItem(
        id=record.id,
        type='sessionStart',
        timestamp=parse_timestamp(record.timestamp),
        content=content,
        raw=record.raw,
    )


CONTROL_RECORDS = {
    'custom': ('custom', ('customType', 'data')),
    'thinking_level_change': ('thinkingLevelChange', ('thinkingLevel',)),
    'model_change': ('modelChange', ('provider', 'modelId')),
    'compaction': ('compaction', ('summary', 'firstKeptEntryId', 'tokensBefore')),
}

MESSAGE_ROLES = {
    'user': _user_item,
    'assistant': _assistant_item,
    'toolResult': _tool_result_message_item,
}


def normalize_record(record: SessionRecord) -> Optional[TimelineItem]:
    """
    Map one record onto a timeline item.

    Returns None for records that carry nothing to show (unknown record type,
    message without a message object, unknown role, tool_result without a
    result object).
    """
    if record.type == 'message':
        if record.message is None:
            return None
        handler = MESSAGE_ROLES.get(record.role)
        return handler(record) if handler else None

    if record.type == 'tool_result':
        return _legacy_tool_result_item(record) if record.result is not None else None

    if record.type in ('session_start', 'session'):
        return _session_start_item(record)

    if record.type in CONTROL_RECORDS:
        item_type, keys = CONTROL_RECORDS[record.type]
        return _control_item(record, item_type, keys)

    return None


def build_timeline(
    records: Iterable[SessionRecord],
    warnings: Optional[list[ParseWarning]] = None,
) -> tuple[TimelineItem, ...]:
    """
    Build the timeline for a record sequence.

    Output order always matches input order. Records that normalize to
    nothing are dropped and reported through ``warnings`` when given.
    The result is a tuple; derived views must copy rather than mutate it.
    """
    items = []
    for record in records:
        item = normalize_record(record)
        if item is None:
            logger.debug("Skipping record %r of type %r at line %d", record.id, record.type, record.line_number)
            if warnings is not None:
                warnings.append(ParseWarning(
                    record.line_number,
                    f"no timeline item for record type {record.type!r}"
                    + (f" with role {record.role!r}" if record.type == 'message' else ''),
                ))
            continue
        items.append(item)
    return tuple(items)


def find_dangling_parents(items: Iterable[TimelineItem]) -> list[ParseWarning]:
    """
    Report items whose parent id matches neither a tool call nor another item.

    Links are advisory: this is a diagnostic only and never changes the
    timeline.
    """
    items = list(items)
    known_ids = {item.id for item in items}
    for item in items:
        if item.type == 'assistant':
            for call in iter_tool_calls(item.content):
                if call.get('id'):
                    known_ids.add(call['id'])

    dangling = []
    for item in items:
        if item.parent_id and item.parent_id not in known_ids:
            # Line numbers are not carried on timeline items
            dangling.append(ParseWarning(
                0,
                f"{item.type} {item.id!r} references unknown parent {item.parent_id!r}",
            ))
    return dangling
