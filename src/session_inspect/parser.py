"""JSONL session log parser."""

from pathlib import Path
from typing import Iterable, Iterator, Optional
from datetime import datetime, timezone
import json
import logging

from .models import ParseResult, ParseWarning, SessionRecord

logger = logging.getLogger(__name__)

TOOL_CALL_TYPES = ('toolCall', 'tool_use')


def iter_records(lines: Iterable[str], warnings: Optional[list[ParseWarning]] = None) -> Iterator[SessionRecord]:
    """
    Stream decode JSONL lines, yielding records in input order.

    Blank lines are ignored. Lines that fail to decode, or decode to something
    other than a JSON object, are skipped; a ParseWarning is appended to
    ``warnings`` when a list is given.
    """
    for line_num, line in enumerate(lines, 1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError as e:
            # Only log error type and location, not the content (which might contain secrets)
            logger.debug("Skipping malformed JSON at line %d (%s)", line_num, type(e).__name__)
            if warnings is not None:
                warnings.append(ParseWarning(line_num, f"malformed JSON: {e.msg}", stripped))
            continue

        if not isinstance(data, dict):
            logger.debug("Skipping non-object JSON at line %d", line_num)
            if warnings is not None:
                warnings.append(ParseWarning(line_num, "line is not a JSON object", stripped))
            continue

        yield SessionRecord.from_dict(data, line_number=line_num)


def parse_jsonl(text: str) -> ParseResult:
    """
    Parse session log text into records.

    Malformed lines never abort parsing; they are reported in
    ``ParseResult.warnings`` and the remaining lines are still decoded.
    """
    result = ParseResult()
    # str.splitlines() would also break on U+2028, which JSON allows inside strings
    result.records.extend(iter_records(text.split('\n'), result.warnings))
    return result


def parse_jsonl_file(path: Path, warnings: Optional[list[ParseWarning]] = None) -> Iterator[SessionRecord]:
    """
    Stream parse a JSONL file, yielding records.

    Memory-efficient: processes line-by-line without loading entire file.
    """
    with open(path, 'r', encoding='utf-8') as f:
        yield from iter_records(f, warnings)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a record timestamp.

    Handles ISO 8601 strings (with or without a Z suffix) and Unix
    milliseconds. Naive ISO values are taken as UTC. Returns None for
    anything that does not parse to a valid instant.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def first_text(content: list) -> str:
    """Text of the first text content item, or an empty string."""
    for block in content:
        if isinstance(block, dict) and block.get('type') == 'text':
            text = block.get('text', '')
            return text if isinstance(text, str) else str(text)
    return ''


def extract_text_content(content: list) -> str:
    """Extract all text content from a content array."""
    texts = []
    for block in content:
        if isinstance(block, dict) and block.get('type') == 'text':
            text = block.get('text', '')
            if text:
                texts.append(text)
    return '\n'.join(texts)


def iter_tool_calls(content: list) -> Iterator[dict]:
    """Yield the tool-call items of a content array in order."""
    for block in content:
        if isinstance(block, dict) and block.get('type') in TOOL_CALL_TYPES:
            yield block


def tool_call_arguments(block: dict) -> dict:
    """Arguments of a tool-call item; current logs use ``arguments``, older ones ``input``."""
    args = block.get('arguments')
    if args is None:
        args = block.get('input')
    return args if isinstance(args, dict) else {}
