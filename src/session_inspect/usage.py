"""Token usage resolution across both usage-block schemas."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ResolvedUsage:
    input: int
    output: int
    total: int


def _count(usage: dict, *keys: str) -> int:
    """Return the first present numeric value among ``keys``, else 0."""
    for key in keys:
        value = usage.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return 0


def resolve_usage(usage: Optional[dict]) -> Optional[ResolvedUsage]:
    """
    Resolve a usage block to input/output/total token counts.

    Supports the current shape (``input``, ``output``, optional ``totalTokens``)
    and the legacy shape (``input_tokens``, ``output_tokens``). A precomputed
    ``totalTokens`` wins; otherwise total is input + output, with absent
    fields counted as zero.

    Returns None when there is no usage block at all.
    """
    if not isinstance(usage, dict):
        return None

    input_count = _count(usage, 'input', 'input_tokens')
    output_count = _count(usage, 'output', 'output_tokens')

    total = usage.get('totalTokens')
    if isinstance(total, (int, float)) and not isinstance(total, bool):
        total_count = int(total)
    else:
        total_count = input_count + output_count

    return ResolvedUsage(input=input_count, output=output_count, total=total_count)


def usage_total(usage: Optional[dict]) -> Optional[int]:
    """Total tokens for a usage block, or None if the block is absent."""
    resolved = resolve_usage(usage)
    return resolved.total if resolved is not None else None
