"""In-timeline search with cyclic match navigation."""

from typing import Iterable, Optional
import json

from .models import TimelineItem


def searchable_text(item: TimelineItem) -> str:
    """Lowercased text an item is matched against: type, content and id."""
    content = item.content
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False, separators=(',', ':'), default=str)
    return ' '.join([item.type, content, item.id]).lower()


def find_matches(items: Iterable[TimelineItem], query: str) -> list[int]:
    """
    Indices of items containing ``query`` (case-insensitive), in order.

    An empty or whitespace-only query matches nothing.
    """
    needle = query.strip().lower()
    if not needle:
        return []
    return [index for index, item in enumerate(items) if needle in searchable_text(item)]


class MatchIndex:
    """
    Match positions for one query over a timeline, with a focused match.

    A fresh search focuses the last match. ``next`` and ``previous`` wrap
    around at either end.
    """

    def __init__(self, items: Iterable[TimelineItem], query: str = ''):
        self._items = list(items)
        self.search(query)

    def search(self, query: str) -> list[int]:
        self.query = query.strip()
        self.matches = find_matches(self._items, self.query)
        self.position = len(self.matches) - 1
        return self.matches

    def __len__(self) -> int:
        return len(self.matches)

    @property
    def current(self) -> Optional[int]:
        """Timeline index of the focused match, or None without matches."""
        if not self.matches:
            return None
        return self.matches[self.position]

    def next(self) -> Optional[int]:
        if not self.matches:
            return None
        self.position = 0 if self.position >= len(self.matches) - 1 else self.position + 1
        return self.current

    def previous(self) -> Optional[int]:
        if not self.matches:
            return None
        self.position = len(self.matches) - 1 if self.position <= 0 else self.position - 1
        return self.current

    def label(self) -> str:
        """Position label such as ``3 / 7``; empty without matches."""
        if not self.matches:
            return ''
        return f"{self.position + 1} / {len(self.matches)}"
