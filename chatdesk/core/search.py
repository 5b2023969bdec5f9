"""
Search Index - Find-in-conversation over flattened text nodes.

The algorithm works on (node_id, text) pairs in document order; mapping
spans back to markup is left to the presentation layer (see rendering.py).
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union


@dataclass(frozen=True)
class TextNode:
    """One text-bearing node of the rendered conversation."""
    node_id: str
    text: str


@dataclass
class MatchSpan:
    """One occurrence of the query inside a text node."""
    node_id: str
    start: int
    end: int
    text: str
    current: bool = False


Rendered = Union[str, Sequence[TextNode]]


def _as_nodes(rendered: Rendered) -> Sequence[TextNode]:
    if isinstance(rendered, str):
        return [TextNode("0", rendered)]
    return rendered


def compile_query(query: str, whole_word: bool = False) -> "re.Pattern[str]":
    pattern = re.escape(query)
    if whole_word:
        pattern = rf"\b{pattern}\b"
    return re.compile(pattern, re.IGNORECASE)


def find_matches(rendered: Rendered, query: str, whole_word: bool = False) -> List[MatchSpan]:
    """
    All non-overlapping, case-insensitive occurrences of query, in document
    order (node order, then left to right). An empty query matches nothing.
    """
    if not query:
        return []
    regex = compile_query(query, whole_word)
    spans = []
    for node in _as_nodes(rendered):
        for match in regex.finditer(node.text):
            spans.append(MatchSpan(node.node_id, match.start(), match.end(), match.group(0)))
    return spans


class SearchIndex:
    """
    Holds the matches of the last search and a cyclic cursor over them.

    Any change to the rendered conversation must be followed by invalidate();
    spans from before the change are dropped and never handed out again.
    """

    def __init__(self):
        self._matches: List[MatchSpan] = []
        self._index = -1
        self.query = ""
        self.whole_word = False

    @property
    def matches(self) -> List[MatchSpan]:
        return list(self._matches)

    @property
    def count(self) -> int:
        return len(self._matches)

    @property
    def current_index(self) -> int:
        """Cursor position, -1 when there are no matches."""
        return self._index

    @property
    def current(self) -> Optional[MatchSpan]:
        if self._index < 0:
            return None
        return self._matches[self._index]

    def search(self, rendered: Rendered, query: str, whole_word: bool = False) -> List[MatchSpan]:
        """Run a fresh search; the first match (if any) becomes current."""
        self.invalidate()
        self.query = query
        self.whole_word = whole_word
        self._matches = find_matches(rendered, query, whole_word)
        if self._matches:
            self._move_to(0)
        return self.matches

    def next(self) -> Optional[MatchSpan]:
        if not self._matches:
            return None
        return self._move_to((self._index + 1) % len(self._matches))

    def previous(self) -> Optional[MatchSpan]:
        if not self._matches:
            return None
        count = len(self._matches)
        return self._move_to((self._index - 1 + count) % count)

    def invalidate(self) -> None:
        """Forget all spans; a new search is needed to highlight again."""
        for span in self._matches:
            span.current = False
        self._matches = []
        self._index = -1

    def clear(self) -> None:
        self.invalidate()
        self.query = ""

    def _move_to(self, index: int) -> MatchSpan:
        if self._index >= 0:
            self._matches[self._index].current = False
        self._index = index
        span = self._matches[index]
        span.current = True
        return span
