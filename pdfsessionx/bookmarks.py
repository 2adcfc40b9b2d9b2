"""Document outline loading."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .backends.base import Handle, PDFEngine
from .types import Bookmark
from .utils import decode_utf16, fetch_buffer

LOGGER = logging.getLogger(__name__)

# (title, depth, page_index) with depth 0 for top-level entries.
FlatBookmark = Tuple[str, int, Optional[int]]


def load_bookmarks(engine: PDFEngine, document: Handle) -> Tuple[Bookmark, ...]:
    """Build the outline forest of ``document``.

    Siblings are walked iteratively and children are loaded by recursing into
    each node's first child, so the tree has no depth limit beyond the
    interpreter's recursion limit.
    """
    forest = _load_children(engine, document, None)
    LOGGER.debug("Loaded %d top-level bookmarks", len(forest))
    return forest


def _load_children(engine: PDFEngine, document: Handle, parent: Optional[Handle]) -> Tuple[Bookmark, ...]:
    nodes: List[Bookmark] = []
    current = engine.bookmark_get_first_child(document, parent)
    while current is not None:
        title = decode_utf16(fetch_buffer(lambda buffer: engine.bookmark_get_title(current, buffer)))
        page_index = engine.bookmark_get_dest_page_index(document, current)
        children = _load_children(engine, document, current)
        nodes.append(Bookmark(title=title, page_index=page_index, children=children))
        current = engine.bookmark_get_next_sibling(document, current)
    return tuple(nodes)


def flatten_bookmarks(forest: Iterable[Bookmark]) -> List[FlatBookmark]:
    """Return the forest as pre-order ``(title, depth, page_index)`` entries."""
    entries: List[FlatBookmark] = []

    def visit(nodes: Iterable[Bookmark], depth: int) -> None:
        for node in nodes:
            entries.append((node.title, depth, node.page_index))
            visit(node.children, depth + 1)

    visit(forest, 0)
    return entries


def build_bookmark_tree(entries: Sequence[FlatBookmark]) -> Tuple[Bookmark, ...]:
    """Rebuild a forest from :func:`flatten_bookmarks` output.

    Raises:
        ValueError: If the first entry is not at depth 0 or an entry is more
            than one level deeper than its predecessor.
    """
    # Each stack frame holds (title, page_index, children) of an open node.
    root: List[Bookmark] = []
    stack: List[Tuple[str, Optional[int], List[Bookmark]]] = []

    def close_node() -> None:
        title, page_index, children = stack.pop()
        node = Bookmark(title=title, page_index=page_index, children=tuple(children))
        (stack[-1][2] if stack else root).append(node)

    for position, (title, depth, page_index) in enumerate(entries):
        if depth < 0 or depth > len(stack):
            raise ValueError(f"Bookmark entry {position} jumps to depth {depth} from depth {len(stack) - 1}")
        while len(stack) > depth:
            close_node()
        stack.append((title, page_index, []))

    while stack:
        close_node()
    return tuple(root)


__all__ = ["FlatBookmark", "build_bookmark_tree", "flatten_bookmarks", "load_bookmarks"]
