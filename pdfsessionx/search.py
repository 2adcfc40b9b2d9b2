"""Text reading, searching and match geometry."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from .backends.base import Handle, PDFEngine
from .page import PageScope
from .types import MatchResult, PageObjectType, PdfRectangle, SearchFlags, TextSpan
from .utils import decode_utf16, fetch_buffer

LOGGER = logging.getLogger(__name__)

DEFAULT_MERGE_TOLERANCE = 4.0

# Glyph box as reported by the engine: (left, right, bottom, top).
CharBox = Tuple[float, float, float, float]


def search_flags(match_case: bool = False, whole_word: bool = False) -> SearchFlags:
    flags = SearchFlags.NONE
    if match_case:
        flags |= SearchFlags.MATCH_CASE
    if whole_word:
        flags |= SearchFlags.MATCH_WHOLE_WORD
    return flags


def read_text(engine: PDFEngine, text_page: Handle, offset: int, count: int) -> str:
    """Read ``count`` characters starting at ``offset``.

    The buffer holds ``count + 1`` UTF-16 code units so the engine can write
    its terminator; the engine reports units written including that
    terminator.
    """
    if count <= 0:
        return ""
    buffer = bytearray((count + 1) * 2)
    written = engine.text_get_text(text_page, offset, count, buffer)
    if written <= 1:
        return ""
    return bytes(buffer[: (written - 1) * 2]).decode("utf-16-le", errors="replace")


def page_text(engine: PDFEngine, text_page: Handle) -> str:
    """Return the whole text of a page."""
    return read_text(engine, text_page, 0, engine.text_count_chars(text_page))


def object_text(engine: PDFEngine, scope: PageScope) -> str:
    """Concatenate the text of every text object on the page in content order."""
    parts: List[str] = []
    for index in range(engine.page_count_objects(scope.page)):
        obj = engine.page_get_object(scope.page, index)
        if obj is None or engine.page_object_get_type(obj) != PageObjectType.TEXT:
            continue
        raw = fetch_buffer(lambda buffer: engine.text_object_get_text(obj, scope.text_page, buffer))
        parts.append(decode_utf16(raw))
    return "".join(parts)


def find_matches(engine: PDFEngine, scope: PageScope, text: str, flags: int = SearchFlags.NONE) -> List[MatchResult]:
    """Run the engine's find cursor over one page and collect every match."""
    results: List[MatchResult] = []
    handle = engine.text_find_start(scope.text_page, text, int(flags), 0)
    if handle is None:
        LOGGER.warning("Search cursor could not be started on page %d", scope.page_index)
        return results
    try:
        while engine.text_find_next(handle):
            index = engine.text_get_sch_result_index(handle)
            length = engine.text_get_sch_count(handle)
            match = read_text(engine, scope.text_page, index, length)
            results.append(MatchResult(match, TextSpan(scope.page_index, index, length), scope.page_index))
    finally:
        engine.text_find_close(handle)
    return results


def _close(a: float, b: float, tolerance: float) -> bool:
    return abs(a - b) < tolerance


def merge_char_boxes(
    boxes: Iterable[CharBox], page: int, tolerance: float = DEFAULT_MERGE_TOLERANCE
) -> List[PdfRectangle]:
    """Merge consecutive glyph boxes that sit on the same line.

    Boxes with zero width or height are skipped. A box joins the previous
    rectangle when its left edge, top and bottom are each within
    ``tolerance`` of the previous rectangle's right edge, top and bottom.
    """
    result: List[PdfRectangle] = []
    last: Optional[PdfRectangle] = None
    for left, right, bottom, top in boxes:
        box = PdfRectangle(page, left, top, right, bottom)
        if box.width == 0 or box.height == 0:
            continue
        if (
            last is not None
            and _close(last.right, box.left, tolerance)
            and _close(last.top, box.top, tolerance)
            and _close(last.bottom, box.bottom, tolerance)
        ):
            last = PdfRectangle(
                page,
                last.left,
                max(last.top, box.top),
                box.right,
                min(last.bottom, box.bottom),
            )
            result[-1] = last
        else:
            last = box
            result.append(box)
    return result


def text_bounds(
    engine: PDFEngine, scope: PageScope, span: TextSpan, tolerance: float = DEFAULT_MERGE_TOLERANCE
) -> List[PdfRectangle]:
    """Return the merged rectangles covering ``span`` on the scoped page."""
    boxes = [engine.text_get_char_box(scope.text_page, span.offset + i) for i in range(span.length)]
    return merge_char_boxes(boxes, span.page, tolerance)


__all__ = [
    "CharBox",
    "DEFAULT_MERGE_TOLERANCE",
    "find_matches",
    "merge_char_boxes",
    "object_text",
    "page_text",
    "read_text",
    "search_flags",
    "text_bounds",
]
