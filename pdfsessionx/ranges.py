"""Page-range selectors used when importing pages from another document."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .exceptions import InvalidRangeError, PageOutOfBoundsError

RangeList = List[Tuple[int, int]]

_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$", re.ASCII)
_NUMBER_RE = re.compile(r"\d+", re.ASCII)


def parse_page_selector(selector: str) -> RangeList:
    """Parse ``"1,3-4"`` style selectors into 1-based inclusive ranges.

    Token order is preserved because the engine imports pages in the order
    they are listed.
    """
    if not selector or not selector.strip():
        raise InvalidRangeError("Page range cannot be empty")

    ranges: RangeList = []
    for token in selector.split(","):
        token = token.strip()
        if "-" in token:
            match = _RANGE_RE.match(token)
            if not match:
                raise InvalidRangeError(f"Invalid page range format: '{token}'. Expected 'start-end'.")
            start, end = int(match.group(1)), int(match.group(2))
            if start > end:
                raise InvalidRangeError(
                    f"Invalid range '{token}': start page ({start}) must be <= end page ({end})."
                )
        else:
            if not _NUMBER_RE.fullmatch(token):
                raise InvalidRangeError(f"Invalid page number: '{token}'. Expected a positive integer.")
            start = end = int(token)
        if start < 1:
            raise PageOutOfBoundsError(f"Invalid page selector '{token}': page numbers must be >= 1.")
        ranges.append((start, end))
    return ranges


def validate_selector(ranges: RangeList, total_pages: int) -> None:
    """Check every range against a document of ``total_pages`` pages."""
    if not ranges:
        raise InvalidRangeError("No ranges provided")
    for start, end in ranges:
        if end > total_pages:
            label = str(start) if start == end else f"{start}-{end}"
            raise PageOutOfBoundsError(f"Page selector '{label}' exceeds document page count ({total_pages} pages).")


def format_selector(ranges: RangeList) -> str:
    return ",".join(str(start) if start == end else f"{start}-{end}" for start, end in ranges)


def normalize_page_range(selector: Optional[str], total_pages: int) -> Optional[str]:
    """Validate ``selector`` and return its canonical form, ``None`` for all pages."""
    if selector is None:
        return None
    ranges = parse_page_selector(selector)
    validate_selector(ranges, total_pages)
    return format_selector(ranges)


__all__ = [
    "RangeList",
    "format_selector",
    "normalize_page_range",
    "parse_page_selector",
    "validate_selector",
]
