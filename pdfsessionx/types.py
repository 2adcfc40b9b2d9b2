"""
Type definitions and dataclasses for pdfsessionx.

This module defines the data structures and engine constants used throughout
the library.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, List, Optional, Tuple


class ErrorCode(enum.IntEnum):
    """Last-error codes reported by the engine after a failed open."""

    SUCCESS = 0
    UNKNOWN = 1
    FILE = 2
    FORMAT = 3
    PASSWORD = 4
    SECURITY = 5
    PAGE = 6

    @classmethod
    def coerce(cls, value: Any) -> "ErrorCode":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.UNKNOWN


class PdfRotation(enum.IntEnum):
    """Page rotation in clockwise quarter turns."""

    ROTATE_0 = 0
    ROTATE_90 = 1
    ROTATE_180 = 2
    ROTATE_270 = 3


class BitmapFormat(enum.IntEnum):
    """Pixel layout of an engine bitmap."""

    UNKNOWN = 0
    GRAY = 1
    BGR = 2
    BGRX = 3
    BGRA = 4


class PageObjectType(enum.IntEnum):
    UNKNOWN = 0
    TEXT = 1
    PATH = 2
    IMAGE = 3
    SHADING = 4
    FORM = 5


class SearchFlags(enum.IntFlag):
    NONE = 0
    MATCH_CASE = 0x01
    MATCH_WHOLE_WORD = 0x02
    CONSECUTIVE = 0x04


class RenderFlags(enum.IntFlag):
    """Flags accepted by the engine's page renderer."""

    NONE = 0
    ANNOT = 0x01
    LCD_TEXT = 0x02
    NO_NATIVETEXT = 0x04
    GRAYSCALE = 0x08
    REVERSE_BYTE_ORDER = 0x10
    DEBUG_INFO = 0x80
    NO_CATCH = 0x100
    LIMITED_IMAGE_CACHE = 0x200
    FORCE_HALFTONE = 0x400
    PRINTING = 0x800


# Page and document additional-action triggers.
PAGE_ACTION_OPEN = 0
PAGE_ACTION_CLOSE = 1
DOCUMENT_ACTION_WILL_CLOSE = 0x10

# Save flags.
SAVE_NO_INCREMENTAL = 0x02


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """Rectangle described by its four edges."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class PageSize:
    """Page dimensions in PDF units (1/72 inch)."""

    width: float
    height: float


@dataclass(frozen=True)
class Bookmark:
    """
    A node of the document outline.

    Attributes:
        title: Display title of the entry
        page_index: Zero-based target page, ``None`` for title-only headings
        children: Nested entries in document order
    """
    title: str
    page_index: Optional[int] = None
    children: Tuple["Bookmark", ...] = ()


@dataclass(frozen=True)
class TextSpan:
    """Half-open character range ``[offset, offset + length)`` on a page."""

    page: int
    offset: int
    length: int


@dataclass(frozen=True)
class MatchResult:
    text: str
    span: TextSpan
    page: int


@dataclass
class PdfMatches:
    """
    Ordered result of a text search.

    Attributes:
        start_page: First page that was searched
        end_page: Last page that was searched (inclusive)
        items: Matches ordered by page, then by position on the page
    """
    start_page: int
    end_page: int
    items: List[MatchResult] = field(default_factory=list)

    def __iter__(self) -> Iterator[MatchResult]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> MatchResult:
        return self.items[index]


@dataclass(frozen=True)
class PdfRectangle:
    """Rectangle in page space, tagged with the page it belongs to."""

    page: int
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def bounds(self) -> Rect:
        return Rect(self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True)
class PdfPageLink:
    """A link annotation pointing at a page of the document or at a URI."""

    bounds: Rect
    target_page: Optional[int] = None
    uri: Optional[str] = None


@dataclass
class ImageRecord:
    """
    An image extracted from a page content object.

    Attributes:
        page_index: Page the image was found on
        object_index: Index of the content object on that page
        image: Decoded Pillow image
        pixel_format: Engine bitmap layout when built from raw pixels,
            ``None`` when the embedded data decoded as a container format
        encoded: Whether the image came straight from its embedded container
    """
    page_index: int
    object_index: int
    image: Any
    pixel_format: Optional[BitmapFormat] = None
    encoded: bool = False

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def dpi(self) -> Optional[Tuple[float, float]]:
        return self.image.info.get("dpi")


@dataclass
class PdfInformation:
    """
    Document information dictionary.

    Attributes:
        creator: Application that created the original document
        title: Document title
        author: Document author
        subject: Document subject
        keywords: Keywords associated with the document
        producer: Application that produced the PDF
        creation_date: Parsed creation timestamp, ``None`` if absent or malformed
        modification_date: Parsed modification timestamp, ``None`` if absent or malformed
    """
    creator: str = ""
    title: str = ""
    author: str = ""
    subject: str = ""
    keywords: str = ""
    producer: str = ""
    creation_date: Optional[datetime] = None
    modification_date: Optional[datetime] = None
