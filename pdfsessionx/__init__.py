"""
pdfsessionx - Session-oriented access to PDF documents through PDFium.

This library opens a PDF from any readable, seekable byte stream and exposes
page geometry, text extraction and search, bookmarks, embedded images,
rendering, page links, metadata, page merging and saving. Every page-level
call loads the page only for its own duration.

Quick Start:
    >>> from pdfsessionx import PdfSession
    >>> with PdfSession.load('input.pdf') as session:
    ...     matches = session.search('invoice')
    ...     bounds = session.get_text_bounds(matches[0].span)

Main Classes:
    - PdfSession: An open document
    - PageScope: Scoped page and text-page handles
    - ImageExtractor: Image extraction from page content
    - StreamRegistry: Byte streams the engine reads from

Data Classes:
    - Bookmark, PdfMatches, MatchResult, TextSpan, PdfRectangle
    - PdfInformation, PdfPageLink, ImageRecord, PageSize, Point, Rect

Exceptions:
    - PdfSessionError: Base exception
    - OpenError: The engine refused to open a document
    - DisposedStateError: Operation on a disposed session
    - PageLoadError: A page could not be loaded
    - InvalidRangeError: Invalid page range selector
    - PageOutOfBoundsError: Page number out of bounds
    - SaveError: The document could not be saved
"""

# Core classes
from pdfsessionx.document import PdfSession
from pdfsessionx.page import PageScope
from pdfsessionx.images import ImageExtractor, bitmap_to_image
from pdfsessionx.streams import StreamRegistry, default_registry
from pdfsessionx.config import SessionOptions

# Data types
from pdfsessionx.types import (
    BitmapFormat,
    Bookmark,
    ErrorCode,
    ImageRecord,
    MatchResult,
    PageSize,
    PdfInformation,
    PdfMatches,
    PdfPageLink,
    PdfRectangle,
    PdfRotation,
    Point,
    Rect,
    RenderFlags,
    SearchFlags,
    TextSpan,
)

# Exceptions
from pdfsessionx.exceptions import (
    PdfSessionError,
    OpenError,
    DisposedStateError,
    PageLoadError,
    InvalidRangeError,
    PageOutOfBoundsError,
    SaveError,
)

# Utility functions
from pdfsessionx.bookmarks import build_bookmark_tree, flatten_bookmarks
from pdfsessionx.ranges import parse_page_selector
from pdfsessionx.utils import configure_logging, parse_pdf_date

__version__ = "1.0.0"
__author__ = "pdfsessionx Contributors"
__license__ = "MIT"

__all__ = [
    # Main classes
    "PdfSession",
    "PageScope",
    "ImageExtractor",
    "StreamRegistry",
    "SessionOptions",
    "bitmap_to_image",
    "default_registry",
    # Data types
    "BitmapFormat",
    "Bookmark",
    "ErrorCode",
    "ImageRecord",
    "MatchResult",
    "PageSize",
    "PdfInformation",
    "PdfMatches",
    "PdfPageLink",
    "PdfRectangle",
    "PdfRotation",
    "Point",
    "Rect",
    "RenderFlags",
    "SearchFlags",
    "TextSpan",
    # Exceptions
    "PdfSessionError",
    "OpenError",
    "DisposedStateError",
    "PageLoadError",
    "InvalidRangeError",
    "PageOutOfBoundsError",
    "SaveError",
    # Utility functions
    "build_bookmark_tree",
    "flatten_bookmarks",
    "parse_page_selector",
    "configure_logging",
    "parse_pdf_date",
    # Version info
    "__version__",
]
