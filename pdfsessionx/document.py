"""Document sessions over an engine-backed PDF."""

from __future__ import annotations

import io
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Tuple, Union

from PIL import Image

from . import geometry
from .backends.base import Handle, PDFEngine
from .backends.pdfium_backend import get_default_engine
from .bookmarks import load_bookmarks
from .config import SessionOptions
from .exceptions import (
    DisposedStateError,
    OpenError,
    PageLoadError,
    PdfSessionError,
    SaveError,
)
from .images import ImageExtractor, bitmap_to_image
from .library import LIBRARY
from .page import PageScope
from .ranges import normalize_page_range
from .search import find_matches, object_text, page_text, read_text, search_flags, text_bounds
from .streams import StreamRegistry, default_registry
from .types import (
    DOCUMENT_ACTION_WILL_CLOSE,
    SAVE_NO_INCREMENTAL,
    Bookmark,
    ErrorCode,
    ImageRecord,
    PageSize,
    PdfInformation,
    PdfMatches,
    PdfPageLink,
    PdfRectangle,
    PdfRotation,
    Point,
    Rect,
    RenderFlags,
    TextSpan,
)
from .utils import PathLike, decode_ascii, decode_utf16, fetch_buffer, parse_pdf_date, time_block, to_path

LOGGER = logging.getLogger(__name__)

_WHITE = 0xFFFFFFFF


class PdfSession:
    """An open PDF document.

    The session owns the byte stream it was opened from. Resources are
    acquired in the order stream, document, form environment, bookmarks and
    released in exactly the reverse order by :meth:`dispose`. Every
    page-level operation loads the page for the duration of the call only.

    Sessions are not thread-safe; serialise access to a session externally.

    Example:
        >>> with PdfSession.load("report.pdf") as session:
        ...     session.get_pdf_text(0)
    """

    def __init__(
        self,
        stream: BinaryIO,
        password: Optional[str] = None,
        *,
        engine: Optional[PDFEngine] = None,
        registry: Optional[StreamRegistry] = None,
        options: Optional[SessionOptions] = None,
    ) -> None:
        if stream is None:
            raise ValueError("stream must not be None")

        self.engine: PDFEngine = engine if engine is not None else get_default_engine()
        self.registry = registry if registry is not None else default_registry()
        self.options = options or SessionOptions()

        self._document: Optional[Handle] = None
        self._form: Optional[Handle] = None
        self._bookmarks: Tuple[Bookmark, ...] = ()
        self._permissions = 0
        self._disposed = False
        self._resources = ExitStack()

        LIBRARY.ensure_loaded(self.engine)
        self._stream_id = self.registry.register(stream)
        self._resources.callback(self._close_stream, stream)
        self._resources.callback(self.registry.unregister, self._stream_id)

        try:
            with time_block(LOGGER, f"opening stream {self._stream_id}"):
                self._open(password)
        except OpenError:
            self._rollback()
            raise
        except Exception as exc:
            self._rollback()
            raise OpenError(ErrorCode.UNKNOWN, f"Unable to open document: {exc}") from exc

    @classmethod
    def load(cls, path: PathLike, password: Optional[str] = None, **kwargs: Any) -> "PdfSession":
        """Open the PDF at ``path``; the file is closed when the session is."""
        pdf_path = to_path(path)
        if not pdf_path.exists():
            raise OpenError(ErrorCode.FILE, f"PDF file not found: {pdf_path}")
        return cls(pdf_path.open("rb"), password, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _open(self, password: Optional[str]) -> None:
        engine = self.engine
        document = engine.load_custom_document(self.registry, self._stream_id, password)
        if document is None:
            code = ErrorCode.coerce(engine.get_last_error())
            raise OpenError(code)
        self._document = document
        self._resources.callback(engine.close_document, document)

        self._permissions = engine.get_doc_permissions(document)
        self._form = self._init_form(document)
        self._bookmarks = load_bookmarks(engine, document)
        LOGGER.debug("Opened document on stream %d", self._stream_id)

    def _init_form(self, document: Handle) -> Optional[Handle]:
        engine = self.engine
        options = self.options
        form = None
        for version in options.form_env_versions:
            form = engine.init_form_fill_environment(document, version)
            if form is not None:
                LOGGER.debug("Form environment initialised with revision %d", version)
                break
        if form is None:
            LOGGER.debug("Engine accepted no form environment revision; continuing without forms")
            return None

        self._resources.callback(engine.exit_form_fill_environment, form)
        self._resources.callback(engine.do_document_aaction, form, DOCUMENT_ACTION_WILL_CLOSE)

        engine.set_form_field_highlight(
            form, options.form_highlight_field_type, options.form_highlight_color, options.form_highlight_alpha
        )
        if options.fire_document_actions:
            engine.do_document_js_action(form)
            engine.do_document_open_action(form)
        return form

    @staticmethod
    def _close_stream(stream: BinaryIO) -> None:
        close = getattr(stream, "close", None)
        if callable(close):
            close()

    def _rollback(self) -> None:
        self._disposed = True
        self._document = None
        self._form = None
        try:
            self._resources.close()
        except Exception:
            LOGGER.warning("Error while rolling back a failed open", exc_info=True)

    def dispose(self) -> None:
        """Release the session's resources. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True
        self._document = None
        self._form = None
        self._bookmarks = ()
        self._resources.close()
        LOGGER.debug("Disposed session on stream %d", self._stream_id)

    close = dispose

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __enter__(self) -> "PdfSession":
        self._ensure_open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def _ensure_open(self) -> None:
        if self._disposed:
            raise DisposedStateError()

    def _page(self, page: int) -> PageScope:
        return PageScope(self.engine, self._document, self._form, page)

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------
    @property
    def page_count(self) -> int:
        self._ensure_open()
        return self.engine.get_page_count(self._document)

    @property
    def bookmarks(self) -> Tuple[Bookmark, ...]:
        self._ensure_open()
        return self._bookmarks

    @property
    def permissions(self) -> int:
        self._ensure_open()
        return self._permissions

    def page_size(self, page: int) -> PageSize:
        self._ensure_open()
        if not 0 <= page < self.page_count:
            raise PageLoadError(page, f"Page index {page} is out of range.")
        size = self.engine.get_page_size_by_index(self._document, page)
        if size is None:
            raise PageLoadError(page, f"Unable to read the size of page {page}.")
        return PageSize(*size)

    def page_sizes(self) -> List[PageSize]:
        self._ensure_open()
        return [self.page_size(index) for index in range(self.page_count)]

    def information(self) -> PdfInformation:
        self._ensure_open()
        return PdfInformation(
            creator=self._meta_text("Creator"),
            title=self._meta_text("Title"),
            author=self._meta_text("Author"),
            subject=self._meta_text("Subject"),
            keywords=self._meta_text("Keywords"),
            producer=self._meta_text("Producer"),
            creation_date=parse_pdf_date(self._meta_text("CreationDate")),
            modification_date=parse_pdf_date(self._meta_text("ModDate")),
        )

    def _meta_text(self, tag: str) -> str:
        raw = fetch_buffer(lambda buffer: self.engine.get_meta_text(self._document, tag, buffer))
        return decode_utf16(raw)

    def save(self, target: Union[BinaryIO, PathLike]) -> None:
        """Write a full, non-incremental copy to a binary sink or a path."""
        self._ensure_open()
        if isinstance(target, (str, Path)) or hasattr(target, "__fspath__"):
            buffer = io.BytesIO()
            self._save_to(buffer)
            path = to_path(target)
            path.write_bytes(buffer.getvalue())
            LOGGER.info("Saved document to %s", path)
            return
        self._save_to(target)
        LOGGER.info("Saved document to stream")

    def _save_to(self, sink: BinaryIO) -> None:
        if not self.engine.save_as_copy(self._document, sink, SAVE_NO_INCREMENTAL):
            raise SaveError()

    def delete_page(self, page: int) -> None:
        self._ensure_open()
        count = self.page_count
        if not 0 <= page < count:
            raise PageLoadError(page, f"Page index {page} is out of range (document has {count} pages).")
        self.engine.delete_page(self._document, page)
        LOGGER.debug("Deleted page %d", page)

    def rotate_page(self, page: int, rotation: PdfRotation) -> None:
        self._ensure_open()
        with self._page(page) as scope:
            self.engine.set_page_rotation(scope.page, int(PdfRotation(rotation)))

    def merge(self, other: "PdfSession", page_range: Optional[str] = None) -> bool:
        """Append pages of ``other`` after the last page of this document.

        ``page_range`` selects 1-based pages of ``other`` (``"1,3-4"``);
        ``None`` imports every page.
        """
        self._ensure_open()
        other._ensure_open()
        if other.engine is not self.engine:
            raise ValueError("Cannot merge documents opened by different engines")
        selector = normalize_page_range(page_range, other.page_count)
        index = self.page_count
        merged = self.engine.import_pages(self._document, other._document, selector, index)
        if merged:
            LOGGER.info("Imported pages %s at index %d", selector or "all", index)
        else:
            LOGGER.warning("Engine refused to import pages %s", selector or "all")
        return merged

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------
    def search(
        self,
        text: str,
        match_case: bool = False,
        whole_word: bool = False,
        start_page: int = 0,
        end_page: Optional[int] = None,
    ) -> PdfMatches:
        """Find ``text`` on every page from ``start_page`` to ``end_page`` inclusive."""
        self._ensure_open()
        if end_page is None:
            end_page = self.page_count - 1
        matches = PdfMatches(start_page, end_page)
        if not text:
            return matches

        flags = search_flags(match_case, whole_word)
        with time_block(LOGGER, f"searching {text!r}"):
            for page in range(start_page, end_page + 1):
                with self._page(page) as scope:
                    matches.items.extend(find_matches(self.engine, scope, text, flags))
        LOGGER.info("Found %d matches for %r", len(matches), text)
        return matches

    def get_text_bounds(self, span: TextSpan) -> List[PdfRectangle]:
        self._ensure_open()
        with self._page(span.page) as scope:
            return text_bounds(self.engine, scope, span, self.options.merge_tolerance)

    def get_pdf_text(self, target: Union[int, TextSpan]) -> str:
        """Return the text of a whole page or of a :class:`TextSpan`."""
        self._ensure_open()
        if isinstance(target, TextSpan):
            with self._page(target.page) as scope:
                return read_text(self.engine, scope.text_page, target.offset, target.length)
        with self._page(target) as scope:
            return page_text(self.engine, scope.text_page)

    def get_page_object_text(self, page: int) -> str:
        self._ensure_open()
        with self._page(page) as scope:
            return object_text(self.engine, scope)

    # ------------------------------------------------------------------
    # Page content
    # ------------------------------------------------------------------
    def count_page_objects(self, page: int) -> int:
        self._ensure_open()
        with self._page(page) as scope:
            return self.engine.page_count_objects(scope.page)

    def extract_images(self, page: int) -> List[ImageRecord]:
        self._ensure_open()
        with self._page(page) as scope:
            return ImageExtractor(self.engine).extract(scope)

    def get_page_links(self, page: int) -> List[PdfPageLink]:
        """Return link annotations that point at a page or a URI."""
        self._ensure_open()
        engine = self.engine
        links: List[PdfPageLink] = []
        with self._page(page) as scope:
            position = 0
            while True:
                found = engine.link_enumerate(scope.page, position)
                if found is None:
                    break
                position, link = found
                target = engine.link_get_dest_page_index(self._document, link)
                uri = None
                action = engine.link_get_action(link)
                if action is not None:
                    raw = fetch_buffer(lambda buffer: engine.action_get_uri_path(self._document, action, buffer))
                    uri = decode_ascii(raw) or None
                rect = engine.link_get_annot_rect(link)
                if rect is not None and (target is not None or uri is not None):
                    links.append(PdfPageLink(Rect(*rect), target, uri))
        return links

    def render_page(
        self,
        page: int,
        width: int,
        height: int,
        *,
        start_x: int = 0,
        start_y: int = 0,
        rotation: PdfRotation = PdfRotation.ROTATE_0,
        flags: Optional[RenderFlags] = None,
        render_form_fill: bool = False,
    ) -> Image.Image:
        """Render a page into a ``width`` x ``height`` RGB image."""
        self._ensure_open()
        if width <= 0 or height <= 0:
            raise ValueError("Render width and height must be positive")
        engine = self.engine
        render_flags = RenderFlags(self.options.render_flags if flags is None else flags)
        if render_form_fill:
            render_flags &= ~RenderFlags.ANNOT
        rotate = int(PdfRotation(rotation))

        with self._page(page) as scope:
            bitmap = engine.bitmap_create(width, height, False)
            if bitmap is None:
                raise PdfSessionError(f"Unable to allocate a {width}x{height} bitmap.")
            try:
                engine.bitmap_fill_rect(bitmap, 0, 0, width, height, _WHITE)
                engine.render_page_bitmap(bitmap, scope.page, start_x, start_y, width, height, rotate, int(render_flags))
                if render_form_fill and self._form is not None:
                    engine.ffl_draw(
                        self._form, bitmap, scope.page, start_x, start_y, width, height, rotate, int(render_flags)
                    )
                bitmap_width, bitmap_height, stride, pixel_format = engine.bitmap_get_info(bitmap)
                data = engine.bitmap_get_buffer(bitmap)
            finally:
                engine.bitmap_destroy(bitmap)

        image = bitmap_to_image(bitmap_width, bitmap_height, stride, pixel_format, data)
        if image is None:
            raise PdfSessionError(f"Unsupported bitmap format {pixel_format}.")
        return image

    # ------------------------------------------------------------------
    # Coordinates
    # ------------------------------------------------------------------
    def _device(self, scope: PageScope) -> dict:
        return {
            "size_x": int(scope.width),
            "size_y": int(scope.height),
            "box": self.engine.get_page_bounding_box(scope.page),
            "page_rotation": self.engine.get_page_rotation(scope.page),
        }

    def point_from_pdf(self, page: int, point: Point) -> Point:
        self._ensure_open()
        with self._page(page) as scope:
            return geometry.point_from_pdf(scope.width, scope.height, point, **self._device(scope))

    def point_to_pdf(self, page: int, point: Point) -> Point:
        self._ensure_open()
        with self._page(page) as scope:
            return geometry.point_to_pdf(scope.width, scope.height, point, **self._device(scope))

    def rectangle_from_pdf(self, page: int, rect: Rect) -> Rect:
        self._ensure_open()
        with self._page(page) as scope:
            return geometry.rectangle_from_pdf(scope.width, scope.height, rect, **self._device(scope))

    def rectangle_to_pdf(self, page: int, rect: Rect) -> Rect:
        self._ensure_open()
        with self._page(page) as scope:
            return geometry.rectangle_to_pdf(scope.width, scope.height, rect, **self._device(scope))


__all__ = ["PdfSession"]
