"""Scoped access to a single loaded page."""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Optional

from .backends.base import Handle, PDFEngine
from .exceptions import DisposedStateError, PageLoadError
from .types import PAGE_ACTION_CLOSE, PAGE_ACTION_OPEN, PageSize

LOGGER = logging.getLogger(__name__)


class PageScope:
    """Owns the page and text-page handles of one page for a bounded time.

    Acquisition loads the page, loads its text index, notifies the form
    environment and fires the page open action. Release undoes those steps in
    reverse, including when construction fails half way.

    Example:
        >>> with PageScope(engine, document, form, 0) as scope:
        ...     scope.width, scope.height
    """

    def __init__(self, engine: PDFEngine, document: Handle, form: Optional[Handle], page_index: int) -> None:
        self.engine = engine
        self.page_index = page_index
        self._stack = ExitStack()
        self._page: Optional[Handle] = None
        self._text_page: Optional[Handle] = None
        self._closed = False
        try:
            self._open(document, form)
        except BaseException:
            self._stack.close()
            self._closed = True
            raise

    def _open(self, document: Handle, form: Optional[Handle]) -> None:
        engine = self.engine
        index = self.page_index
        count = engine.get_page_count(document)
        if not 0 <= index < count:
            raise PageLoadError(index, f"Page index {index} is out of range (document has {count} pages).")

        page = engine.load_page(document, index)
        if page is None:
            raise PageLoadError(index)
        self._stack.callback(engine.close_page, page)

        text_page = engine.load_text_page(page)
        if text_page is None:
            raise PageLoadError(index, f"Unable to load the text of page {index}.")
        self._stack.callback(engine.close_text_page, text_page)

        engine.on_after_load_page(page, form)
        self._stack.callback(engine.on_before_close_page, page, form)

        engine.do_page_aaction(page, form, PAGE_ACTION_OPEN)
        self._stack.callback(engine.do_page_aaction, page, form, PAGE_ACTION_CLOSE)

        self._page = page
        self._text_page = text_page
        self.width = engine.get_page_width(page)
        self.height = engine.get_page_height(page)
        LOGGER.debug("Opened page %d (%.2f x %.2f)", index, self.width, self.height)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def page(self) -> Handle:
        if self._closed:
            raise DisposedStateError("Page scope has been closed.")
        return self._page

    @property
    def text_page(self) -> Handle:
        if self._closed:
            raise DisposedStateError("Page scope has been closed.")
        return self._text_page

    @property
    def size(self) -> PageSize:
        return PageSize(self.width, self.height)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._page = None
        self._text_page = None
        self._stack.close()
        LOGGER.debug("Closed page %d", self.page_index)

    def __enter__(self) -> "PageScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["PageScope"]
