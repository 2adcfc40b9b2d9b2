"""Engine protocol consumed by the session layer.

Handles returned by an engine are opaque; ``None`` stands for a null handle.
Methods following the two-call buffer protocol accept ``None`` to report the
required size in bytes and a ``bytearray`` of that size to fill it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, BinaryIO, Optional, Protocol, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from ..streams import StreamRegistry

Handle = Any


class PDFEngine(Protocol):
    """Protocol defining the rendering engine capabilities used by sessions."""

    # -- library ---------------------------------------------------------
    def init_library(self) -> None:
        """Initialise the engine. Called once per process."""

    def destroy_library(self) -> None:
        """Release process-wide engine state."""

    def get_last_error(self) -> int:
        """Return the error code of the last failed document load."""

    # -- documents -------------------------------------------------------
    def load_custom_document(
        self, registry: "StreamRegistry", stream_id: int, password: Optional[str]
    ) -> Optional[Handle]:
        """Open a document reading its bytes through ``registry``."""

    def close_document(self, document: Handle) -> None: ...

    def get_doc_permissions(self, document: Handle) -> int: ...

    def get_page_count(self, document: Handle) -> int: ...

    def get_page_size_by_index(self, document: Handle, index: int) -> Optional[Tuple[float, float]]:
        """Return ``(width, height)`` without loading the page, ``None`` on failure."""

    def get_meta_text(self, document: Handle, tag: str, buffer: Optional[bytearray]) -> int: ...

    def import_pages(
        self, dest: Handle, src: Handle, page_range: Optional[str], index: int
    ) -> bool: ...

    def save_as_copy(self, document: Handle, sink: BinaryIO, flags: int) -> bool: ...

    def delete_page(self, document: Handle, index: int) -> None: ...

    # -- interactive forms -----------------------------------------------
    def init_form_fill_environment(self, document: Handle, version: int) -> Optional[Handle]: ...

    def exit_form_fill_environment(self, form: Handle) -> None: ...

    def set_form_field_highlight(self, form: Handle, field_type: int, color: int, alpha: int) -> None: ...

    def do_document_js_action(self, form: Handle) -> None: ...

    def do_document_open_action(self, form: Handle) -> None: ...

    def do_document_aaction(self, form: Handle, action_type: int) -> None: ...

    def on_after_load_page(self, page: Handle, form: Optional[Handle]) -> None: ...

    def on_before_close_page(self, page: Handle, form: Optional[Handle]) -> None: ...

    def do_page_aaction(self, page: Handle, form: Optional[Handle], action_type: int) -> None: ...

    # -- pages -----------------------------------------------------------
    def load_page(self, document: Handle, index: int) -> Optional[Handle]: ...

    def close_page(self, page: Handle) -> None: ...

    def load_text_page(self, page: Handle) -> Optional[Handle]: ...

    def close_text_page(self, text_page: Handle) -> None: ...

    def get_page_width(self, page: Handle) -> float: ...

    def get_page_height(self, page: Handle) -> float: ...

    def set_page_rotation(self, page: Handle, rotation: int) -> None: ...

    def get_page_rotation(self, page: Handle) -> int: ...

    def get_page_bounding_box(self, page: Handle) -> Optional[Tuple[float, float, float, float]]:
        """Return the displayed page box as ``(left, bottom, right, top)``."""

    # -- bookmarks -------------------------------------------------------
    def bookmark_get_first_child(self, document: Handle, bookmark: Optional[Handle]) -> Optional[Handle]: ...

    def bookmark_get_next_sibling(self, document: Handle, bookmark: Handle) -> Optional[Handle]: ...

    def bookmark_get_title(self, bookmark: Handle, buffer: Optional[bytearray]) -> int: ...

    def bookmark_get_dest_page_index(self, document: Handle, bookmark: Handle) -> Optional[int]:
        """Resolve the bookmark's destination page, ``None`` if it has none."""

    # -- text ------------------------------------------------------------
    def text_count_chars(self, text_page: Handle) -> int: ...

    def text_get_char_box(self, text_page: Handle, index: int) -> Tuple[float, float, float, float]:
        """Return the glyph box as ``(left, right, bottom, top)``."""

    def text_get_text(self, text_page: Handle, start: int, count: int, buffer: bytearray) -> int:
        """Write UTF-16LE text into ``buffer`` (``count + 1`` code units).

        Returns the number of code units written, terminator included.
        """

    def text_find_start(self, text_page: Handle, query: str, flags: int, start_index: int) -> Optional[Handle]: ...

    def text_find_next(self, handle: Handle) -> bool: ...

    def text_get_sch_result_index(self, handle: Handle) -> int: ...

    def text_get_sch_count(self, handle: Handle) -> int: ...

    def text_find_close(self, handle: Handle) -> None: ...

    # -- page objects ----------------------------------------------------
    def page_count_objects(self, page: Handle) -> int: ...

    def page_get_object(self, page: Handle, index: int) -> Optional[Handle]: ...

    def page_object_get_type(self, obj: Handle) -> int: ...

    def image_get_data_raw(self, obj: Handle, buffer: Optional[bytearray]) -> int: ...

    def image_get_bitmap(self, obj: Handle) -> Optional[Handle]: ...

    def image_get_metadata(self, obj: Handle, page: Handle) -> Optional[Tuple[float, float]]:
        """Return the image's ``(horizontal_dpi, vertical_dpi)``."""

    def text_object_get_text(self, obj: Handle, text_page: Handle, buffer: Optional[bytearray]) -> int: ...

    # -- bitmaps and rendering -------------------------------------------
    def bitmap_create(self, width: int, height: int, alpha: bool) -> Optional[Handle]: ...

    def bitmap_fill_rect(self, bitmap: Handle, left: int, top: int, width: int, height: int, color: int) -> None: ...

    def bitmap_get_info(self, bitmap: Handle) -> Tuple[int, int, int, int]:
        """Return ``(width, height, stride, format)``."""

    def bitmap_get_buffer(self, bitmap: Handle) -> bytes:
        """Return a copy of the ``stride * height`` pixel bytes."""

    def bitmap_destroy(self, bitmap: Handle) -> None: ...

    def render_page_bitmap(
        self, bitmap: Handle, page: Handle, start_x: int, start_y: int,
        size_x: int, size_y: int, rotate: int, flags: int,
    ) -> None: ...

    def ffl_draw(
        self, form: Handle, bitmap: Handle, page: Handle, start_x: int, start_y: int,
        size_x: int, size_y: int, rotate: int, flags: int,
    ) -> None: ...

    # -- links -----------------------------------------------------------
    def link_enumerate(self, page: Handle, start_pos: int) -> Optional[Tuple[int, Handle]]:
        """Return ``(next_pos, link)`` or ``None`` once every link was visited."""

    def link_get_dest_page_index(self, document: Handle, link: Handle) -> Optional[int]: ...

    def link_get_action(self, link: Handle) -> Optional[Handle]: ...

    def action_get_uri_path(self, document: Handle, action: Handle, buffer: Optional[bytearray]) -> int: ...

    def link_get_annot_rect(self, link: Handle) -> Optional[Tuple[float, float, float, float]]:
        """Return the annotation rectangle as ``(left, top, right, bottom)``."""
