"""pypdfium2 backend implementation for pdfsessionx."""

from __future__ import annotations

import ctypes
import logging
import threading
from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Dict, Optional, Tuple

import pypdfium2.raw as pdfium_c

from .base import Handle, PDFEngine

if TYPE_CHECKING:  # pragma: no cover
    from ..streams import StreamRegistry

LOGGER = logging.getLogger(__name__)


def _address(handle: Any) -> int:
    return ctypes.cast(handle, ctypes.c_void_p).value or 0


def _or_none(handle: Any) -> Optional[Any]:
    return handle if handle else None


def _call_with_buffer(
    call: Callable[[Any, int], int],
    buffer: Optional[bytearray],
    pointer_type: Any = None,
) -> int:
    """Adapt a ``bytearray`` to a C ``(buffer, buflen)`` argument pair."""
    if buffer is None:
        return int(call(None, 0))
    c_buffer = ctypes.create_string_buffer(len(buffer))
    c_arg = ctypes.cast(c_buffer, ctypes.POINTER(pointer_type)) if pointer_type else c_buffer
    length = int(call(c_arg, len(buffer)))
    buffer[:] = c_buffer.raw
    return length


class _BlockReader:
    """``FPDF_FILEACCESS.m_GetBlock`` callback backed by a stream registry."""

    def __init__(self, registry: "StreamRegistry", stream_id: int) -> None:
        self.registry = registry
        self.stream_id = stream_id

    def __call__(self, _param: Any, position: int, p_buf: Any, size: int) -> int:
        try:
            data = self.registry.read_block(self.stream_id, position, size)
        except Exception:  # reported to the caller as an engine file error
            LOGGER.exception("Reading %d bytes at %d from stream %d failed", size, position, self.stream_id)
            return 0
        if len(data) != size:
            return 0
        ctypes.memmove(p_buf, data, size)
        return 1


class _BlockWriter:
    """``FPDF_FILEWRITE.WriteBlock`` callback writing into a binary sink."""

    def __init__(self, sink: BinaryIO) -> None:
        self.sink = sink

    def __call__(self, _this: Any, p_data: Any, size: int) -> int:
        if not size:
            return 1
        try:
            self.sink.write(ctypes.string_at(p_data, size))
        except Exception:  # reported to the caller through the save result
            LOGGER.exception("Writing %d bytes to sink failed", size)
            return 0
        return 1


class PdfiumEngine(PDFEngine):
    """Engine implementation that calls PDFium through ``pypdfium2.raw``."""

    def __init__(self) -> None:
        # ctypes structures and callbacks PDFium keeps pointers to, keyed by
        # the address of the handle whose lifetime they must match.
        self._holders: Dict[int, Tuple[Any, ...]] = {}

    # -- library ---------------------------------------------------------
    def init_library(self) -> None:
        # pypdfium2 initialises PDFium when it is imported and destroys it
        # from its own exit handler.
        LOGGER.debug("PDFium initialised by pypdfium2")

    def destroy_library(self) -> None:
        LOGGER.debug("PDFium teardown left to pypdfium2")

    def get_last_error(self) -> int:
        return int(pdfium_c.FPDF_GetLastError())

    # -- documents -------------------------------------------------------
    def load_custom_document(
        self, registry: "StreamRegistry", stream_id: int, password: Optional[str]
    ) -> Optional[Handle]:
        access = pdfium_c.FPDF_FILEACCESS()
        access.m_FileLen = registry.length(stream_id)
        callback = type(access.m_GetBlock)(_BlockReader(registry, stream_id))
        access.m_GetBlock = callback
        access.m_Param = None

        c_password = None if password is None else (password + "\x00").encode("utf-8")
        document = pdfium_c.FPDF_LoadCustomDocument(ctypes.byref(access), c_password)
        if not document:
            return None
        self._holders[_address(document)] = (access, callback)
        return document

    def close_document(self, document: Handle) -> None:
        pdfium_c.FPDF_CloseDocument(document)
        self._holders.pop(_address(document), None)

    def get_doc_permissions(self, document: Handle) -> int:
        return int(pdfium_c.FPDF_GetDocPermissions(document))

    def get_page_count(self, document: Handle) -> int:
        return int(pdfium_c.FPDF_GetPageCount(document))

    def get_page_size_by_index(self, document: Handle, index: int) -> Optional[Tuple[float, float]]:
        width, height = ctypes.c_double(), ctypes.c_double()
        if not pdfium_c.FPDF_GetPageSizeByIndex(document, index, ctypes.byref(width), ctypes.byref(height)):
            return None
        return width.value, height.value

    def get_meta_text(self, document: Handle, tag: str, buffer: Optional[bytearray]) -> int:
        c_tag = (tag + "\x00").encode("ascii")
        return _call_with_buffer(
            lambda buf, length: pdfium_c.FPDF_GetMetaText(document, c_tag, buf, length), buffer
        )

    def import_pages(self, dest: Handle, src: Handle, page_range: Optional[str], index: int) -> bool:
        c_range = None if page_range is None else (page_range + "\x00").encode("ascii")
        return bool(pdfium_c.FPDF_ImportPages(dest, src, c_range, index))

    def save_as_copy(self, document: Handle, sink: BinaryIO, flags: int) -> bool:
        writer = pdfium_c.FPDF_FILEWRITE(version=1)
        callback = type(writer.WriteBlock)(_BlockWriter(sink))
        writer.WriteBlock = callback
        return bool(pdfium_c.FPDF_SaveAsCopy(document, ctypes.byref(writer), flags))

    def delete_page(self, document: Handle, index: int) -> None:
        pdfium_c.FPDFPage_Delete(document, index)

    # -- interactive forms -----------------------------------------------
    def init_form_fill_environment(self, document: Handle, version: int) -> Optional[Handle]:
        info = pdfium_c.FPDF_FORMFILLINFO(version=version)
        form = pdfium_c.FPDFDOC_InitFormFillEnvironment(document, ctypes.byref(info))
        if not form:
            return None
        self._holders[_address(form)] = (info,)
        return form

    def exit_form_fill_environment(self, form: Handle) -> None:
        pdfium_c.FPDFDOC_ExitFormFillEnvironment(form)
        self._holders.pop(_address(form), None)

    def set_form_field_highlight(self, form: Handle, field_type: int, color: int, alpha: int) -> None:
        pdfium_c.FPDF_SetFormFieldHighlightColor(form, field_type, color)
        pdfium_c.FPDF_SetFormFieldHighlightAlpha(form, alpha)

    def do_document_js_action(self, form: Handle) -> None:
        pdfium_c.FORM_DoDocumentJSAction(form)

    def do_document_open_action(self, form: Handle) -> None:
        pdfium_c.FORM_DoDocumentOpenAction(form)

    def do_document_aaction(self, form: Handle, action_type: int) -> None:
        pdfium_c.FORM_DoDocumentAAction(form, action_type)

    def on_after_load_page(self, page: Handle, form: Optional[Handle]) -> None:
        pdfium_c.FORM_OnAfterLoadPage(page, form)

    def on_before_close_page(self, page: Handle, form: Optional[Handle]) -> None:
        pdfium_c.FORM_OnBeforeClosePage(page, form)

    def do_page_aaction(self, page: Handle, form: Optional[Handle], action_type: int) -> None:
        pdfium_c.FORM_DoPageAAction(page, form, action_type)

    # -- pages -----------------------------------------------------------
    def load_page(self, document: Handle, index: int) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDF_LoadPage(document, index))

    def close_page(self, page: Handle) -> None:
        pdfium_c.FPDF_ClosePage(page)

    def load_text_page(self, page: Handle) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFText_LoadPage(page))

    def close_text_page(self, text_page: Handle) -> None:
        pdfium_c.FPDFText_ClosePage(text_page)

    def get_page_width(self, page: Handle) -> float:
        return float(pdfium_c.FPDF_GetPageWidthF(page))

    def get_page_height(self, page: Handle) -> float:
        return float(pdfium_c.FPDF_GetPageHeightF(page))

    def set_page_rotation(self, page: Handle, rotation: int) -> None:
        pdfium_c.FPDFPage_SetRotation(page, rotation)

    def get_page_rotation(self, page: Handle) -> int:
        return int(pdfium_c.FPDFPage_GetRotation(page))

    def get_page_bounding_box(self, page: Handle) -> Optional[Tuple[float, float, float, float]]:
        rect = pdfium_c.FS_RECTF()
        if not pdfium_c.FPDF_GetPageBoundingBox(page, ctypes.byref(rect)):
            return None
        return rect.left, rect.bottom, rect.right, rect.top

    # -- bookmarks -------------------------------------------------------
    def bookmark_get_first_child(self, document: Handle, bookmark: Optional[Handle]) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFBookmark_GetFirstChild(document, bookmark))

    def bookmark_get_next_sibling(self, document: Handle, bookmark: Handle) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFBookmark_GetNextSibling(document, bookmark))

    def bookmark_get_title(self, bookmark: Handle, buffer: Optional[bytearray]) -> int:
        return _call_with_buffer(
            lambda buf, length: pdfium_c.FPDFBookmark_GetTitle(bookmark, buf, length), buffer
        )

    def bookmark_get_dest_page_index(self, document: Handle, bookmark: Handle) -> Optional[int]:
        dest = pdfium_c.FPDFBookmark_GetDest(document, bookmark)
        if not dest:
            action = pdfium_c.FPDFBookmark_GetAction(bookmark)
            if action:
                dest = pdfium_c.FPDFAction_GetDest(document, action)
        if not dest:
            return None
        index = pdfium_c.FPDFDest_GetDestPageIndex(document, dest)
        return index if index >= 0 else None

    # -- text ------------------------------------------------------------
    def text_count_chars(self, text_page: Handle) -> int:
        return max(int(pdfium_c.FPDFText_CountChars(text_page)), 0)

    def text_get_char_box(self, text_page: Handle, index: int) -> Tuple[float, float, float, float]:
        left, right, bottom, top = (ctypes.c_double() for _ in range(4))
        ok = pdfium_c.FPDFText_GetCharBox(
            text_page, index, ctypes.byref(left), ctypes.byref(right), ctypes.byref(bottom), ctypes.byref(top)
        )
        if not ok:
            return 0.0, 0.0, 0.0, 0.0
        return left.value, right.value, bottom.value, top.value

    def text_get_text(self, text_page: Handle, start: int, count: int, buffer: bytearray) -> int:
        c_buffer = (ctypes.c_ushort * (len(buffer) // 2))()
        written = int(pdfium_c.FPDFText_GetText(text_page, start, count, c_buffer))
        buffer[: ctypes.sizeof(c_buffer)] = ctypes.string_at(c_buffer, ctypes.sizeof(c_buffer))
        return written

    def text_find_start(self, text_page: Handle, query: str, flags: int, start_index: int) -> Optional[Handle]:
        encoded = (query + "\x00").encode("utf-16-le")
        c_query = ctypes.create_string_buffer(encoded, len(encoded))
        handle = pdfium_c.FPDFText_FindStart(
            text_page, ctypes.cast(c_query, ctypes.POINTER(ctypes.c_ushort)), flags, start_index
        )
        return _or_none(handle)

    def text_find_next(self, handle: Handle) -> bool:
        return bool(pdfium_c.FPDFText_FindNext(handle))

    def text_get_sch_result_index(self, handle: Handle) -> int:
        return int(pdfium_c.FPDFText_GetSchResultIndex(handle))

    def text_get_sch_count(self, handle: Handle) -> int:
        return int(pdfium_c.FPDFText_GetSchCount(handle))

    def text_find_close(self, handle: Handle) -> None:
        pdfium_c.FPDFText_FindClose(handle)

    # -- page objects ----------------------------------------------------
    def page_count_objects(self, page: Handle) -> int:
        return max(int(pdfium_c.FPDFPage_CountObjects(page)), 0)

    def page_get_object(self, page: Handle, index: int) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFPage_GetObject(page, index))

    def page_object_get_type(self, obj: Handle) -> int:
        return int(pdfium_c.FPDFPageObj_GetType(obj))

    def image_get_data_raw(self, obj: Handle, buffer: Optional[bytearray]) -> int:
        return _call_with_buffer(
            lambda buf, length: pdfium_c.FPDFImageObj_GetImageDataRaw(obj, buf, length), buffer
        )

    def image_get_bitmap(self, obj: Handle) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFImageObj_GetBitmap(obj))

    def image_get_metadata(self, obj: Handle, page: Handle) -> Optional[Tuple[float, float]]:
        metadata = pdfium_c.FPDF_IMAGEOBJ_METADATA()
        if not pdfium_c.FPDFImageObj_GetImageMetadata(obj, page, ctypes.byref(metadata)):
            return None
        return float(metadata.horizontal_dpi), float(metadata.vertical_dpi)

    def text_object_get_text(self, obj: Handle, text_page: Handle, buffer: Optional[bytearray]) -> int:
        return _call_with_buffer(
            lambda buf, length: pdfium_c.FPDFTextObj_GetText(obj, text_page, buf, length),
            buffer,
            pointer_type=ctypes.c_ushort,
        )

    # -- bitmaps and rendering -------------------------------------------
    def bitmap_create(self, width: int, height: int, alpha: bool) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFBitmap_Create(width, height, int(alpha)))

    def bitmap_fill_rect(self, bitmap: Handle, left: int, top: int, width: int, height: int, color: int) -> None:
        pdfium_c.FPDFBitmap_FillRect(bitmap, left, top, width, height, color)

    def bitmap_get_info(self, bitmap: Handle) -> Tuple[int, int, int, int]:
        return (
            int(pdfium_c.FPDFBitmap_GetWidth(bitmap)),
            int(pdfium_c.FPDFBitmap_GetHeight(bitmap)),
            int(pdfium_c.FPDFBitmap_GetStride(bitmap)),
            int(pdfium_c.FPDFBitmap_GetFormat(bitmap)),
        )

    def bitmap_get_buffer(self, bitmap: Handle) -> bytes:
        height = int(pdfium_c.FPDFBitmap_GetHeight(bitmap))
        stride = int(pdfium_c.FPDFBitmap_GetStride(bitmap))
        pointer = pdfium_c.FPDFBitmap_GetBuffer(bitmap)
        if not pointer:
            return b""
        return ctypes.string_at(pointer, stride * height)

    def bitmap_destroy(self, bitmap: Handle) -> None:
        pdfium_c.FPDFBitmap_Destroy(bitmap)

    def render_page_bitmap(
        self, bitmap: Handle, page: Handle, start_x: int, start_y: int,
        size_x: int, size_y: int, rotate: int, flags: int,
    ) -> None:
        pdfium_c.FPDF_RenderPageBitmap(bitmap, page, start_x, start_y, size_x, size_y, rotate, flags)

    def ffl_draw(
        self, form: Handle, bitmap: Handle, page: Handle, start_x: int, start_y: int,
        size_x: int, size_y: int, rotate: int, flags: int,
    ) -> None:
        pdfium_c.FPDF_FFLDraw(form, bitmap, page, start_x, start_y, size_x, size_y, rotate, flags)

    # -- links -----------------------------------------------------------
    def link_enumerate(self, page: Handle, start_pos: int) -> Optional[Tuple[int, Handle]]:
        position = ctypes.c_int(start_pos)
        link = pdfium_c.FPDF_LINK()
        if not pdfium_c.FPDFLink_Enumerate(page, ctypes.byref(position), ctypes.byref(link)):
            return None
        return position.value, link

    def link_get_dest_page_index(self, document: Handle, link: Handle) -> Optional[int]:
        dest = pdfium_c.FPDFLink_GetDest(document, link)
        if not dest:
            return None
        index = pdfium_c.FPDFDest_GetDestPageIndex(document, dest)
        return index if index >= 0 else None

    def link_get_action(self, link: Handle) -> Optional[Handle]:
        return _or_none(pdfium_c.FPDFLink_GetAction(link))

    def action_get_uri_path(self, document: Handle, action: Handle, buffer: Optional[bytearray]) -> int:
        return _call_with_buffer(
            lambda buf, length: pdfium_c.FPDFAction_GetURIPath(document, action, buf, length), buffer
        )

    def link_get_annot_rect(self, link: Handle) -> Optional[Tuple[float, float, float, float]]:
        rect = pdfium_c.FS_RECTF()
        if not pdfium_c.FPDFLink_GetAnnotRect(link, ctypes.byref(rect)):
            return None
        return rect.left, rect.top, rect.right, rect.bottom


_DEFAULT_ENGINE: Optional[PdfiumEngine] = None
_DEFAULT_LOCK = threading.Lock()


def get_default_engine() -> PdfiumEngine:
    """Return the shared engine used by sessions that are not given one."""
    global _DEFAULT_ENGINE
    with _DEFAULT_LOCK:
        if _DEFAULT_ENGINE is None:
            _DEFAULT_ENGINE = PdfiumEngine()
        return _DEFAULT_ENGINE


__all__ = ["PdfiumEngine", "get_default_engine"]
