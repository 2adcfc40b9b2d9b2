from __future__ import annotations

import io
import sys
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from types import SimpleNamespace
from typing import Any, BinaryIO, Callable, Dict, List, Optional, Tuple

import pytest
from pypdf import PdfWriter

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfsessionx import PdfSession, SessionOptions, StreamRegistry  # noqa: E402
from pdfsessionx.types import BitmapFormat, ErrorCode, PageObjectType, SearchFlags  # noqa: E402


# ----------------------------------------------------------------------
# In-memory engine
# ----------------------------------------------------------------------
@dataclass
class FakeOutline:
    title: str
    page: Optional[int] = None
    children: List["FakeOutline"] = field(default_factory=list)


@dataclass
class FakeObject:
    kind: int = PageObjectType.TEXT
    text: str = ""
    raw: bytes = b""
    bitmap: Optional[Tuple[int, int, int, int, bytes]] = None
    dpi: Optional[Tuple[float, float]] = None
    fail: bool = False
    unclassified: bool = False


@dataclass
class FakeLink:
    rect: Optional[Tuple[float, float, float, float]]
    target: Optional[int] = None
    uri: Optional[str] = None


@dataclass
class FakePage:
    width: float = 612.0
    height: float = 792.0
    text: str = ""
    boxes: Optional[List[Tuple[float, float, float, float]]] = None
    objects: List[FakeObject] = field(default_factory=list)
    links: List[FakeLink] = field(default_factory=list)
    rotation: int = 0
    box: Optional[Tuple[float, float, float, float]] = None

    def char_box(self, index: int) -> Tuple[float, float, float, float]:
        if self.boxes is not None:
            return self.boxes[index]
        left = 10.0 + 6.0 * index
        return left, left + 6.0, 700.0, 710.0


@dataclass
class FakeDocument:
    pages: List[FakePage] = field(default_factory=list)
    outline: List[FakeOutline] = field(default_factory=list)
    meta: Dict[str, str] = field(default_factory=dict)
    permissions: int = 0xFFFFFFFC
    password: Optional[str] = None


class FakeHandle:
    def __init__(self, kind: str, payload: Any) -> None:
        self.kind = kind
        self.payload = payload
        self.index: Optional[int] = None
        self.released = False

    def __repr__(self) -> str:
        return f"<FakeHandle {self.kind}>"


def _fill(buffer: Optional[bytearray], encoded: bytes) -> int:
    if buffer is not None:
        buffer[: len(encoded)] = encoded
    return len(encoded)


class FakeEngine:
    """Engine double that tracks every handle it hands out."""

    def __init__(self) -> None:
        self.catalog: Dict[bytes, FakeDocument] = {}
        self.live: Counter = Counter()
        self.calls: List[str] = []
        self.last_error = ErrorCode.SUCCESS
        self.form_versions = {1}
        self.fail_page_loads: set = set()
        self.fail_text_loads: set = set()
        self.fail_bookmarks = False
        self.save_ok = True
        self.imports: List[Tuple[Optional[str], int]] = []
        self.renders: List[Tuple[int, int, int, int, int, int]] = []
        self.highlight: Optional[Tuple[int, int, int]] = None

    # helpers -------------------------------------------------------------
    def add(self, document: FakeDocument) -> bytes:
        token = f"fake-pdf-{len(self.catalog)}".encode("ascii")
        self.catalog[token] = document
        return token

    def _acquire(self, kind: str, payload: Any) -> FakeHandle:
        self.live[kind] += 1
        self.calls.append(f"acquire:{kind}")
        return FakeHandle(kind, payload)

    def _release(self, handle: FakeHandle, kind: str) -> None:
        assert handle.kind == kind, f"expected {kind}, got {handle.kind}"
        assert not handle.released, f"{kind} released twice"
        handle.released = True
        self.live[kind] -= 1
        self.calls.append(f"release:{kind}")

    @property
    def balance(self) -> int:
        return sum(self.live.values())

    # library -------------------------------------------------------------
    def init_library(self) -> None:
        self.calls.append("init_library")

    def destroy_library(self) -> None:
        self.calls.append("destroy_library")

    def get_last_error(self) -> int:
        return int(self.last_error)

    # documents -----------------------------------------------------------
    def load_custom_document(self, registry: StreamRegistry, stream_id: int, password: Optional[str]):
        data = registry.read_block(stream_id, 0, registry.length(stream_id))
        document = self.catalog.get(data)
        if document is None:
            self.last_error = ErrorCode.FORMAT
            return None
        if document.password is not None and password != document.password:
            self.last_error = ErrorCode.PASSWORD
            return None
        return self._acquire("document", document)

    def close_document(self, document: FakeHandle) -> None:
        self._release(document, "document")

    def get_doc_permissions(self, document: FakeHandle) -> int:
        return document.payload.permissions

    def get_page_count(self, document: FakeHandle) -> int:
        return len(document.payload.pages)

    def get_page_size_by_index(self, document: FakeHandle, index: int):
        pages = document.payload.pages
        if not 0 <= index < len(pages):
            return None
        return pages[index].width, pages[index].height

    def get_meta_text(self, document: FakeHandle, tag: str, buffer: Optional[bytearray]) -> int:
        value = document.payload.meta.get(tag, "")
        return _fill(buffer, (value + "\x00").encode("utf-16-le"))

    def import_pages(self, dest: FakeHandle, src: FakeHandle, page_range: Optional[str], index: int) -> bool:
        self.imports.append((page_range, index))
        source = src.payload.pages
        if page_range is None:
            selected = list(source)
        else:
            selected = []
            for token in page_range.split(","):
                start, _, end = token.partition("-")
                for number in range(int(start), int(end or start) + 1):
                    selected.append(source[number - 1])
        dest.payload.pages[index:index] = selected
        return True

    def save_as_copy(self, document: FakeHandle, sink: BinaryIO, flags: int) -> bool:
        if not self.save_ok:
            return False
        sink.write(b"%PDF-1.7\n")
        sink.write(f"% pages={len(document.payload.pages)} flags={flags}\n".encode("ascii"))
        return True

    def delete_page(self, document: FakeHandle, index: int) -> None:
        del document.payload.pages[index]

    # forms ---------------------------------------------------------------
    def init_form_fill_environment(self, document: FakeHandle, version: int):
        self.calls.append(f"form_probe:{version}")
        if version not in self.form_versions:
            return None
        return self._acquire("form", version)

    def exit_form_fill_environment(self, form: FakeHandle) -> None:
        self._release(form, "form")

    def set_form_field_highlight(self, form, field_type: int, color: int, alpha: int) -> None:
        self.highlight = (field_type, color, alpha)

    def do_document_js_action(self, form) -> None:
        self.calls.append("doc_js_action")

    def do_document_open_action(self, form) -> None:
        self.calls.append("doc_open_action")

    def do_document_aaction(self, form, action_type: int) -> None:
        self.calls.append(f"doc_aaction:{action_type:#x}")

    def on_after_load_page(self, page, form) -> None:
        self.calls.append("after_load_page")

    def on_before_close_page(self, page, form) -> None:
        self.calls.append("before_close_page")

    def do_page_aaction(self, page, form, action_type: int) -> None:
        self.calls.append(f"page_aaction:{action_type}")

    # pages ---------------------------------------------------------------
    def load_page(self, document: FakeHandle, index: int):
        if index in self.fail_page_loads:
            return None
        handle = self._acquire("page", document.payload.pages[index])
        handle.index = index
        return handle

    def close_page(self, page: FakeHandle) -> None:
        self._release(page, "page")

    def load_text_page(self, page: FakeHandle):
        if page.index in self.fail_text_loads:
            return None
        return self._acquire("text_page", page.payload)

    def close_text_page(self, text_page: FakeHandle) -> None:
        self._release(text_page, "text_page")

    def get_page_width(self, page: FakeHandle) -> float:
        return page.payload.width

    def get_page_height(self, page: FakeHandle) -> float:
        return page.payload.height

    def set_page_rotation(self, page: FakeHandle, rotation: int) -> None:
        page.payload.rotation = rotation

    def get_page_rotation(self, page: FakeHandle) -> int:
        return page.payload.rotation

    def get_page_bounding_box(self, page: FakeHandle):
        payload = page.payload
        if payload.box is not None:
            return payload.box
        if payload.rotation % 2:
            return 0.0, 0.0, payload.height, payload.width
        return 0.0, 0.0, payload.width, payload.height

    # bookmarks -----------------------------------------------------------
    def bookmark_get_first_child(self, document: FakeHandle, bookmark):
        if self.fail_bookmarks:
            raise RuntimeError("outline is corrupt")
        siblings = document.payload.outline if bookmark is None else bookmark[0][bookmark[1]].children
        return (siblings, 0) if siblings else None

    def bookmark_get_next_sibling(self, document: FakeHandle, bookmark):
        siblings, index = bookmark
        return (siblings, index + 1) if index + 1 < len(siblings) else None

    def bookmark_get_title(self, bookmark, buffer: Optional[bytearray]) -> int:
        siblings, index = bookmark
        return _fill(buffer, (siblings[index].title + "\x00").encode("utf-16-le"))

    def bookmark_get_dest_page_index(self, document: FakeHandle, bookmark) -> Optional[int]:
        siblings, index = bookmark
        return siblings[index].page

    # text ----------------------------------------------------------------
    def text_count_chars(self, text_page: FakeHandle) -> int:
        return len(text_page.payload.text)

    def text_get_char_box(self, text_page: FakeHandle, index: int):
        return text_page.payload.char_box(index)

    def text_get_text(self, text_page: FakeHandle, start: int, count: int, buffer: bytearray) -> int:
        chunk = text_page.payload.text[start : start + count]
        return _fill(buffer, (chunk + "\x00").encode("utf-16-le")) // 2

    def text_find_start(self, text_page: FakeHandle, query: str, flags: int, start_index: int):
        text = text_page.payload.text
        haystack, needle = (text, query) if flags & SearchFlags.MATCH_CASE else (text.lower(), query.lower())
        hits = []
        position = haystack.find(needle, start_index)
        while position != -1:
            end = position + len(needle)
            whole = (position == 0 or not text[position - 1].isalnum()) and (
                end == len(text) or not text[end].isalnum()
            )
            if whole or not flags & SearchFlags.MATCH_WHOLE_WORD:
                hits.append((position, len(needle)))
            position = haystack.find(needle, position + 1)
        return self._acquire("find", {"hits": hits, "cursor": -1})

    def text_find_next(self, handle: FakeHandle) -> bool:
        state = handle.payload
        state["cursor"] += 1
        return state["cursor"] < len(state["hits"])

    def text_get_sch_result_index(self, handle: FakeHandle) -> int:
        state = handle.payload
        return state["hits"][state["cursor"]][0]

    def text_get_sch_count(self, handle: FakeHandle) -> int:
        state = handle.payload
        return state["hits"][state["cursor"]][1]

    def text_find_close(self, handle: FakeHandle) -> None:
        self._release(handle, "find")

    # page objects --------------------------------------------------------
    def page_count_objects(self, page: FakeHandle) -> int:
        return len(page.payload.objects)

    def page_get_object(self, page: FakeHandle, index: int):
        return page.payload.objects[index]

    def page_object_get_type(self, obj: FakeObject) -> int:
        if obj.unclassified:
            raise RuntimeError("object dictionary is damaged")
        return int(obj.kind)

    def image_get_data_raw(self, obj: FakeObject, buffer: Optional[bytearray]) -> int:
        if obj.fail:
            raise RuntimeError("image stream is unreadable")
        return _fill(buffer, obj.raw)

    def image_get_bitmap(self, obj: FakeObject):
        if obj.bitmap is None:
            return None
        width, height, stride, fmt, data = obj.bitmap
        return self._acquire("bitmap", {"info": (width, height, stride, fmt), "data": bytearray(data)})

    def image_get_metadata(self, obj: FakeObject, page: FakeHandle):
        return obj.dpi

    def text_object_get_text(self, obj: FakeObject, text_page: FakeHandle, buffer: Optional[bytearray]) -> int:
        return _fill(buffer, (obj.text + "\x00").encode("utf-16-le"))

    # bitmaps and rendering ----------------------------------------------
    def bitmap_create(self, width: int, height: int, alpha: bool):
        fmt = BitmapFormat.BGRA if alpha else BitmapFormat.BGRX
        stride = width * 4
        return self._acquire("bitmap", {"info": (width, height, stride, int(fmt)), "data": bytearray(stride * height)})

    def bitmap_fill_rect(self, bitmap: FakeHandle, left: int, top: int, width: int, height: int, color: int) -> None:
        _, _, stride, _ = bitmap.payload["info"]
        pixel = color.to_bytes(4, "little")
        data = bitmap.payload["data"]
        for y in range(top, top + height):
            row = y * stride
            for x in range(left, left + width):
                data[row + x * 4 : row + x * 4 + 4] = pixel

    def bitmap_get_info(self, bitmap: FakeHandle):
        return bitmap.payload["info"]

    def bitmap_get_buffer(self, bitmap: FakeHandle) -> bytes:
        return bytes(bitmap.payload["data"])

    def bitmap_destroy(self, bitmap: FakeHandle) -> None:
        self._release(bitmap, "bitmap")

    def render_page_bitmap(self, bitmap, page, start_x, start_y, size_x, size_y, rotate, flags) -> None:
        self.renders.append((start_x, start_y, size_x, size_y, rotate, flags))
        # Paint the top-left pixel red (BGRx byte order).
        bitmap.payload["data"][0:4] = bytes((0x00, 0x00, 0xFF, 0xFF))

    def ffl_draw(self, form, bitmap, page, start_x, start_y, size_x, size_y, rotate, flags) -> None:
        self.calls.append(f"ffl_draw:{flags}")

    # links ---------------------------------------------------------------
    def link_enumerate(self, page: FakeHandle, start_pos: int):
        links = page.payload.links
        if start_pos >= len(links):
            return None
        return start_pos + 1, links[start_pos]

    def link_get_dest_page_index(self, document: FakeHandle, link: FakeLink) -> Optional[int]:
        return link.target

    def link_get_action(self, link: FakeLink):
        return link if link.uri is not None else None

    def action_get_uri_path(self, document: FakeHandle, action: FakeLink, buffer: Optional[bytearray]) -> int:
        return _fill(buffer, (action.uri + "\x00").encode("ascii"))

    def link_get_annot_rect(self, link: FakeLink):
        return link.rect


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------
@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def registry() -> StreamRegistry:
    return StreamRegistry()


@pytest.fixture()
def fake(engine: FakeEngine, registry: StreamRegistry) -> SimpleNamespace:
    """Factories for fake documents and sessions opened over them."""

    def open_session(
        document: FakeDocument,
        password: Optional[str] = None,
        options: Optional[SessionOptions] = None,
    ) -> PdfSession:
        stream = io.BytesIO(engine.add(document))
        return PdfSession(stream, password, engine=engine, registry=registry, options=options)

    return SimpleNamespace(
        Document=FakeDocument,
        Page=FakePage,
        Object=FakeObject,
        Outline=FakeOutline,
        Link=FakeLink,
        open=open_session,
    )


@pytest.fixture()
def text_document() -> FakeDocument:
    return FakeDocument(
        pages=[
            FakePage(text="The cat, the dog."),
            FakePage(text="Nothing here"),
            FakePage(text="the end"),
        ],
        outline=[
            FakeOutline("Chapter 1", 0, [FakeOutline("Section 1.1", 0), FakeOutline("Section 1.2", 1)]),
            FakeOutline("Appendix"),
        ],
        meta={
            "Title": "Animals",
            "Author": "Jane Doe",
            "Producer": "pdfsessionx-tests",
            "CreationDate": "D:20230102030405Z",
            "ModDate": "D:20230102030405+05'30'",
        },
    )


# ----------------------------------------------------------------------
# Real PDF files for the PDFium backend
# ----------------------------------------------------------------------
def build_pdf(objects: List[bytes]) -> bytes:
    """Serialise numbered objects (1-based, catalog first) with a valid xref."""
    out = bytearray(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


def _stream(dictionary: bytes, data: bytes) -> bytes:
    return b"<< " + dictionary + b" /Length %d >>\nstream\n" % len(data) + data + b"\nendstream"


@pytest.fixture()
def text_pdf_bytes() -> bytes:
    content = b"BT /F1 24 Tf 72 720 Td (The cat, the dog.) Tj ET"
    return build_pdf(
        [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
            _stream(b"", content),
        ]
    )


@pytest.fixture()
def image_pdf_bytes() -> bytes:
    from PIL import Image

    jpeg = io.BytesIO()
    Image.new("RGB", (8, 6), (200, 30, 30)).save(jpeg, format="JPEG")
    gray = bytes(range(0, 256, 32))  # 4 x 2 pixels
    content = b"q 40 0 0 30 72 700 cm /Im1 Do Q q 40 0 0 20 72 600 cm /Im2 Do Q"
    return build_pdf(
        [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /XObject << /Im1 4 0 R /Im2 5 0 R >> >> /Contents 6 0 R >>",
            _stream(
                b"/Type /XObject /Subtype /Image /Width 8 /Height 6 /ColorSpace /DeviceRGB "
                b"/BitsPerComponent 8 /Filter /DCTDecode",
                jpeg.getvalue(),
            ),
            _stream(
                b"/Type /XObject /Subtype /Image /Width 4 /Height 2 /ColorSpace /DeviceGray /BitsPerComponent 8",
                gray,
            ),
            _stream(b"", content),
        ]
    )


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    pdf_path = tmp_path / "sample.pdf"
    writer = PdfWriter()
    for index in range(5):
        writer.add_blank_page(width=200 + index * 10, height=300)
    writer.add_metadata({"/Producer": "pdfsessionx-tests", "/Title": "Sample"})
    chapter = writer.add_outline_item("Chapter", 0)
    writer.add_outline_item("Part", 2, parent=chapter)
    with pdf_path.open("wb") as stream:
        writer.write(stream)
    return pdf_path


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[[str, int], Path]:
    def _create(filename: str, pages: int = 1) -> Path:
        path = tmp_path / filename
        writer = PdfWriter()
        for _ in range(pages):
            writer.add_blank_page(width=72, height=72)
        with path.open("wb") as handle:
            writer.write(handle)
        return path

    return _create
