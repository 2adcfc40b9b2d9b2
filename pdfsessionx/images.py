"""Extraction of embedded images from page content."""

from __future__ import annotations

import io
import logging
from typing import List, Optional, Tuple

from PIL import Image

from .backends.base import Handle, PDFEngine
from .page import PageScope
from .types import BitmapFormat, ImageRecord, PageObjectType
from .utils import fetch_buffer

LOGGER = logging.getLogger(__name__)

# Pillow (mode, rawmode) pairs for each engine pixel layout.
_RAW_MODES = {
    BitmapFormat.GRAY: ("L", "L"),
    BitmapFormat.BGR: ("RGB", "BGR"),
    BitmapFormat.BGRX: ("RGB", "BGRX"),
    BitmapFormat.BGRA: ("RGBA", "BGRA"),
}


def bitmap_to_image(
    width: int,
    height: int,
    stride: int,
    pixel_format: int,
    data: bytes,
    dpi: Optional[Tuple[float, float]] = None,
) -> Optional[Image.Image]:
    """Build a Pillow image from engine bitmap pixels.

    Returns ``None`` for pixel layouts that have no Pillow equivalent. ``dpi``
    is recorded in ``image.info`` for grayscale bitmaps.
    """
    try:
        fmt = BitmapFormat(pixel_format)
    except ValueError:
        return None
    if fmt not in _RAW_MODES:
        return None
    mode, rawmode = _RAW_MODES[fmt]
    image = Image.frombytes(mode, (width, height), data, "raw", rawmode, stride, 1)
    if fmt is BitmapFormat.GRAY and dpi is not None:
        image.info["dpi"] = dpi
    return image


class ImageExtractor:
    """Collects the images drawn by a page's content objects."""

    def __init__(self, engine: PDFEngine) -> None:
        self.engine = engine

    def extract(self, scope: PageScope) -> List[ImageRecord]:
        records: List[ImageRecord] = []
        engine = self.engine
        for index in range(engine.page_count_objects(scope.page)):
            try:
                obj = engine.page_get_object(scope.page, index)
                if obj is None or engine.page_object_get_type(obj) != PageObjectType.IMAGE:
                    continue
                record = self._extract_object(scope, obj, index)
            except Exception as exc:
                LOGGER.warning("Failed to extract image object %d on page %d: %s", index, scope.page_index, exc)
                continue
            if record is not None:
                records.append(record)
        LOGGER.debug("Extracted %d images from page %d", len(records), scope.page_index)
        return records

    def _extract_object(self, scope: PageScope, obj: Handle, index: int) -> Optional[ImageRecord]:
        raw = fetch_buffer(lambda buffer: self.engine.image_get_data_raw(obj, buffer))
        if raw:
            try:
                image = Image.open(io.BytesIO(raw))
                image.load()
            except (OSError, ValueError, SyntaxError):
                LOGGER.debug("Image object %d on page %d is not a container format", index, scope.page_index)
            else:
                return ImageRecord(scope.page_index, index, image, pixel_format=None, encoded=True)
        return self._from_bitmap(scope, obj, index)

    def _from_bitmap(self, scope: PageScope, obj: Handle, index: int) -> Optional[ImageRecord]:
        engine = self.engine
        bitmap = engine.image_get_bitmap(obj)
        if bitmap is None:
            LOGGER.warning("Image object %d on page %d could not be rendered", index, scope.page_index)
            return None
        try:
            width, height, stride, pixel_format = engine.bitmap_get_info(bitmap)
            data = engine.bitmap_get_buffer(bitmap)
            dpi = engine.image_get_metadata(obj, scope.page)
            image = bitmap_to_image(width, height, stride, pixel_format, data, dpi)
        finally:
            engine.bitmap_destroy(bitmap)
        if image is None:
            LOGGER.warning(
                "Skipping image object %d on page %d: unsupported bitmap format %d",
                index,
                scope.page_index,
                pixel_format,
            )
            return None
        return ImageRecord(scope.page_index, index, image, pixel_format=BitmapFormat(pixel_format), encoded=False)


__all__ = ["ImageExtractor", "bitmap_to_image"]
