"""Engine abstractions for pdfsessionx."""

from .base import Handle, PDFEngine
from .pdfium_backend import PdfiumEngine, get_default_engine

__all__ = [
    "Handle",
    "PDFEngine",
    "PdfiumEngine",
    "get_default_engine",
]
