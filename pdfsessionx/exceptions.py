"""
Custom exceptions for pdfsessionx.

This module defines all custom exceptions used throughout the library.
"""

from __future__ import annotations

from typing import Optional

from .types import ErrorCode


class PdfSessionError(Exception):
    """Base exception for all pdfsessionx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown PDF session error occurred."


class OpenError(PdfSessionError):
    """Raised when the engine refuses to open a document."""

    _MESSAGES = {
        ErrorCode.SUCCESS: "Document could not be opened.",
        ErrorCode.UNKNOWN: "Unknown error while opening the document.",
        ErrorCode.FILE: "File not found or could not be read.",
        ErrorCode.FORMAT: "File is not a PDF or is corrupted.",
        ErrorCode.PASSWORD: "Password required or incorrect password.",
        ErrorCode.SECURITY: "Unsupported security scheme.",
        ErrorCode.PAGE: "Page not found or content error.",
    }

    def __init__(self, code: ErrorCode = ErrorCode.UNKNOWN, message: str = "") -> None:
        self.code = ErrorCode.coerce(code)
        super().__init__(message)

    @property
    def default_message(self) -> str:
        return self._MESSAGES.get(self.code, self._MESSAGES[ErrorCode.UNKNOWN])


class DisposedStateError(PdfSessionError):
    """Raised when an operation is attempted on a disposed session or scope."""

    @property
    def default_message(self) -> str:
        return "The PDF session has been disposed."


class PageLoadError(PdfSessionError):
    """Raised when a page or its text index cannot be loaded."""

    def __init__(self, page_index: Optional[int] = None, message: str = "") -> None:
        self.page_index = page_index
        super().__init__(message)

    @property
    def default_message(self) -> str:
        if self.page_index is None:
            return "Unable to load page."
        return f"Unable to load page {self.page_index}."


class InvalidRangeError(PdfSessionError):
    """Raised when a page range selector is invalid."""

    @property
    def default_message(self) -> str:
        return "Invalid page range selector."


class PageOutOfBoundsError(InvalidRangeError):
    """Raised when a page range selector points outside the document."""

    @property
    def default_message(self) -> str:
        return "Requested page number is out of bounds."


class SaveError(PdfSessionError):
    """Raised when the engine fails to serialise a document."""

    @property
    def default_message(self) -> str:
        return "Failed to save the PDF document."
