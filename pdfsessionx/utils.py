"""Utility helpers for pdfsessionx."""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

PathLike = Union[str, os.PathLike]

# Signature of a two-call engine getter: called with ``None`` it returns the
# required buffer size in bytes, called with a buffer of that size it fills it.
BufferProbe = Callable[[Optional[bytearray]], int]


def configure_logging(level: int = logging.INFO) -> None:
    """Configure package-wide logging."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def to_path(path: PathLike) -> Path:
    """Normalize an input path to :class:`Path`."""
    return Path(path).expanduser().resolve()


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = datetime.now(tz=timezone.utc)
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        end = datetime.now(tz=timezone.utc)
        elapsed = (end - start).total_seconds()
        logger.debug("%s completed in %.3fs", message, elapsed)


def fetch_buffer(probe: BufferProbe) -> bytes:
    """Run the engine's "probe length, then fill" protocol.

    The first call passes ``None`` and must return the number of bytes the
    value occupies. A buffer of exactly that size is then allocated and handed
    to the second call. Whatever terminator the engine writes is part of the
    returned bytes; callers strip it according to the field:

    * bookmark titles, metadata values, text object text: UTF-16LE with a
      2-byte NUL terminator (see :func:`decode_utf16`),
    * action URI paths: 7-bit ASCII with a 1-byte NUL terminator,
    * raw image data: exact stream bytes, no terminator.
    """
    length = probe(None)
    if length <= 0:
        return b""
    buffer = bytearray(length)
    probe(buffer)
    return bytes(buffer)


def decode_utf16(raw: bytes) -> str:
    """Decode a UTF-16LE engine string and drop its trailing terminator."""
    if len(raw) % 2:
        raw = raw[:-1]
    text = raw.decode("utf-16-le", errors="replace")
    return text.rstrip("\x00")


def decode_ascii(raw: bytes) -> str:
    """Decode a NUL-terminated 7-bit engine string."""
    return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace")


def _is_number(text: str) -> bool:
    return text.isascii() and text.isdigit()


def parse_pdf_date(raw: str | None) -> datetime | None:
    """Parse a PDF date string (``D:YYYYMMDDHHMMSS[Z|+HH'MM'|-HH'MM']``).

    ``Z`` yields a UTC datetime, an explicit offset yields a fixed-offset
    datetime and a missing zone yields a naive datetime. Malformed input
    returns ``None``.
    """
    if not raw:
        return None
    text = raw.strip()
    if text.startswith("D:"):
        text = text[2:]
    if len(text) < 14 or not _is_number(text[:14]):
        return None
    try:
        base = datetime.strptime(text[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None

    tz_sign = text[14:15]
    if tz_sign in {"Z", "z"}:
        return base.replace(tzinfo=timezone.utc)
    if tz_sign in {"+", "-"}:
        offset = text[15:].replace("'", "")
        hours_text, minutes_text = offset[:2], offset[2:4]
        if not _is_number(hours_text) or (minutes_text and not _is_number(minutes_text)):
            return None
        delta = timedelta(hours=int(hours_text), minutes=int(minutes_text or 0))
        if tz_sign == "-":
            delta = -delta
        try:
            return base.replace(tzinfo=timezone(delta))
        except ValueError:
            return None
    if tz_sign:
        return None
    return base
