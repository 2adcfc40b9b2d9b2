"""Conversions between page space and device space.

Page space is the PDF user space of a page: units of 1/72 inch, y growing
upwards, with the page box (the crop box clipped to the media box) placed
anywhere in that space and the page's own ``/Rotate`` applied on display.
Device space is the pixel grid of a rendering target of ``size_x`` by
``size_y`` pixels placed at ``(start_x, start_y)``, y growing downwards,
optionally rotated by further quarter turns. The mapping is the affine
display matrix the engine uses when it renders a page, so coordinates
computed here line up with rendered output.
"""

from __future__ import annotations

from typing import Optional, Tuple

from .types import Point, Rect

Matrix = Tuple[float, float, float, float, float, float]
Box = Tuple[float, float, float, float]


def page_matrix(box: Box, page_rotation: int = 0) -> Matrix:
    """Return the matrix moving the ``(left, bottom, right, top)`` page box
    to the origin and applying the page's own quarter turns.
    """
    left, bottom, right, top = box
    page_rotation %= 4
    if page_rotation == 0:
        return (1, 0, 0, 1, -left, -bottom)
    if page_rotation == 1:
        return (0, -1, 1, 0, -bottom, right)
    if page_rotation == 2:
        return (-1, 0, 0, -1, right, top)
    return (0, 1, -1, 0, top, -left)


def _multiply(first: Matrix, second: Matrix) -> Matrix:
    """Matrix applying ``first`` then ``second``."""
    a1, b1, c1, d1, e1, f1 = first
    a2, b2, c2, d2, e2, f2 = second
    return (
        a2 * a1 + c2 * b1,
        b2 * a1 + d2 * b1,
        a2 * c1 + c2 * d1,
        b2 * c1 + d2 * d1,
        a2 * e1 + c2 * f1 + e2,
        b2 * e1 + d2 * f1 + f2,
    )


def display_matrix(
    width: float,
    height: float,
    *,
    start_x: float = 0,
    start_y: float = 0,
    size_x: Optional[float] = None,
    size_y: Optional[float] = None,
    rotate: int = 0,
    box: Optional[Box] = None,
    page_rotation: int = 0,
) -> Matrix:
    """Return the ``(a, b, c, d, e, f)`` page-to-device matrix.

    ``x' = a*x + c*y + e`` and ``y' = b*x + d*y + f``. ``width`` and
    ``height`` are the displayed page size, i.e. already swapped when
    ``page_rotation`` is odd. Without ``box`` the page box is taken to start
    at the origin.
    """
    if width <= 0 or height <= 0:
        raise ValueError("Page width and height must be positive")
    if size_x is None:
        size_x = width
    if size_y is None:
        size_y = height

    left, top = start_x, start_y
    right, bottom = start_x + size_x, start_y + size_y

    # Device positions of the page's bottom-left, top-left and bottom-right
    # corners for each quarter turn.
    rotate %= 4
    if rotate == 0:
        x0, y0, x1, y1, x2, y2 = left, bottom, left, top, right, bottom
    elif rotate == 1:
        x0, y0, x1, y1, x2, y2 = left, top, right, top, left, bottom
    elif rotate == 2:
        x0, y0, x1, y1, x2, y2 = right, top, right, bottom, left, top
    else:
        x0, y0, x1, y1, x2, y2 = right, bottom, left, bottom, right, top

    device = (
        (x2 - x0) / width,
        (y2 - y0) / width,
        (x1 - x0) / height,
        (y1 - y0) / height,
        x0,
        y0,
    )
    if box is None:
        box = (0, 0, width, height) if page_rotation % 2 == 0 else (0, 0, height, width)
    return _multiply(page_matrix(box, page_rotation), device)


def _apply(matrix: Matrix, x: float, y: float) -> Tuple[float, float]:
    a, b, c, d, e, f = matrix
    return a * x + c * y + e, b * x + d * y + f


def _apply_inverse(matrix: Matrix, x: float, y: float) -> Tuple[float, float]:
    a, b, c, d, e, f = matrix
    det = a * d - b * c
    if det == 0:
        raise ValueError("Display matrix is not invertible")
    dx, dy = x - e, y - f
    return (d * dx - c * dy) / det, (a * dy - b * dx) / det


def point_from_pdf(width: float, height: float, point: Point, **device) -> Point:
    """Map a page-space point to device space.

    ``device`` accepts the keyword arguments of :func:`display_matrix`.
    """
    return Point(*_apply(display_matrix(width, height, **device), point.x, point.y))


def point_to_pdf(width: float, height: float, point: Point, **device) -> Point:
    """Map a device-space point back to page space."""
    return Point(*_apply_inverse(display_matrix(width, height, **device), point.x, point.y))


def rectangle_from_pdf(width: float, height: float, rect: Rect, **device) -> Rect:
    """Map a page-space rectangle to device space.

    The ``(left, top)`` and ``(right, bottom)`` corners are transformed
    independently; the result is not normalised.
    """
    matrix = display_matrix(width, height, **device)
    x1, y1 = _apply(matrix, rect.left, rect.top)
    x2, y2 = _apply(matrix, rect.right, rect.bottom)
    return Rect(x1, y1, x2, y2)


def rectangle_to_pdf(width: float, height: float, rect: Rect, **device) -> Rect:
    """Map a device-space rectangle back to page space."""
    matrix = display_matrix(width, height, **device)
    x1, y1 = _apply_inverse(matrix, rect.left, rect.top)
    x2, y2 = _apply_inverse(matrix, rect.right, rect.bottom)
    return Rect(x1, y1, x2, y2)


__all__ = [
    "display_matrix",
    "page_matrix",
    "point_from_pdf",
    "point_to_pdf",
    "rectangle_from_pdf",
    "rectangle_to_pdf",
]
