"""Configuration for pdfsessionx sessions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .types import RenderFlags


@dataclass(frozen=True)
class SessionOptions:
    """Options controlling how a :class:`~pdfsessionx.document.PdfSession` behaves.

    Attributes:
        form_env_versions: Form-fill environment revisions to probe, in order.
            Builds with XFA support only accept revision 2, others revision 1.
        form_highlight_field_type: Field type the highlight applies to (0 = all).
        form_highlight_color: RGB highlight colour for form fields.
        form_highlight_alpha: Highlight transparency (0-255).
        fire_document_actions: Run the document JavaScript and open actions.
        merge_tolerance: Maximum gap, in page units, between glyph boxes that
            are merged into one rectangle.
        render_flags: Default flags for :meth:`PdfSession.render_page`.
    """

    form_env_versions: Tuple[int, ...] = (1, 2)
    form_highlight_field_type: int = 0
    form_highlight_color: int = 0xFFE4DD
    form_highlight_alpha: int = 100
    fire_document_actions: bool = True
    merge_tolerance: float = 4.0
    render_flags: RenderFlags = RenderFlags.ANNOT

    def __post_init__(self) -> None:
        if not self.form_env_versions:
            raise ValueError("form_env_versions must list at least one revision")
        if not 0 <= self.form_highlight_alpha <= 255:
            raise ValueError("form_highlight_alpha must be between 0 and 255")
        if self.merge_tolerance < 0:
            raise ValueError("merge_tolerance must not be negative")
