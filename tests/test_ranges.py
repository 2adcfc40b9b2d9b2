from __future__ import annotations

import pytest

from pdfsessionx import InvalidRangeError, PageOutOfBoundsError, parse_page_selector
from pdfsessionx.ranges import format_selector, normalize_page_range, validate_selector


def test_parse_single_pages_and_ranges() -> None:
    assert parse_page_selector("1,3-4") == [(1, 1), (3, 4)]


def test_parse_preserves_order_and_whitespace_tolerance() -> None:
    assert parse_page_selector(" 5 , 2 - 3 ,1") == [(5, 5), (2, 3), (1, 1)]


@pytest.mark.parametrize("selector", ["", "   ", "a", "1,,2", "1-", "-3", "1-2-3", "1.5", "\u00b2", "1-\u00b3", "\u0663"])
def test_parse_rejects_malformed_selectors(selector: str) -> None:
    with pytest.raises(InvalidRangeError):
        parse_page_selector(selector)


def test_parse_rejects_reversed_range() -> None:
    with pytest.raises(InvalidRangeError, match="start page"):
        parse_page_selector("4-2")


@pytest.mark.parametrize("selector", ["0", "0-2"])
def test_parse_rejects_page_zero(selector: str) -> None:
    with pytest.raises(PageOutOfBoundsError):
        parse_page_selector(selector)


def test_validate_against_page_count() -> None:
    validate_selector([(1, 1), (3, 5)], total_pages=5)

    with pytest.raises(PageOutOfBoundsError, match="5 pages"):
        validate_selector([(1, 1), (4, 6)], total_pages=5)
    with pytest.raises(InvalidRangeError):
        validate_selector([], total_pages=5)


def test_format_and_normalize() -> None:
    assert format_selector([(1, 1), (3, 4)]) == "1,3-4"
    assert normalize_page_range("3-3, 1", total_pages=3) == "3,1"
    assert normalize_page_range(None, total_pages=3) is None
