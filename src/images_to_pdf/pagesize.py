"""Named paper sizes and ``WIDTHxHEIGHT`` parsing, in PDF points."""

from __future__ import annotations

from typing import NamedTuple

from .assembler import ImagesToPdfError


class InvalidPageSizeError(ImagesToPdfError):
    """Raised when a page size is neither a known name nor ``WxH``."""


class PageSize(NamedTuple):
    width: float
    height: float


PAPER_SIZES: dict[str, PageSize] = {
    "a0": PageSize(2384, 3370),
    "a1": PageSize(1684, 2384),
    "a2": PageSize(1191, 1684),
    "a3": PageSize(842, 1191),
    "a4": PageSize(595, 842),
    "a5": PageSize(420, 595),
    "a6": PageSize(298, 420),
    "a7": PageSize(210, 298),
    "a8": PageSize(147, 210),
    "a9": PageSize(105, 147),
    "a10": PageSize(74, 105),
    "b0": PageSize(2835, 4008),
    "b1": PageSize(2004, 2835),
    "b1+": PageSize(2041, 2891),
    "b2": PageSize(1417, 2004),
    "b2+": PageSize(1474, 2041),
    "b3": PageSize(1001, 1417),
    "b4": PageSize(709, 1001),
    "b5": PageSize(499, 709),
    "b6": PageSize(354, 499),
    "b7": PageSize(249, 354),
    "b8": PageSize(176, 249),
    "b9": PageSize(125, 176),
    "b10": PageSize(88, 125),
    "c0": PageSize(2599, 3677),
    "c1": PageSize(1837, 2599),
    "c2": PageSize(1298, 1837),
    "c3": PageSize(918, 1298),
    "c4": PageSize(649, 918),
    "c5": PageSize(459, 649),
    "c6": PageSize(323, 459),
    "c7": PageSize(230, 323),
    "c8": PageSize(162, 230),
    "c9": PageSize(113, 162),
    "c10": PageSize(79, 113),
    "letter": PageSize(612, 792),
    "legal": PageSize(612, 1008),
    "junior-legal": PageSize(360, 576),
    "government-letter": PageSize(576, 756),
    "tabloid": PageSize(792, 1224),
    "ledger": PageSize(1224, 792),
    "ansi-a": PageSize(612, 792),
    "ansi-b": PageSize(792, 1224),
    "ansi-c": PageSize(1224, 1584),
    "ansi-d": PageSize(1584, 2448),
    "ansi-e": PageSize(2448, 3168),
}

DEFAULT_PAGE_SIZE = PAPER_SIZES["letter"]


def parse_page_size(value: str) -> PageSize:
    """Parse a preset name (``a4``, ``Letter``) or ``WIDTHxHEIGHT`` in points.

    Raises:
        InvalidPageSizeError: If *value* is not recognised or not positive.
    """
    preset = PAPER_SIZES.get(value.strip().lower())
    if preset is not None:
        return preset

    parts = value.strip().lower().split("x")
    if len(parts) != 2:
        raise InvalidPageSizeError(
            f"Invalid page size: {value!r}\n"
            "Expected a paper name (e.g. a4, letter) or WIDTHxHEIGHT in points"
            " (e.g. 1191x1684)"
        )
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidPageSizeError(
            f"Invalid page size: {value!r} (width and height must be integers)"
        ) from None

    if width <= 0 or height <= 0:
        raise InvalidPageSizeError(
            f"Invalid page size: {value!r} (width and height must be positive)"
        )
    return PageSize(width, height)
