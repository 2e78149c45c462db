"""Shared fixtures: on-the-fly image and PDF inputs, outline inspection."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image
from pypdf import PdfReader, PdfWriter


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Return a factory that writes a solid-colour image to a path."""

    def _make(
        path: Path,
        *,
        width: int = 100,
        height: int = 100,
        mode: str = "RGB",
        color: object = "red",
        format: str | None = None,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, (width, height), color).save(path, format=format)
        return path

    return _make


@pytest.fixture
def make_pdf() -> Callable[..., Path]:
    """Return a factory that writes a PDF with *pages* blank pages."""

    def _make(
        path: Path,
        *,
        pages: int = 3,
        width: float = 200,
        height: float = 300,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        writer = PdfWriter()
        for _ in range(pages):
            writer.add_blank_page(width=width, height=height)
        with open(path, "wb") as fh:
            writer.write(fh)
        return path

    return _make


def _outline_tree(reader: PdfReader, entries: list) -> list[tuple]:
    result: list[tuple] = []
    for entry in entries:
        if isinstance(entry, list):
            title, page_number, _ = result[-1]
            result[-1] = (title, page_number, _outline_tree(reader, entry))
        else:
            result.append(
                (entry.title, reader.get_destination_page_number(entry), [])
            )
    return result


@pytest.fixture
def read_outline() -> Callable[[Path], list[tuple]]:
    """Return a reader turning a PDF's bookmarks into ``(title, page, children)``."""

    def _read(path: Path) -> list[tuple]:
        reader = PdfReader(path)
        return _outline_tree(reader, reader.outline)

    return _read


def _image_width(page) -> int:
    """Pixel width of the single image drawn on an img2pdf page."""
    xobjects = page["/Resources"]["/XObject"].get_object()
    (xobject,) = xobjects.values()
    return int(xobject.get_object()["/Width"])


@pytest.fixture
def page_image_width() -> Callable[..., int]:
    return _image_width
