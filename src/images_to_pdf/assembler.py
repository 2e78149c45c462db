"""Assemble rendered pages and the outline into a single PDF file."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from pypdf import PdfWriter
from pypdf.generic import Fit, IndirectObject

if TYPE_CHECKING:
    from .outline import OutlineEntry
    from .renderer import Page


class ImagesToPdfError(Exception):
    """Base exception for images-to-pdf errors."""


class WriteError(ImagesToPdfError):
    """Raised when the output PDF cannot be written."""


def _add_outline(
    writer: PdfWriter,
    entry: OutlineEntry,
    positions: dict[int, int],
    parent: IndirectObject | None = None,
) -> None:
    position = positions[entry.page.index]
    top = float(writer.pages[position].mediabox.top)
    outline_item = writer.add_outline_item(
        entry.title,
        position,
        parent=parent,
        fit=Fit.xyz(left=0, top=top),
    )
    for child in entry.children:
        _add_outline(writer, child, positions, parent=outline_item)


def assemble_pdf(
    *,
    pages: Sequence[Page],
    outline: OutlineEntry | None,
    output_path: Path,
    title: str,
) -> int:
    """Write *pages* in order to *output_path* with *outline* as bookmarks.

    The outline root names the document and is not itself a bookmark; its
    children become the top-level entries.

    Args:
        pages: Rendered pages in canonical order.
        outline: Exported outline root, or ``None`` for no bookmarks.
        output_path: Path to write the output PDF.
        title: Document title stored in the PDF metadata.

    Returns:
        Size of the written PDF in bytes.

    Raises:
        WriteError: If the file cannot be written.
    """
    writer = PdfWriter()
    positions: dict[int, int] = {}
    for position, page in enumerate(pages):
        writer.add_page(page.pdf_page)
        positions[page.index] = position

    if outline is not None and outline.children:
        for entry in outline.children:
            _add_outline(writer, entry, positions)
        writer.page_mode = "/UseOutlines"

    writer.add_metadata({"/Title": title})

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "wb") as fh:
            writer.write(fh)
    except OSError as exc:
        raise WriteError(f"Couldn't create PDF file at {output_path}: {exc}") from exc

    return output_path.stat().st_size
