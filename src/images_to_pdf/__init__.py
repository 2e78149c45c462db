"""images-to-pdf: Convert a directory tree of images into a PDF with an outline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from .assembler import ImagesToPdfError, WriteError, assemble_pdf
from .outline import OutlineEntry, OutlineNode, OutlineTree
from .pagesize import (
    DEFAULT_PAGE_SIZE,
    PAPER_SIZES,
    InvalidPageSizeError,
    PageSize,
    parse_page_size,
)
from .paths import resolve_pdf_path
from .renderer import Page, RenderResult, render_pages
from .sources import (
    DEFAULT_CONCURRENCY,
    DocumentPageItem,
    ImageItem,
    InputDirectoryError,
    Item,
    ScanResult,
    SkippedInput,
    load_items,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_PAGE_SIZE",
    "PAPER_SIZES",
    "ConversionResult",
    "DocumentPageItem",
    "ImageItem",
    "ImagesToPdfError",
    "InputDirectoryError",
    "InvalidPageSizeError",
    "Item",
    "OutlineEntry",
    "OutlineNode",
    "OutlineTree",
    "Page",
    "PageSize",
    "RenderResult",
    "ScanResult",
    "SkippedInput",
    "WriteError",
    "assemble_pdf",
    "convert",
    "default_title",
    "load_items",
    "parse_page_size",
    "render_pages",
    "resolve_pdf_path",
]


@dataclass
class ConversionResult:
    """Summary of a finished conversion."""

    title: str
    item_count: int
    page_count: int
    skipped: list[SkippedInput]
    failed: list[str]
    total_bytes: int
    output_path: Path


def default_title(input_dir: Path | str) -> str:
    """Return the document title used when none is given: the folder name."""
    return Path(input_dir).resolve().name


async def convert(
    input_dir: Path | str,
    output: Path | str | None = None,
    *,
    title: str | None = None,
    page_size: PageSize | str | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> ConversionResult:
    """Convert a directory tree of images and PDFs into one outlined PDF.

    Pages appear in path order. Every folder becomes an outline entry that
    links to the first page found beneath it.

    Args:
        input_dir: Directory to scan recursively.
        output: Output path. Omit for ``{title}.pdf`` in the CWD, pass a
            ``.pdf`` path to use it literally, or pass a directory to save
            ``{title}.pdf`` inside it.
        title: Title stored in the PDF metadata. Defaults to
            the input directory's name.
        page_size: A :class:`PageSize`, a paper name, or ``WIDTHxHEIGHT``.
            Defaults to US letter.
        concurrency: Maximum number of files decoded or pages rendered at
            once.

    Returns:
        A :class:`ConversionResult` summarizing the outcome.

    Raises:
        InputDirectoryError: If *input_dir* is not a directory.
        InvalidPageSizeError: If *page_size* cannot be parsed.
        WriteError: If the output PDF cannot be written.

    Example::

        import asyncio
        from images_to_pdf import convert

        result = asyncio.run(convert("charts", "charts.pdf", page_size="a4"))
        print(f"Wrote {result.page_count} pages to {result.output_path}")
    """
    title = title or default_title(input_dir)
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    elif isinstance(page_size, str):
        page_size = parse_page_size(page_size)

    pdf_path = resolve_pdf_path(output=output, title=title)

    scan = await load_items(input_dir, concurrency=concurrency)

    rendered, tree = await asyncio.gather(
        render_pages(scan.items, page_size, concurrency=concurrency),
        asyncio.to_thread(OutlineTree.from_items, title, scan.items),
    )
    tree.bind_pages(scan.items, rendered.pages)

    total_bytes = assemble_pdf(
        pages=rendered.pages,
        outline=tree.export(),
        output_path=pdf_path,
        title=title,
    )

    return ConversionResult(
        title=title,
        item_count=len(scan.items),
        page_count=len(rendered.pages),
        skipped=scan.skipped,
        failed=rendered.failed,
        total_bytes=total_bytes,
        output_path=pdf_path,
    )
