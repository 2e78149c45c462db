"""Render items into page-sized PDF pages in parallel."""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

import img2pdf
from PIL import Image
from pypdf import PageObject, PdfReader
from pypdf.errors import PyPdfError

from .pagesize import PageSize
from .sources import DEFAULT_CONCURRENCY, DocumentPageItem, ImageItem, Item

logger = logging.getLogger(__name__)

JPEG_QUALITY = 90


@dataclass(frozen=True)
class Page:
    """A rendered page and the index of the item it came from."""

    index: int
    pdf_page: PageObject = field(repr=False, compare=False)


@dataclass
class RenderResult:
    """Pages in canonical order plus the paths of items that failed."""

    pages: list[Page] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def _image_to_pdf_page(image: Image.Image, page_size: PageSize) -> PageObject:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=JPEG_QUALITY)

    layout_fun = img2pdf.get_layout_fun(
        pagesize=(float(page_size.width), float(page_size.height)),
        fit=img2pdf.FitMode.into,
    )
    pdf_bytes = img2pdf.convert(buffer.getvalue(), layout_fun=layout_fun)
    return PdfReader(io.BytesIO(pdf_bytes)).pages[0]


def render_item(item: Item, page_size: PageSize) -> PageObject:
    """Turn one item into a PDF page.

    Images are re-encoded as JPEG, scaled to fit *page_size* (upscaling if
    smaller) and centred. Pages of existing documents pass through untouched.
    """
    if isinstance(item, DocumentPageItem):
        return item.page
    if isinstance(item, ImageItem):
        return _image_to_pdf_page(item.image, page_size)
    raise TypeError(f"Unsupported item type: {type(item).__name__}")


async def _render_one(
    index: int,
    item: Item,
    page_size: PageSize,
    semaphore: asyncio.Semaphore,
) -> tuple[int, PageObject | None]:
    async with semaphore:
        try:
            pdf_page = await asyncio.to_thread(render_item, item, page_size)
        except (
            OSError,
            ValueError,
            PyPdfError,
            img2pdf.ImageOpenError,
            img2pdf.PdfTooLargeError,
        ) as exc:
            logger.warning("Couldn't render %s: %s", item.path, exc)
            return index, None
    return index, pdf_page


async def render_pages(
    items: Sequence[Item],
    page_size: PageSize,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_page_done: Callable[[], None] | None = None,
) -> RenderResult:
    """Render all *items* concurrently and return the pages in item order.

    Each task is tagged with its item's index before dispatch; completed
    pages are sorted on that index, so completion order never leaks into
    the result. Items that fail to render are dropped and listed in
    :attr:`RenderResult.failed`.

    Raises:
        ValueError: If *concurrency* is less than 1.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)

    async def _tracked(index: int, item: Item) -> tuple[int, PageObject | None]:
        outcome = await _render_one(index, item, page_size, semaphore)
        if on_page_done is not None:
            on_page_done()
        return outcome

    tasks = [
        asyncio.create_task(_tracked(index, item))
        for index, item in enumerate(items)
    ]

    result = RenderResult()
    try:
        for done in asyncio.as_completed(tasks):
            index, pdf_page = await done
            if pdf_page is None:
                result.failed.append(items[index].path)
            else:
                result.pages.append(Page(index=index, pdf_page=pdf_page))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    result.pages.sort(key=lambda page: page.index)
    result.failed.sort()
    return result
