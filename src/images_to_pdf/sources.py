"""Parallel discovery and decoding of input images and PDF documents."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pypdf import PageObject, PdfReader
from pypdf.errors import PyPdfError

from .assembler import ImagesToPdfError
from .paths import relative_item_path

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = os.cpu_count() or 4

ALLOWED_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".pdf")

# Directories that behave like opaque files on macOS; never descend into them.
BUNDLE_SUFFIXES = (
    ".app",
    ".bundle",
    ".framework",
    ".kext",
    ".lproj",
    ".photoslibrary",
    ".pkg",
    ".plugin",
    ".xcodeproj",
    ".xcworkspace",
)


class InputDirectoryError(ImagesToPdfError):
    """Raised when the input path is missing or not a directory."""


@dataclass(frozen=True)
class Item:
    """A discovered unit of content destined for exactly one output page."""

    path: str


@dataclass(frozen=True)
class ImageItem(Item):
    image: Image.Image = field(repr=False, compare=False)


@dataclass(frozen=True)
class DocumentPageItem(Item):
    page: PageObject = field(repr=False, compare=False)
    page_number: int = 1


@dataclass(frozen=True)
class SkippedInput:
    """A file that produced no items, and why."""

    path: str
    reason: str


@dataclass
class ScanResult:
    """Items in canonical order plus the inputs that were skipped."""

    items: list[Item] = field(default_factory=list)
    skipped: list[SkippedInput] = field(default_factory=list)


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _is_bundle(name: str) -> bool:
    return name.lower().endswith(BUNDLE_SUFFIXES)


def walk_files(
    root: Path,
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[Path]:
    """Yield every non-hidden file below *root*, skipping bundle directories.

    Directories that cannot be listed are reported to *on_error*.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames[:] = sorted(
            d for d in dirnames if not _is_hidden(d) and not _is_bundle(d)
        )
        for name in sorted(filenames):
            if not _is_hidden(name):
                yield Path(dirpath) / name


def _flatten_image(image: Image.Image) -> Image.Image:
    """Return an ``RGB`` or ``L`` copy with any transparency composited on white."""
    if image.mode in ("RGB", "L"):
        return image.copy()
    if image.mode == "1":
        return image.convert("L")

    has_alpha = "A" in image.getbands() or "transparency" in image.info
    if not has_alpha:
        return image.convert("RGB")

    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


def _load_image(file_path: Path, item_path: str) -> list[Item]:
    with Image.open(file_path) as image:
        image.load()
        flattened = _flatten_image(image)
    return [ImageItem(path=item_path, image=flattened)]


def _load_pdf_pages(file_path: Path, item_path: str) -> list[Item]:
    reader = PdfReader(file_path)
    if reader.is_encrypted and not reader.decrypt(""):
        raise ValueError("PDF is password-protected")

    items: list[Item] = []
    for number, page in enumerate(reader.pages, start=1):
        page_path = item_path if number == 1 else f"{item_path}/Page {number}"
        items.append(
            DocumentPageItem(path=page_path, page=page, page_number=number)
        )

    if not items:
        raise ValueError("PDF contains no pages")
    return items


def _load_file(
    file_path: Path,
    root: Path,
    suffixes: tuple[str, ...],
) -> tuple[list[Item], SkippedInput | None]:
    """Decode one file into its items, or explain why it was skipped."""
    display = file_path.relative_to(root).as_posix()

    if not file_path.is_file():
        return [], None

    suffix = file_path.suffix.lower()
    if suffix not in suffixes:
        return [], SkippedInput(path=display, reason="not an image or PDF file")

    item_path = relative_item_path(file_path, root)
    try:
        if suffix == ".pdf":
            return _load_pdf_pages(file_path, item_path), None
        return _load_image(file_path, item_path), None
    except UnidentifiedImageError:
        return [], SkippedInput(path=display, reason="couldn't decode image")
    except (OSError, ValueError, PyPdfError, Image.DecompressionBombError) as exc:
        return [], SkippedInput(path=display, reason=str(exc) or type(exc).__name__)


async def _load_one(
    file_path: Path,
    root: Path,
    suffixes: tuple[str, ...],
    semaphore: asyncio.Semaphore,
) -> tuple[list[Item], SkippedInput | None]:
    async with semaphore:
        return await asyncio.to_thread(_load_file, file_path, root, suffixes)


async def load_items(
    root: Path | str,
    *,
    suffixes: tuple[str, ...] = ALLOWED_SUFFIXES,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_file_done: Callable[[], None] | None = None,
) -> ScanResult:
    """Discover and decode every qualifying file under *root* in parallel.

    Files are decoded concurrently and complete in no particular order; the
    returned items are sorted by path, which is the canonical order every
    later stage relies on.

    Args:
        root: Input directory.
        suffixes: Lower-case file suffixes to accept.
        concurrency: Maximum number of files decoded at once.
        on_file_done: Called once per file after it has been processed.

    Returns:
        A :class:`ScanResult` with sorted items and skipped inputs.

    Raises:
        ValueError: If *concurrency* is less than 1.
        InputDirectoryError: If *root* is not an existing directory.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    root = Path(root).resolve()
    if not root.is_dir():
        raise InputDirectoryError(f"Input directory not found: {root}")

    suffixes = tuple(s.lower() for s in suffixes)
    semaphore = asyncio.Semaphore(concurrency)
    scan = ScanResult()

    def _unreadable(exc: OSError) -> None:
        where = Path(exc.filename) if exc.filename else root
        try:
            display = where.relative_to(root).as_posix()
        except ValueError:
            display = str(where)
        scan.skipped.append(
            SkippedInput(path=display, reason=exc.strerror or str(exc))
        )

    async def _tracked(file_path: Path) -> tuple[list[Item], SkippedInput | None]:
        outcome = await _load_one(file_path, root, suffixes, semaphore)
        if on_file_done is not None:
            on_file_done()
        return outcome

    files = await asyncio.to_thread(lambda: list(walk_files(root, _unreadable)))
    results = await asyncio.gather(*(_tracked(f) for f in files))

    for skipped in scan.skipped:
        logger.info("Skipping %s: %s", skipped.path, skipped.reason)

    # Visit files in name order so the first of two colliding paths is stable.
    for _, (items, skipped) in sorted(
        zip(files, results), key=lambda pair: pair[0].as_posix()
    ):
        scan.items.extend(items)
        if skipped is not None:
            logger.info("Skipping %s: %s", skipped.path, skipped.reason)
            scan.skipped.append(skipped)

    scan.items.sort(key=lambda item: item.path)

    unique: list[Item] = []
    for item in scan.items:
        if unique and unique[-1].path == item.path:
            duplicate = SkippedInput(path=item.path, reason="duplicate item path")
            logger.info("Skipping %s: %s", duplicate.path, duplicate.reason)
            scan.skipped.append(duplicate)
            continue
        unique.append(item)
    scan.items = unique

    scan.skipped.sort(key=lambda s: s.path)
    return scan
