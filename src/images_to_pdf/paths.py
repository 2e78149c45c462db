"""Path helpers shared by the scanner, the outline builder and the CLI."""

from __future__ import annotations

import os
import unicodedata
from pathlib import Path, PurePosixPath


def relative_item_path(path: Path | str, root: Path | str) -> str:
    """Return *path* relative to *root*, slash-delimited, extension stripped.

    Segments are NFC-normalised so that names coming from decomposing file
    systems sort and compare like their composed spelling.

    Raises:
        ValueError: If *path* is not located under *root*.
    """
    relative = Path(path).relative_to(root)
    stem, _ = os.path.splitext(relative.as_posix())
    return "/".join(split_segments(stem))


def split_segments(item_path: str) -> list[str]:
    """Split an item path into its non-empty, normalised segments."""
    return [
        unicodedata.normalize("NFC", part)
        for part in PurePosixPath(item_path).parts
        if part not in ("", ".", "/")
    ]


def resolve_pdf_path(
    *,
    output: Path | str | None,
    title: str,
) -> Path:
    """Resolve the output PDF file path.

    Rules:
        - ``None`` → ``{cwd}/{title}.pdf``
        - Ends in ``.pdf`` → treated as literal file path
        - Otherwise → treated as directory: ``{path}/{title}.pdf``
    """
    if output is None:
        return Path(f"{title}.pdf").resolve()

    output = Path(output)
    if output.suffix.lower() == ".pdf":
        return output.resolve()

    return (output / f"{title}.pdf").resolve()
