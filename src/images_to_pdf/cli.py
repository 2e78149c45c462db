"""Command-line interface for images-to-pdf."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TimeRemainingColumn,
)

from . import default_title
from .assembler import ImagesToPdfError, assemble_pdf
from .outline import OutlineTree
from .pagesize import (
    DEFAULT_PAGE_SIZE,
    InvalidPageSizeError,
    PageSize,
    parse_page_size,
)
from .paths import resolve_pdf_path
from .renderer import RenderResult, render_pages
from .sources import DEFAULT_CONCURRENCY, Item, load_items


def _format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable string."""
    value = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def _page_size_arg(value: str) -> PageSize:
    try:
        return parse_page_size(value)
    except InvalidPageSizeError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _concurrency_arg(value: str) -> int:
    try:
        jobs = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid job count: {value!r}") from None
    if jobs < 1:
        raise argparse.ArgumentTypeError(f"job count must be at least 1, got {jobs}")
    return jobs


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="images-to-pdf",
        description=(
            "Convert a nested directory of images (and PDF files) into a"
            " single PDF whose outline mirrors the folder structure."
        ),
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Input directory containing the image files",
    )
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help=(
            "Output path: a .pdf file path, a directory, or omit for"
            " {title}.pdf in CWD"
        ),
    )
    parser.add_argument(
        "-t",
        "--title",
        default=None,
        help="Title of the table of contents (default: input directory name)",
    )
    parser.add_argument(
        "-s",
        "--size",
        type=_page_size_arg,
        default=DEFAULT_PAGE_SIZE,
        dest="page_size",
        help=(
            "Page size: a name (e.g. 'a4', 'letter') or width and height in"
            " points (e.g. '1191x1684'). Default: letter"
        ),
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_concurrency_arg,
        default=DEFAULT_CONCURRENCY,
        dest="concurrency",
        help=(
            "Maximum number of files processed at once"
            f" (default: {DEFAULT_CONCURRENCY})"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log every skipped file",
    )
    return parser


def _configure_logging(*, console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


async def _render_with_progress(
    *,
    console: Console,
    items: list[Item],
    page_size: PageSize,
    concurrency: int,
) -> RenderResult:
    """Render pages with a rich progress bar."""
    progress = Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )
    with progress:
        task_id = progress.add_task(
            description="Rendering pages",
            total=len(items),
        )
        return await render_pages(
            items,
            page_size,
            concurrency=concurrency,
            on_page_done=lambda: progress.advance(task_id=task_id),
        )


async def _async_main(args: argparse.Namespace) -> None:
    console = Console()
    start_time = time.monotonic()

    title = args.title or default_title(args.input)
    pdf_path = resolve_pdf_path(output=args.output, title=title)

    with console.status("[bold blue]Scanning input files..."):
        scan = await load_items(args.input, concurrency=args.concurrency)

    console.print(
        f'Found [bold]{len(scan.items)}[/bold] pages in "{args.input}"'
        f" ({len(scan.skipped)} files skipped)"
    )

    rendered, tree = await asyncio.gather(
        _render_with_progress(
            console=console,
            items=scan.items,
            page_size=args.page_size,
            concurrency=args.concurrency,
        ),
        asyncio.to_thread(OutlineTree.from_items, title, scan.items),
    )
    tree.bind_pages(scan.items, rendered.pages)

    with console.status("[bold blue]Assembling PDF..."):
        pdf_size = assemble_pdf(
            pages=rendered.pages,
            outline=tree.export(),
            output_path=pdf_path,
            title=title,
        )

    elapsed = time.monotonic() - start_time

    summary_lines = [
        f"[bold]Pages written:[/bold] {len(rendered.pages)}/{len(scan.items)}",
    ]
    if scan.skipped:
        summary_lines.append(
            f"[bold yellow]Skipped files:[/bold yellow] {len(scan.skipped)}"
        )
        for skipped in scan.skipped:
            summary_lines.append(
                f"  [yellow]- {escape(skipped.path)}:"
                f" {escape(skipped.reason)}[/yellow]"
            )
    if rendered.failed:
        summary_lines.append(
            f"[bold red]Failed pages:[/bold red] {len(rendered.failed)}"
        )
        for name in rendered.failed:
            summary_lines.append(f"  [red]- {escape(name)}[/red]")
    summary_lines.append(f"[bold]PDF size:[/bold] {_format_size(pdf_size)}")
    summary_lines.append(f"[bold]Output:[/bold] {pdf_path}")

    console.print(Panel(
        "\n".join(summary_lines),
        title=f"[bold green]Done in {elapsed:.1f}s[/bold green]",
        border_style="green" if not (scan.skipped or rendered.failed) else "yellow",
    ))


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``images-to-pdf`` CLI command."""
    console = Console(stderr=True)
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(console=console, verbose=args.verbose)

    try:
        asyncio.run(_async_main(args=args))
    except ImagesToPdfError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)
