"""Unit tests for input discovery and decoding."""

from __future__ import annotations

import random
from pathlib import Path

import pytest
from PIL import Image

from images_to_pdf import sources
from images_to_pdf.sources import (
    DocumentPageItem,
    ImageItem,
    InputDirectoryError,
    SkippedInput,
    _flatten_image,
    load_items,
    walk_files,
)


class TestWalkFiles:
    def test_yields_nested_files_in_sorted_order(self, tmp_path: Path, make_image):
        make_image(tmp_path / "b.png")
        make_image(tmp_path / "a" / "2.png")
        make_image(tmp_path / "a" / "1.png")

        found = [p.relative_to(tmp_path).as_posix() for p in walk_files(tmp_path)]

        assert sorted(found) == ["a/1.png", "a/2.png", "b.png"]

    def test_skips_hidden_files_and_directories(self, tmp_path: Path, make_image):
        make_image(tmp_path / "visible.png")
        make_image(tmp_path / ".hidden.png")
        make_image(tmp_path / ".cache" / "inner.png")

        found = [p.name for p in walk_files(tmp_path)]

        assert found == ["visible.png"]

    def test_skips_bundle_directories(self, tmp_path: Path, make_image):
        make_image(tmp_path / "Viewer.app" / "Contents" / "icon.png")
        make_image(tmp_path / "Photos.photoslibrary" / "pic.png")
        make_image(tmp_path / "plate.png")

        found = [p.name for p in walk_files(tmp_path)]

        assert found == ["plate.png"]


class TestFlattenImage:
    def test_rgb_is_kept(self):
        image = Image.new("RGB", (2, 2), "blue")
        assert _flatten_image(image).mode == "RGB"

    def test_grayscale_is_kept(self):
        image = Image.new("L", (2, 2), 128)
        assert _flatten_image(image).mode == "L"

    def test_transparency_is_composited_on_white(self):
        image = Image.new("RGBA", (2, 2), (0, 0, 0, 0))

        flattened = _flatten_image(image)

        assert flattened.mode == "RGB"
        assert flattened.getpixel((0, 0)) == (255, 255, 255)

    def test_cmyk_is_converted_to_rgb(self):
        image = Image.new("CMYK", (2, 2), (0, 0, 0, 0))
        assert _flatten_image(image).mode == "RGB"


class TestLoadItems:
    @pytest.mark.asyncio
    async def test_items_are_sorted_by_path(self, tmp_path: Path, make_image):
        make_image(tmp_path / "cover.png")
        make_image(tmp_path / "ch1" / "p2.jpg", format="JPEG")
        make_image(tmp_path / "ch1" / "p1.png")

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["ch1/p1", "ch1/p2", "cover"]
        assert all(isinstance(item, ImageItem) for item in scan.items)
        assert scan.skipped == []

    @pytest.mark.asyncio
    async def test_suffix_match_is_case_insensitive(self, tmp_path: Path, make_image):
        make_image(tmp_path / "SCAN.PNG", format="PNG")

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["SCAN"]

    @pytest.mark.asyncio
    async def test_multi_page_pdf_yields_one_item_per_page(
        self, tmp_path: Path, make_pdf, make_image
    ):
        make_pdf(tmp_path / "charts" / "KUNSAN.pdf", pages=3)
        make_image(tmp_path / "charts" / "KUNSAN 2.png")

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == [
            "charts/KUNSAN",
            "charts/KUNSAN 2",
            "charts/KUNSAN/Page 2",
            "charts/KUNSAN/Page 3",
        ]
        pdf_items = [i for i in scan.items if isinstance(i, DocumentPageItem)]
        assert [i.page_number for i in pdf_items] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_bad_inputs_are_skipped_not_fatal(self, tmp_path: Path, make_image):
        make_image(tmp_path / "good.png")
        (tmp_path / "notes.txt").write_text("hello")
        (tmp_path / "broken.png").write_bytes(b"definitely not a png")
        (tmp_path / "broken.pdf").write_bytes(b"definitely not a pdf")

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["good"]
        assert [s.path for s in scan.skipped] == [
            "broken.pdf",
            "broken.png",
            "notes.txt",
        ]
        reasons = {s.path: s.reason for s in scan.skipped}
        assert reasons["notes.txt"] == "not an image or PDF file"
        assert reasons["broken.png"] == "couldn't decode image"

    @pytest.mark.asyncio
    async def test_skips_are_logged(self, tmp_path: Path, caplog):
        (tmp_path / "notes.txt").write_text("hello")

        with caplog.at_level("INFO", logger="images_to_pdf.sources"):
            await load_items(tmp_path)

        assert "notes.txt" in caplog.text

    @pytest.mark.asyncio
    async def test_custom_suffixes(self, tmp_path: Path, make_image, make_pdf):
        make_image(tmp_path / "a.png")
        make_pdf(tmp_path / "b.pdf", pages=1)

        scan = await load_items(tmp_path, suffixes=(".PDF",))

        assert [item.path for item in scan.items] == ["b"]

    @pytest.mark.asyncio
    async def test_discovery_order_does_not_change_result(
        self, tmp_path: Path, make_image, monkeypatch
    ):
        for name in ("c", "a/2", "a/1", "b/x/y", "b/w"):
            make_image(tmp_path / f"{name}.png")
        baseline = [item.path for item in (await load_items(tmp_path)).items]

        real_walk = sources.walk_files

        def _shuffled_walk(root, on_error=None):
            files = list(real_walk(root, on_error))
            random.Random(7).shuffle(files)
            return iter(files)

        monkeypatch.setattr(sources, "walk_files", _shuffled_walk)
        shuffled = [item.path for item in (await load_items(tmp_path)).items]

        assert shuffled == baseline == ["a/1", "a/2", "b/w", "b/x/y", "c"]

    @pytest.mark.asyncio
    async def test_on_file_done_called_per_file(self, tmp_path: Path, make_image):
        make_image(tmp_path / "a.png")
        make_image(tmp_path / "b.png")
        (tmp_path / "c.txt").write_text("x")
        calls = []

        await load_items(tmp_path, on_file_done=lambda: calls.append(1))

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_missing_root_raises(self, tmp_path: Path):
        with pytest.raises(InputDirectoryError):
            await load_items(tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_file_as_root_raises(self, tmp_path: Path, make_image):
        image = make_image(tmp_path / "a.png")

        with pytest.raises(InputDirectoryError):
            await load_items(image)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [0, -1])
    async def test_concurrency_below_one_raises(
        self, tmp_path: Path, make_image, concurrency: int
    ):
        make_image(tmp_path / "a.png")

        with pytest.raises(ValueError, match="at least 1"):
            await load_items(tmp_path, concurrency=concurrency)

    @pytest.mark.asyncio
    async def test_colliding_paths_keep_first_file(self, tmp_path: Path, make_image):
        make_image(tmp_path / "a.jpg", width=10, format="JPEG")
        make_image(tmp_path / "a.png", width=20)

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["a"]
        assert scan.items[0].image.size[0] == 10
        assert scan.skipped == [SkippedInput(path="a", reason="duplicate item path")]

    @pytest.mark.asyncio
    async def test_image_colliding_with_pdf_page_is_skipped(
        self, tmp_path: Path, make_image, make_pdf
    ):
        make_pdf(tmp_path / "P.pdf", pages=2)
        make_image(tmp_path / "P" / "Page 2.png")

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["P", "P/Page 2"]
        assert all(isinstance(item, DocumentPageItem) for item in scan.items)
        assert scan.skipped == [
            SkippedInput(path="P/Page 2", reason="duplicate item path")
        ]

    @pytest.mark.asyncio
    async def test_unreadable_directory_is_reported(
        self, tmp_path: Path, make_image, monkeypatch
    ):
        make_image(tmp_path / "a.png")

        def _walk(top, onerror=None):
            locked = Path(top) / "locked"
            onerror(PermissionError(13, "Permission denied", str(locked)))
            yield str(top), [], ["a.png"]

        monkeypatch.setattr(sources.os, "walk", _walk)

        scan = await load_items(tmp_path)

        assert [item.path for item in scan.items] == ["a"]
        assert scan.skipped == [
            SkippedInput(path="locked", reason="Permission denied")
        ]
