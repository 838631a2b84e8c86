import subprocess
from pathlib import Path

import pytest

from quaderno.errors import RasterizeError
from quaderno.raster import MagickRasterizer


def test_command_line(tmp_path: Path):
    cmd = MagickRasterizer(density=200, quality=60).command(Path("/scans/a.pdf"), tmp_path)

    assert cmd == [
        "magick",
        "-density",
        "200",
        "/scans/a.pdf",
        "-colorspace",
        "Gray",
        "-quality",
        "60",
        str(tmp_path / "page-%03d.jpg"),
    ]


def test_pages_returned_in_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    def fake_run(cmd, **kwargs):
        for i in (2, 0, 1):
            (tmp_path / f"page-{i:03d}.jpg").write_bytes(b"jpg")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr("quaderno.raster.subprocess.run", fake_run)

    pages = MagickRasterizer().rasterize(Path("a.pdf"), tmp_path)

    assert [p.name for p in pages] == ["page-000.jpg", "page-001.jpg", "page-002.jpg"]


def test_non_zero_exit(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "quaderno.raster.subprocess.run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout="", stderr="no images defined"),
    )

    with pytest.raises(RasterizeError, match="no images defined"):
        MagickRasterizer().rasterize(Path("a.pdf"), tmp_path)


def test_no_pages(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        "quaderno.raster.subprocess.run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="", stderr=""),
    )

    with pytest.raises(RasterizeError, match="no pages"):
        MagickRasterizer().rasterize(Path("a.pdf"), tmp_path)


def test_missing_binary(tmp_path: Path):
    rasterizer = MagickRasterizer(binary=str(tmp_path / "no-such-magick"))

    with pytest.raises(RasterizeError, match="could not run"):
        rasterizer.rasterize(Path("a.pdf"), tmp_path)
