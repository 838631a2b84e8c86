"""PDF to page-image conversion with ImageMagick."""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from .errors import RasterizeError

logger = logging.getLogger(__name__)

MAGICK_BINARY = "magick"


class Rasterizer(Protocol):
    def rasterize(self, document: Path, workdir: Path) -> list[Path]:
        """Write one image per page into `workdir`; return them in page order."""
        ...


def magick_available() -> bool:
    return shutil.which(MAGICK_BINARY) is not None


class MagickRasterizer:
    """Grayscale JPEG pages via `magick`.

    Text scans do not need colour or high quality; 150 dpi at quality 70
    keeps the OCR payload small.
    """

    def __init__(self, density: int = 150, quality: int = 70, binary: str = MAGICK_BINARY):
        self.density = density
        self.quality = quality
        self.binary = binary

    def command(self, document: Path, workdir: Path) -> list[str]:
        return [
            self.binary,
            "-density",
            str(self.density),
            str(document),
            "-colorspace",
            "Gray",
            "-quality",
            str(self.quality),
            str(workdir / "page-%03d.jpg"),
        ]

    def rasterize(self, document: Path, workdir: Path) -> list[Path]:
        cmd = self.command(document, workdir)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise RasterizeError(f"could not run {self.binary}: {e}") from e

        if result.returncode != 0:
            raise RasterizeError(
                f"{self.binary} exited with {result.returncode}: {result.stderr.strip()}"
            )

        pages = sorted(workdir.glob("page-*.jpg"))
        if not pages:
            raise RasterizeError(f"{self.binary} produced no pages for {document}")
        return pages
