"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from quaderno.config import Settings
from quaderno.ocr import Transcription


class FakeClock:
    """Epoch-seconds clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRasterizer:
    """Writes one placeholder image per page text it was given."""

    def __init__(self, pages_per_document: int = 2):
        self.pages_per_document = pages_per_document
        self.calls: list[Path] = []

    def rasterize(self, document: Path, workdir: Path) -> list[Path]:
        self.calls.append(document)
        pages = []
        for i in range(self.pages_per_document):
            page = workdir / f"page-{i:03d}.jpg"
            page.write_bytes(f"{document.name}:{i}".encode("utf-8"))
            pages.append(page)
        return pages


class FakeTranscriber:
    """Returns canned page texts keyed by the fake image bytes."""

    def __init__(self, texts: dict[str, str] | None = None, fail_on: set[str] | None = None):
        self.texts = texts or {}
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    def transcribe(self, image: bytes) -> Transcription:
        key = image.decode("utf-8")
        self.calls.append(key)
        if key in self.fail_on:
            return Transcription.failed("provider error: rate limited")
        return Transcription(text=self.texts.get(key, f"Text of {key}\n"), ok=True)


def write_page(directory: Path, name: str, content: str = "") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.md"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def graph(tmp_path: Path) -> Path:
    """An empty Logseq graph with pages/ and journals/."""
    root = tmp_path / "graph"
    (root / "pages").mkdir(parents=True)
    (root / "journals").mkdir(parents=True)
    return root


@pytest.fixture
def settings(graph: Path) -> Settings:
    return Settings.for_graph(graph)


@pytest.fixture
def inbox(tmp_path: Path) -> Path:
    path = tmp_path / "inbox"
    path.mkdir()
    return path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
