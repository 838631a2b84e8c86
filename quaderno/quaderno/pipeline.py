"""
Pipeline driver: from scanned PDFs to linked Logseq pages.

One run takes the global run lock, then for each document in scope:
stale check -> debounce -> rasterize -> transcribe every page -> link ->
write the page -> record it in the processing index.

A failure inside one document is recorded and the batch moves on. The
index is only touched after the page has been written, so a failed or
interrupted document is simply retried next time.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .config import Settings
from .errors import DocumentError, SetupError, TranscriptionError
from .linking import CatalogRules, build_catalog, link_text
from .notes import NoteRequest, NoteWriter, extract_title
from .ocr import OpenAIConfig, OpenAITranscriber, Transcriber
from .raster import MagickRasterizer, Rasterizer, magick_available
from .secrets import resolve_secret
from .state import DebounceResult, LockCoordinator, ProcessingIndex, canonicalize, needs_processing

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".pdf"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DocumentFailure:
    path: Path
    error: str


@dataclass
class RunReport:
    """What happened to each document in one run."""

    locked: bool = False
    processed: list[tuple[Path, Path]] = field(default_factory=list)  # (document, note)
    skipped_fresh: list[Path] = field(default_factory=list)
    skipped_debounced: list[Path] = field(default_factory=list)
    failed: list[DocumentFailure] = field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return not self.locked and not self.processed and not self.failed

    def summary(self) -> str:
        if self.locked:
            return "Another run is in progress; nothing done."
        return (
            f"{len(self.processed)} processed, {len(self.skipped_fresh)} up to date, "
            f"{len(self.skipped_debounced)} debounced, {len(self.failed)} failed"
        )


def is_supported(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_SUFFIXES and not path.name.startswith(".")


def discover_documents(target: Path) -> list[Path]:
    """A single supported file, or the supported files directly inside a directory."""
    if target.is_file():
        return [target] if is_supported(target) else []
    if target.is_dir():
        return sorted(p for p in target.iterdir() if p.is_file() and is_supported(p))
    raise SetupError(f"Target not found: {target}")


def check_setup(settings: Settings, *, require_ocr: bool = True) -> None:
    """Fail fast on anything that would make every document fail."""
    if not settings.pages_dir.is_dir():
        raise SetupError(
            f"Logseq pages directory not found: {settings.pages_dir}. "
            "Check graph_path / pages_dir in the configuration."
        )
    if require_ocr:
        if not magick_available():
            raise SetupError("ImageMagick is not installed (the `magick` command was not found).")
        if resolve_secret(settings.ocr.api_key_ref) is None:
            raise SetupError(f"OCR API key not available from {settings.ocr.api_key_ref}.")


def default_transcriber(settings: Settings) -> OpenAITranscriber:
    api_key = resolve_secret(settings.ocr.api_key_ref)
    if api_key is None:
        raise SetupError(f"OCR API key not available from {settings.ocr.api_key_ref}.")
    return OpenAITranscriber(
        OpenAIConfig(
            api_key=api_key,
            endpoint=settings.ocr.endpoint,
            model=settings.ocr.model,
            prompt=settings.ocr.prompt,
            max_tokens=settings.ocr.max_tokens,
            timeout_s=settings.ocr.timeout_seconds,
        )
    )


def catalog_rules(settings: Settings) -> CatalogRules:
    return CatalogRules(
        excluded_names=settings.linking.excluded_names,
        reserved_sigil=settings.linking.reserved_sigil,
        highlights_marker=settings.linking.highlights_marker,
    )


class Pipeline:
    """Process documents into notes. Collaborators are injected."""

    def __init__(
        self,
        settings: Settings,
        *,
        index: ProcessingIndex,
        locks: LockCoordinator,
        transcriber: Transcriber,
        rasterizer: Rasterizer,
        writer: NoteWriter,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.index = index
        self.locks = locks
        self.transcriber = transcriber
        self.rasterizer = rasterizer
        self.writer = writer
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transcriber: Transcriber | None = None,
        rasterizer: Rasterizer | None = None,
    ) -> "Pipeline":
        thresholds = settings.thresholds
        return cls(
            settings,
            index=ProcessingIndex(settings.index_path),
            locks=LockCoordinator(
                settings.lock_dir,
                stale_after=thresholds.run_lock_stale_seconds,
                debounce_window=thresholds.debounce_seconds,
            ),
            transcriber=transcriber or default_transcriber(settings),
            rasterizer=rasterizer
            or MagickRasterizer(density=settings.raster.density, quality=settings.raster.quality),
            writer=NoteWriter(settings.pages_dir, tag=settings.notes.tag, style=settings.notes.style),
        )

    def run(self, target: Path, *, force: bool = False) -> RunReport:
        """Process every document under `target` that needs it."""
        documents = discover_documents(target)
        report = RunReport()

        with self.locks.run_lock() as acquired:
            if not acquired:
                report.locked = True
                return report

            index = self.index.load()
            grace = self.settings.thresholds.grace_seconds
            for document in documents:
                try:
                    if not force and not needs_processing(document, index, grace_seconds=grace):
                        logger.info("Up to date: %s", document)
                        report.skipped_fresh.append(document)
                        continue

                    if self.locks.try_debounce(document) is DebounceResult.SKIP:
                        report.skipped_debounced.append(document)
                        continue

                    note_path = self.process_document(document)
                except DocumentError as e:
                    logger.error("Failed to process %s: %s", document, e)
                    report.failed.append(DocumentFailure(document, str(e)))
                    continue
                except OSError as e:
                    logger.error("I/O error while processing %s: %s", document, e)
                    report.failed.append(DocumentFailure(document, str(e)))
                    continue

                report.processed.append((document, note_path))

            self.locks.prune_debounce_markers()

        return report

    def transcribe_document(self, document: Path) -> list[str]:
        """Transcribe all pages; the first failed page aborts the document."""
        with tempfile.TemporaryDirectory(prefix="quaderno-") as tmp:
            pages = self.rasterizer.rasterize(document, Path(tmp))
            logger.info("%s: %d pages", document.name, len(pages))

            texts: list[str] = []
            for page_number, page in enumerate(pages, start=1):
                result = self.transcriber.transcribe(page.read_bytes())
                if not result.ok:
                    raise TranscriptionError(page_number, result.error or "transcription failed")
                logger.debug("%s: page %d transcribed", document.name, page_number)
                texts.append(result.text)
            return texts

    def process_document(self, document: Path) -> Path:
        """Transcribe, link and write one document, then record it in the index."""
        pages = self.transcribe_document(document)

        title = None
        for text in pages:
            title = extract_title(text)
            if title:
                break
        title = title or document.stem

        body = "\n".join(text.rstrip("\n") for text in pages)
        candidates = build_catalog(
            self.settings.pages_dir, self.settings.journals_dir, catalog_rules(self.settings)
        )
        body = link_text(body, candidates)

        note_path = self.writer.write(
            NoteRequest(
                title=title,
                source=Path(canonicalize(document)),
                date=self.clock().astimezone().date(),
                body=body,
            )
        )
        self.index.upsert(document, self.clock())
        logger.info("Note written: %s", note_path)
        return note_path
