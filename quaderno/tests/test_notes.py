from datetime import date
from pathlib import Path

import frontmatter
import pytest

from quaderno.notes import NoteRequest, NoteWriter, extract_title

REQUEST = NoteRequest(
    title="Roman-Roads",
    source=Path("/scans/roads.pdf"),
    date=date(2026, 10, 1),
    body="- The [[Aqueducts]] of [[Rome]]",
)


@pytest.mark.parametrize(
    "markdown, expected",
    [
        ("# Roman Roads\n- text", "Roman-Roads"),
        ("- intro\n#   Spaced   Out  \n", "Spaced-Out"),
        ("# Café: notes/ideas (v2)!", "Caf-notesideas-v2"),
        ("## Not level one\n# Level One", "Level-One"),
        ("#hashtag only", None),
        ("- no heading at all", None),
        ("# !!!", None),
        ("", None),
    ],
)
def test_extract_title(markdown: str, expected):
    assert extract_title(markdown) == expected


def test_logseq_style(tmp_path: Path):
    writer = NoteWriter(tmp_path / "pages")

    assert writer.render(REQUEST) == (
        "title:: Roman-Roads\n"
        "source:: ![Roman-Roads](/scans/roads.pdf)\n"
        "date:: 2026-10-01\n"
        "\n"
        "#QuadernoNote\n"
        "\n"
        "## extracted text:\n"
        "- The [[Aqueducts]] of [[Rome]]\n"
    )


def test_frontmatter_style(tmp_path: Path):
    writer = NoteWriter(tmp_path / "pages", tag="Scan", style="frontmatter")

    post = frontmatter.loads(writer.render(REQUEST))

    assert post["title"] == "Roman-Roads"
    assert post["source"] == "![Roman-Roads](/scans/roads.pdf)"
    assert post["date"] == "2026-10-01"
    assert post.content.startswith("#Scan\n\n## extracted text:\n")
    assert "[[Aqueducts]]" in post.content


def test_unknown_style(tmp_path: Path):
    with pytest.raises(ValueError):
        NoteWriter(tmp_path, style="org")


def test_write_replaces_existing_page(tmp_path: Path):
    pages = tmp_path / "pages"
    writer = NoteWriter(pages)
    pages.mkdir()
    (pages / "Roman-Roads.md").write_text("old", encoding="utf-8")

    path = writer.write(REQUEST)

    assert path == pages / "Roman-Roads.md"
    assert path.read_text(encoding="utf-8").startswith("title:: Roman-Roads")
    assert sorted(p.name for p in pages.iterdir()) == ["Roman-Roads.md"]


def test_write_keeps_mode_of_replaced_page(tmp_path: Path):
    pages = tmp_path / "pages"
    pages.mkdir()
    existing = pages / "Roman-Roads.md"
    existing.write_text("old", encoding="utf-8")
    existing.chmod(0o600)

    NoteWriter(pages).write(REQUEST)

    assert existing.stat().st_mode & 0o777 == 0o600
