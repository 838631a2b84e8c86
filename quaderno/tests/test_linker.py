"""Linker behaviour: longest match, whole words, idempotence, literal matching."""

import pytest

from quaderno.linking.catalog import Candidate, CandidateOrigin
from quaderno.linking.linker import find_links, link_text

APOLLO = ["Project Apollo", "Apollo"]


def test_longest_candidate_wins():
    assert link_text("Project Apollo launched", APOLLO) == "[[Project Apollo]] launched"


def test_shorter_candidate_links_elsewhere():
    text = "Project Apollo launched; Apollo landed."
    assert link_text(text, APOLLO) == "[[Project Apollo]] launched; [[Apollo]] landed."


def test_shorter_candidate_never_links_inside_longer_match():
    text = "Project Apollo Mission"
    candidates = ["Project Apollo Mission", "Apollo", "Mission"]
    assert link_text(text, candidates) == "[[Project Apollo Mission]]"


def test_whole_word_only():
    assert link_text("Apollonian ideals", ["Apollo"]) == "Apollonian ideals"
    assert link_text("preApollo", ["Apollo"]) == "preApollo"
    assert link_text("Apollo_11", ["Apollo"]) == "Apollo_11"


def test_punctuation_counts_as_boundary():
    assert link_text("(Apollo), Apollo. Apollo!", ["Apollo"]) == "([[Apollo]]), [[Apollo]]. [[Apollo]]!"


def test_case_insensitive_and_case_preserving():
    assert link_text("ROME and rome and Rome", ["Rome"]) == "[[ROME]] and [[rome]] and [[Rome]]"


def test_all_occurrences_linked():
    text = "Rome\nRome again\n- Rome"
    assert link_text(text, ["Rome"]) == "[[Rome]]\n[[Rome]] again\n- [[Rome]]"


def test_existing_reference_not_rewrapped():
    text = "See [[Rome]] and Rome."
    assert link_text(text, ["Rome"]) == "See [[Rome]] and [[Rome]]."


def test_candidate_inside_existing_reference_not_linked():
    text = "See [[Ancient Rome]] today"
    assert link_text(text, ["Rome"]) == text


def test_tag_reference_protected():
    text = "tagged #[[Project Apollo]]"
    assert link_text(text, APOLLO) == text


def test_regex_metacharacters_are_literal():
    text = "Learning C++ and C# with (Draft) notes; Cxx is not C++"
    candidates = ["(Draft)", "C++", "C#", "a.b"]
    assert (
        link_text(text, candidates)
        == "Learning [[C++]] and [[C#]] with [[(Draft)]] notes; Cxx is not [[C++]]"
    )
    assert link_text("aXb", ["a.b"]) == "aXb"


def test_accepts_candidate_objects():
    candidates = [Candidate("Rome", CandidateOrigin.EXISTING_PAGE)]
    assert link_text("Rome", candidates) == "[[Rome]]"


def test_blank_candidates_ignored():
    assert link_text("a b", ["", "   "]) == "a b"


def test_no_candidates_is_identity():
    assert link_text("anything [[at]] all", []) == "anything [[at]] all"


def test_unicode_words():
    assert link_text("Café Zürich and Zürichsee", ["Zürich"]) == "Café [[Zürich]] and Zürichsee"


def test_brackets_inserted_next_to_a_word_are_settled_in_one_call():
    # "Mr." is rejected on the first pass ("Mr.R"), then whole once Rome is wrapped.
    linked = link_text("Mr.Rome", ["Rome", "Mr."])
    assert linked == "[[Mr.]][[Rome]]"
    assert link_text(linked, ["Rome", "Mr."]) == linked


@pytest.mark.parametrize(
    "text",
    [
        "Project Apollo launched; Apollo landed on the Moon.",
        "[[Apollo]] and Apollo and [[Project Apollo]] and project apollo",
        "The Moon, the moon, MOON. Moonlight.",
        "Mr.Apollo went to the Moon",
        "unbalanced [[Apollo and Apollo",
        "",
    ],
)
def test_idempotent(text: str):
    candidates = ["Project Apollo", "Apollo", "Moon", "Mr."]
    once = link_text(text, candidates)
    assert link_text(once, candidates) == once


@pytest.mark.parametrize(
    "text",
    [
        "Project Apollo launched; Apollo landed.",
        "[[Apollo]] and apollo",
        "C++ (Draft)",
    ],
)
def test_only_markers_inserted(text: str):
    linked = link_text(text, ["Project Apollo", "Apollo", "(Draft)", "C++"])
    assert linked.replace("[[", "").replace("]]", "") == text.replace("[[", "").replace("]]", "")
    assert len(linked) >= len(text)


def test_find_links_reports_spans_in_text_order():
    text = "Apollo and Project Apollo"
    spans = find_links(text, APOLLO)

    assert [(s.start, s.end, s.text, s.candidate) for s in spans] == [
        (0, 6, "Apollo", "Apollo"),
        (11, 25, "Project Apollo", "Project Apollo"),
    ]


def test_aqueducts_of_rome():
    candidates = [
        Candidate("Aqueducts", CandidateOrigin.VIRTUAL_REFERENCE),
        Candidate("Rome", CandidateOrigin.EXISTING_PAGE),
    ]
    linked = link_text("The Aqueducts of Rome were built...", candidates)

    assert linked == "The [[Aqueducts]] of [[Rome]] were built..."
    assert "[[[[" not in linked
