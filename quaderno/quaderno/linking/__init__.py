"""Reference catalog and automatic [[reference]] linking."""

from .catalog import Candidate, CandidateOrigin, CatalogRules, build_catalog
from .linker import LinkSpan, find_links, link_text
from .parser import extract_references, marked_spans

__all__ = [
    "Candidate",
    "CandidateOrigin",
    "CatalogRules",
    "build_catalog",
    "LinkSpan",
    "find_links",
    "link_text",
    "extract_references",
    "marked_spans",
]
