"""quaderno - scanned notebook pages to linked Logseq notes."""

__version__ = "0.1.0"
