"""Text normalisation shared by the resolver, extractors and pipeline output."""

from __future__ import annotations

import re

# C0/C1 controls (minus whitespace), soft hyphen, zero-width and
# bidi-control characters, word joiner and BOM.
_INVISIBLE_RE = re.compile(
    "[\x00-\x08\x0e-\x1f\x7f-\x9f"
    "\u00ad\u180e\u200b-\u200f\u202a-\u202e\u2060-\u2064\ufeff]"
)
_WHITESPACE_RE = re.compile(r"\s+")


def strip_invisible(text: str) -> str:
    """Remove invisible/control characters and turn NBSPs into spaces."""
    return _INVISIBLE_RE.sub("", text).replace("\u00a0", " ")


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: str) -> str:
    """Strip invisible characters and collapse whitespace."""
    return collapse_whitespace(strip_invisible(text))


def truncate(text: str, max_chars: int) -> str:
    """Cut *text* to at most *max_chars* characters (no-op when shorter)."""
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip()


def normalize_output(text: str, max_chars: int) -> str:
    """Final output form: cleaned, then capped at *max_chars*."""
    return truncate(clean_text(text), max_chars)
