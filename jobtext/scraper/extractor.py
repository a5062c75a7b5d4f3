"""Content extraction: turn a fetched document into ranked-ready text candidates.

Three independent strategies read a parsed document and propose
:class:`TextCandidate` objects:

* structured data — ``JobPosting`` descriptions from JSON-LD blocks;
* DOM heuristics — text of job-description-looking containers, plus the
  whole body as a last resort;
* meta tags — ``og:description`` / ``description`` / ``twitter:description``.

None of them mutate the document, so they can run in any order.  Bodies
that do not look like HTML (render-proxy output is usually plain text)
skip all three and become a single raw-text candidate.
"""

from __future__ import annotations

import html
import json
import re
from collections import deque
from typing import Any, Iterator, List

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from jobtext.config import Settings
from jobtext.scraper.models import Strategy, TextCandidate
from jobtext.scraper.normalize import clean_text

_HTML_MARKER_RE = re.compile(
    r"<(?:html|body|main|article|section|script)\b", re.IGNORECASE
)
_HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template"})
# Tags that start a new line when rendered; inline tags (b, i, span, a) do not.
_BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "body", "br", "dd", "details",
    "div", "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
    "h1", "h2", "h3", "h4", "h5", "h6", "head", "header", "hr", "html", "li",
    "main", "nav", "ol", "option", "p", "pre", "section", "summary", "table",
    "tbody", "td", "tfoot", "th", "thead", "title", "tr", "ul",
})
_BLOCK_END = object()
_META_KEYS = ("og:description", "description", "twitter:description")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def looks_like_html(body: str) -> bool:
    """Return ``True`` if *body* contains any structural HTML tag."""
    return bool(_HTML_MARKER_RE.search(body))


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def visible_text(node: Tag) -> str:
    """Text under *node*, skipping script/style/noscript/template subtrees.

    Block-level elements are separated by whitespace; text split across
    inline tags (``Re<b>quire</b>ments``) stays one word.  Walks the tree
    with an explicit stack so deeply nested markup cannot hit the recursion
    limit.
    """
    parts: List[str] = []
    stack: List[Iterator[Any]] = [iter(node.children)]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
        elif child is _BLOCK_END:
            parts.append(" ")
        elif isinstance(child, Tag):
            if child.name in _HIDDEN_TAGS:
                continue
            if child.name in _BLOCK_TAGS:
                parts.append(" ")
                stack.append(iter((_BLOCK_END,)))
            stack.append(iter(child.children))
        elif isinstance(child, NavigableString) and not isinstance(
            child, PreformattedString
        ):
            parts.append(str(child))
    return clean_text("".join(parts))


def _html_fragment_text(fragment: str) -> str:
    """JSON-LD descriptions are usually (often entity-escaped) HTML; flatten them."""
    fragment = html.unescape(fragment)
    if "<" not in fragment:
        return clean_text(fragment)
    return visible_text(parse_html(fragment))


def _is_job_type(value: Any) -> bool:
    types = value if isinstance(value, list) else [value]
    return any(isinstance(t, str) and "job" in t.lower() for t in types)


def _json_ld_blocks(soup: BeautifulSoup) -> Iterator[Any]:
    for script in soup.find_all("script"):
        script_type = (script.get("type") or "").lower()
        if "ld+json" not in script_type:
            continue
        raw = script.string if script.string is not None else script.get_text()
        try:
            yield json.loads(raw, strict=False)
        except (TypeError, ValueError):
            continue


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def structured_data_candidates(
    soup: BeautifulSoup, source: str, settings: Settings
) -> List[TextCandidate]:
    """Longest ``description`` of any JSON-LD object whose ``@type`` mentions "job".

    Objects are visited breadth-first across top-level arrays, nested arrays
    and ``@graph`` members.  At most one candidate is returned.
    """
    best = ""
    queue: deque[Any] = deque(_json_ld_blocks(soup))
    while queue:
        item = queue.popleft()
        if isinstance(item, list):
            queue.extend(item)
            continue
        if not isinstance(item, dict):
            continue
        graph = item.get("@graph")
        if isinstance(graph, list):
            queue.extend(graph)
        elif isinstance(graph, dict):
            queue.append(graph)
        description = item.get("description")
        if _is_job_type(item.get("@type")) and isinstance(description, str):
            text = _html_fragment_text(description)
            if len(text) > len(best):
                best = text

    if not best:
        return []
    return [TextCandidate(text=best, source=source, strategy=Strategy.STRUCTURED_DATA)]


def dom_candidates(
    soup: BeautifulSoup, source: str, settings: Settings
) -> List[TextCandidate]:
    """Text of every selector match longer than ``dom_min_chars``, then the body.

    Selectors are evaluated in ``settings.selectors`` order; an element
    matched by several selectors is only reported once.
    """
    candidates: List[TextCandidate] = []
    seen: set[int] = set()
    for selector in settings.selectors:
        for element in soup.select(selector):
            if id(element) in seen or element.name in _HIDDEN_TAGS:
                continue
            seen.add(id(element))
            text = visible_text(element)
            if len(text) > settings.dom_min_chars:
                candidates.append(
                    TextCandidate(text=text, source=source, strategy=Strategy.DOM)
                )

    body_text = visible_text(soup.body or soup)
    if body_text:
        candidates.append(TextCandidate(text=body_text, source=source, strategy=Strategy.DOM))
    return candidates


def meta_candidates(
    soup: BeautifulSoup, source: str, settings: Settings
) -> List[TextCandidate]:
    """Description meta values longer than ``meta_min_chars``."""
    candidates: List[TextCandidate] = []
    for key in _META_KEYS:
        for meta in soup.find_all("meta"):
            name = (meta.get("property") or meta.get("name") or "").strip().lower()
            if name != key:
                continue
            text = clean_text(meta.get("content") or "")
            if len(text) > settings.meta_min_chars:
                candidates.append(
                    TextCandidate(text=text, source=source, strategy=Strategy.META)
                )
    return candidates


EXTRACTORS = (structured_data_candidates, dom_candidates, meta_candidates)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_candidates(body: str, settings: Settings) -> List[TextCandidate]:
    """Run every extractor over *body* and return all candidates in discovery order.

    Non-HTML bodies yield a single raw-text candidate (or nothing if empty).
    """
    if not looks_like_html(body):
        text = clean_text(body)
        if not text:
            return []
        return [TextCandidate(text=text, source=body, strategy=Strategy.RAW_TEXT)]

    soup = parse_html(body)
    candidates: List[TextCandidate] = []
    for extractor in EXTRACTORS:
        candidates.extend(extractor(soup, body, settings))
    return candidates
