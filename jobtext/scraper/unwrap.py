"""Redirect unwrapping for tracking/analytics wrapper links.

A wrapper link carries its real destination in a query parameter
(``?url=``, ``?u=``, ``?redirect_uri=`` …).  :func:`unwrap_redirects`
follows those hints recursively, bounded by ``settings.max_unwrap_depth``.

The key list is a heuristic: novel redirect schemes are not recognised,
and a parameter such as ``q`` only unwraps when its value parses as a URL
with a real host.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from jobtext.config import Settings
from jobtext.scraper.resolver import normalize_url, trim_trailing_punctuation


def _raw_query_values(query: str) -> dict[str, str]:
    """Map each query key to the raw (still encoded) value of its first occurrence."""
    values: dict[str, str] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        key = unquote_plus(key).lower()
        values.setdefault(key, value)
    return values


def _decode(value: str) -> str:
    try:
        return unquote_plus(value, errors="strict")
    except UnicodeDecodeError:
        return value


def redirect_target(url: str, settings: Settings) -> Optional[str]:
    """Return the URL carried by the highest-priority redirect key, if any.

    Only the first key present (in ``settings.redirect_params`` order) is
    considered.  Returns ``None`` when no key is present or its value does
    not parse as an http(s) URL.
    """
    values = _raw_query_values(urlsplit(url).query)
    for key in settings.redirect_params:
        if key.lower() not in values:
            continue
        value = trim_trailing_punctuation(_decode(values[key.lower()]).strip())
        return normalize_url(value) if value else None
    return None


def _strip_fragment(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))


def _unwrap(url: str, settings: Settings, depth: int) -> str:
    if depth >= settings.max_unwrap_depth:
        return url
    target = redirect_target(url, settings)
    # A wrapper pointing at itself must not recurse.
    if target is None or target == url:
        return url
    return _unwrap(target, settings, depth + 1)


def unwrap_redirects(url: str, settings: Settings) -> str:
    """Follow redirect-carrying query parameters from *url* to its final target.

    The result never has a fragment.  When the depth bound is hit the URL
    reached so far is returned as-is.
    """
    start = normalize_url(url) or _strip_fragment(url)
    return _strip_fragment(_unwrap(start, settings, 0))
