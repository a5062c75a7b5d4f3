"""URL resolution: pull one absolute http(s) URL out of loosely formatted text.

Candidates are tried in decreasing order of precision:

1. the whole input, when it already starts with ``http://``/``https://``;
2. the first ``http(s)://`` token anywhere in the text;
3. the first bare domain (``jobs.example.com/123``), given an implicit
   ``https://``.

The bare-domain pattern is a best-effort heuristic.  It can pick up dotted
tokens in prose that are not hosts, and it is only consulted when no
scheme-qualified URL is present.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from jobtext.config import Settings
from jobtext.errors import InvalidURLError, UnsupportedSchemeError
from jobtext.scraper.normalize import clean_text

_TRAILING_PUNCTUATION = ")].,;!?"
_CLOSER_TO_OPENER = {")": "(", "]": "["}

_SCHEME_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)
_ANY_SCHEME_RE = re.compile(
    r"^(?:[a-z][a-z0-9+.\-]*://|(?:mailto|javascript|data|file|tel|sms):(?!\s))",
    re.IGNORECASE,
)
_URL_TOKEN_CHARS = r"[^\s\"'<>`{}|\\^\[\]]"
# Brackets end a token unless they wrap an IPv6 literal host.
_URL_TOKEN_RE = re.compile(
    rf"https?://(?:\[[0-9a-f:.]+\]{_URL_TOKEN_CHARS}*|{_URL_TOKEN_CHARS}+)",
    re.IGNORECASE,
)
_BARE_DOMAIN_RE = re.compile(
    r"(?:^|(?<=\s))"
    r"((?:[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?\.)+[a-z]{2,}"
    r"(?::\d{1,5})?"
    r"(?:[/?#][^\s\"'<>`{}|\\^\[\]]*)?)"
    r"(?=$|[\s.,;:!?)\]])",
    re.IGNORECASE,
)
_HOST_RE = re.compile(
    r"^(?:localhost|(?:[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?\.)+(?:[a-z]{2,}|xn--[a-z0-9\-]+)"
    r"|\d{1,3}(?:\.\d{1,3}){3}|\[[0-9a-f:.]+\])$",
    re.IGNORECASE,
)


def trim_trailing_punctuation(text: str) -> str:
    """Drop sentence punctuation glued to the end of a URL.

    A closing ``)`` or ``]`` is kept when it balances an opener earlier in
    the string, so ``https://x.com/a(b)`` survives intact.
    """
    while text and text[-1] in _TRAILING_PUNCTUATION:
        last = text[-1]
        opener = _CLOSER_TO_OPENER.get(last)
        if opener is not None and text.count(opener) >= text.count(last):
            break
        text = text[:-1]
    return text


def has_foreign_scheme(text: str) -> bool:
    """``True`` if *text* starts with an explicit scheme other than http(s)."""
    return bool(_ANY_SCHEME_RE.match(text)) and not _SCHEME_PREFIX_RE.match(text)


def _ascii_host(host: str) -> str:
    """IDNA-encode *host* for validation; an unencodable host maps to ''."""
    if host.isascii():
        return host
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError:
        return ""


def normalize_url(candidate: str) -> Optional[str]:
    """Parse *candidate* into canonical absolute form, or ``None``.

    Scheme-less candidates get ``https://``.  The fragment is dropped, scheme
    and host are lower-cased and an empty path becomes ``/``.  Returns
    ``None`` for anything that is not an http(s) URL with a plausible host.
    """
    candidate = candidate.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    if not _ANY_SCHEME_RE.match(candidate):
        candidate = f"https://{candidate}"
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https"):
        return None
    host = parts.hostname or ""
    if not _HOST_RE.match(f"[{host}]" if ":" in host else _ascii_host(host)):
        return None

    netloc = f"[{host}]" if ":" in host else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    userinfo = parts.netloc.rpartition("@")[0]
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    return urlunsplit(
        (parts.scheme.lower(), netloc, parts.path or "/", parts.query, "")
    )


def find_url_candidate(text: str) -> Optional[str]:
    """Return the raw URL-ish substring of *text*, or ``None``.

    The returned candidate has trailing punctuation removed but is otherwise
    unparsed; bare domains are returned without a scheme.
    """
    if _SCHEME_PREFIX_RE.match(text) and not any(ch.isspace() for ch in text):
        whole = _URL_TOKEN_RE.match(text)
        if whole is not None and whole.end() == len(text):
            return trim_trailing_punctuation(text)

    match = _URL_TOKEN_RE.search(text)
    if match:
        return trim_trailing_punctuation(match.group(0))

    match = _BARE_DOMAIN_RE.search(text)
    if match:
        return trim_trailing_punctuation(match.group(1))

    return None


def resolve_url(raw_input: str, settings: Settings) -> str:
    """Resolve *raw_input* to a single absolute http(s) URL.

    Input longer than ``settings.max_input_chars`` is truncated before it is
    scanned.

    Raises:
        InvalidURLError: No URL-like token was found, or it has no usable host.
        UnsupportedSchemeError: The input names a non-http(s) scheme.
    """
    text = clean_text((raw_input or "")[: settings.max_input_chars])
    if not text:
        raise InvalidURLError("A job URL is required.")

    if has_foreign_scheme(text):
        scheme = text.split(":", 1)[0].lower()
        raise UnsupportedSchemeError(
            f"Only http/https URLs are supported (got {scheme!r}).", url=text
        )

    candidate = find_url_candidate(text)
    if candidate is None:
        raise InvalidURLError("No URL found in the input.")

    resolved = normalize_url(candidate)
    if resolved is None:
        raise InvalidURLError(f"Could not parse {candidate!r} as a URL.", url=candidate)
    return resolved
