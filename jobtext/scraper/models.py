"""Data models for the job-text pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional


class Strategy(IntEnum):
    """Extraction strategy tag.  Lower value wins score ties."""

    STRUCTURED_DATA = 0
    DOM = 1
    META = 2
    RAW_TEXT = 3


@dataclass(frozen=True)
class FetchAttempt:
    """One network try: where to go, who to pretend to be, how long to wait."""

    url: str
    identity: str
    timeout: float
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class FetchResult:
    """Outcome of a single :class:`FetchAttempt`.

    Exactly one of ``body`` / ``error`` is meaningful: a successful result has
    a non-empty body and ``error`` is ``None``.
    """

    attempt: FetchAttempt
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[str] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.body)


@dataclass(frozen=True)
class TextCandidate:
    """A span of text proposed by one extraction strategy."""

    text: str
    source: str
    strategy: Strategy


@dataclass(frozen=True)
class ExtractionOutcome:
    """The winning, normalised text and the URL it was extracted for."""

    text: str
    source_url: str

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text, "sourceUrl": self.source_url}
