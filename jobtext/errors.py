"""Error taxonomy for the job-text pipeline.

Only input errors and total exhaustion ever reach a caller.  Per-attempt
network failures are absorbed inside the fetch orchestrator.
"""

from __future__ import annotations


class JobTextError(Exception):
    """Base class for pipeline errors surfaced to callers."""

    code = "JobTextError"

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class InvalidURLError(JobTextError):
    """No usable URL could be found in the input."""

    code = "InvalidURL"


class UnsupportedSchemeError(JobTextError):
    """The input names a scheme other than http/https."""

    code = "UnsupportedScheme"


class ExtractionFailedError(JobTextError):
    """Every fetch attempt failed or produced too little text."""

    code = "ExtractionFailed"


class ExtractionCancelled(JobTextError):
    """The caller cancelled the run before it finished."""

    code = "Cancelled"


__all__ = [
    "JobTextError",
    "InvalidURLError",
    "UnsupportedSchemeError",
    "ExtractionFailedError",
    "ExtractionCancelled",
]
