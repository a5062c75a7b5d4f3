"""jobtext — turn a job-posting URL (or text containing one) into clean job-description text."""

from jobtext.errors import (
    ExtractionCancelled,
    ExtractionFailedError,
    InvalidURLError,
    JobTextError,
    UnsupportedSchemeError,
)
from jobtext.scraper import ExtractionOutcome, JobTextPipeline, extract_job_text

__all__ = [
    "JobTextPipeline",
    "extract_job_text",
    "ExtractionOutcome",
    "JobTextError",
    "InvalidURLError",
    "UnsupportedSchemeError",
    "ExtractionFailedError",
    "ExtractionCancelled",
]
