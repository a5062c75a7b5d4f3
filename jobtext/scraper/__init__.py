"""Scraper package — URL resolution, bounded fetching and job-text extraction."""

from jobtext.scraper.extractor import extract_candidates
from jobtext.scraper.fetcher import FetchOrchestrator
from jobtext.scraper.models import (
    ExtractionOutcome,
    FetchAttempt,
    FetchResult,
    Strategy,
    TextCandidate,
)
from jobtext.scraper.pipeline import JobTextPipeline, extract_job_text
from jobtext.scraper.resolver import resolve_url
from jobtext.scraper.unwrap import unwrap_redirects

__all__ = [
    "JobTextPipeline",
    "extract_job_text",
    "resolve_url",
    "unwrap_redirects",
    "FetchOrchestrator",
    "extract_candidates",
    "ExtractionOutcome",
    "FetchAttempt",
    "FetchResult",
    "Strategy",
    "TextCandidate",
]
