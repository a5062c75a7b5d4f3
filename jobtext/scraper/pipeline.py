"""Job-description extraction pipeline.

``JobTextPipeline.run`` orchestrates the full path from user input to text:

    resolve → unwrap redirects → fetch attempts → extract → rank → normalise

Fetch attempts are consumed lazily.  Only candidates of at least
``settings.min_text_chars`` characters take part in ranking, so a short,
keyword-dense snippet never hides a longer description on the same page.
The first fetch with any such candidate ends the run; a fetch that succeeds
but yields none counts as a failed attempt.
"""

from __future__ import annotations

import logging
import threading
from contextlib import closing
from typing import Optional

import httpx

from jobtext.config import Settings
from jobtext.config import settings as default_settings
from jobtext.errors import ExtractionFailedError
from jobtext.scraper.extractor import extract_candidates
from jobtext.scraper.fetcher import FetchOrchestrator
from jobtext.scraper.models import ExtractionOutcome, TextCandidate
from jobtext.scraper.normalize import normalize_output
from jobtext.scraper.ranker import pick_best
from jobtext.scraper.resolver import resolve_url
from jobtext.scraper.unwrap import unwrap_redirects

logger = logging.getLogger(__name__)

EXHAUSTED_MESSAGE = (
    "Unable to extract job description from this URL. Please paste it manually."
)


class JobTextPipeline:
    """Resolve, fetch and extract job-description text for one input at a time.

    Instances hold configuration only; concurrent :meth:`run` calls share no
    mutable state unless a caller injects a shared ``httpx.Client``.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.Client] = None,
        orchestrator: Optional[FetchOrchestrator] = None,
    ) -> None:
        self.settings = settings or default_settings
        self.orchestrator = orchestrator or FetchOrchestrator(self.settings, client=client)

    def resolve(self, raw_input: str) -> str:
        """Turn *raw_input* into the final, unwrapped target URL.

        Raises:
            InvalidURLError: No usable URL in the input.
            UnsupportedSchemeError: The input names a non-http(s) scheme.
        """
        resolved = resolve_url(raw_input, self.settings)
        return unwrap_redirects(resolved, self.settings)

    def best_candidate(self, body: str) -> Optional[TextCandidate]:
        """Run every extractor over *body* and return the winning candidate.

        Candidates shorter than ``settings.min_text_chars`` are dropped before
        ranking; ``None`` means nothing on the page was long enough.
        """
        candidates = [
            c
            for c in extract_candidates(body, self.settings)
            if len(c.text) >= self.settings.min_text_chars
        ]
        return pick_best(candidates, self.settings)

    def run(
        self,
        raw_input: str,
        *,
        max_chars: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ExtractionOutcome:
        """Extract job-description text for *raw_input*.

        Args:
            raw_input: A URL, prose containing a URL, or a bare domain.
            max_chars: Output cap supplied by the caller; falls back to
                ``settings.max_output_chars`` when missing or non-positive.
            cancel: Set this event to abort between attempts or mid-body.

        Raises:
            InvalidURLError / UnsupportedSchemeError: Before any network call.
            ExtractionFailedError: Every attempt failed or was too short.
            ExtractionCancelled: *cancel* was set.
        """
        url = self.resolve(raw_input)
        limit = max_chars if max_chars and max_chars > 0 else self.settings.max_output_chars

        with closing(self.orchestrator.fetch_all(url, cancel=cancel)) as results:
            for result in results:
                best = self.best_candidate(result.body)
                if best is None:
                    logger.warning(
                        "pipeline.insufficient",
                        extra={"url": url, "identity": result.attempt.identity},
                    )
                    continue

                outcome = ExtractionOutcome(
                    text=normalize_output(best.text, limit), source_url=url
                )
                logger.info(
                    "pipeline.success",
                    extra={
                        "url": url,
                        "identity": result.attempt.identity,
                        "strategy": best.strategy.name.lower(),
                        "chars": len(outcome.text),
                    },
                )
                return outcome

        logger.warning("pipeline.exhausted", extra={"url": url})
        raise ExtractionFailedError(EXHAUSTED_MESSAGE, url=url)


def extract_job_text(
    raw_input: str,
    *,
    max_chars: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> ExtractionOutcome:
    """One-shot convenience wrapper around :class:`JobTextPipeline`."""
    return JobTextPipeline(settings).run(raw_input, max_chars=max_chars)
