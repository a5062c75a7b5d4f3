"""Centralised settings for the jobtext extraction pipeline.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Pipeline components never read this module's singleton implicitly: they
take a :class:`Settings` instance as an argument, so tests can build one
with boundary values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_list(name: str, default: str) -> tuple[str, ...]:
    """Split a comma-separated environment variable into a tuple."""
    raw = os.environ.get(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


_DEFAULT_KEYWORDS = (
    "responsibilities,requirements,qualification,skills,experience,"
    "about the role,what you'll do,what you will do,job description"
)

# Job-board markers first, generic containers last.
_DEFAULT_SELECTORS = (
    "#jobDescriptionText",
    ".jobs-description__content",
    ".show-more-less-html__markup",
    "[data-automation-id='jobPostingDescription']",
    "[data-automation='jobAdDetails']",
    "[data-ui='job-description']",
    ".job__description",
    ".posting-page",
    "[data-testid*='job']",
    "[class*='job']",
    "[id*='job']",
    "[class*='description']",
    "[id*='description']",
    "main",
    "article",
    "section",
    "[class*='content']",
)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # URL resolution
    # ------------------------------------------------------------------
    max_input_chars: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_MAX_INPUT_CHARS", "2048"))
    )
    redirect_params: tuple[str, ...] = field(
        default_factory=lambda: _env_list(
            "JOBTEXT_REDIRECT_PARAMS",
            "url,u,q,target,redirect,redirect_url,redirect_uri,r",
        )
    )
    max_unwrap_depth: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_MAX_UNWRAP_DEPTH", "4"))
    )

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    direct_timeout: float = field(
        default_factory=lambda: float(os.environ.get("JOBTEXT_DIRECT_TIMEOUT", "20.0"))
    )
    proxy_timeout: float = field(
        default_factory=lambda: float(os.environ.get("JOBTEXT_PROXY_TIMEOUT", "25.0"))
    )
    proxy_url_template: str = field(
        default_factory=lambda: os.environ.get(
            "JOBTEXT_PROXY_URL_TEMPLATE", "https://r.jina.ai/{url}"
        )
    )
    desktop_user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "JOBTEXT_DESKTOP_UA",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/124.0.0.0 Safari/537.36",
        )
    )
    mobile_user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "JOBTEXT_MOBILE_UA",
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) "
            "AppleWebKit/605.1.15 (KHTML, like Gecko) "
            "Version/17.4 Mobile/15E148 Safari/604.1",
        )
    )
    accept_header: str = field(
        default_factory=lambda: os.environ.get(
            "JOBTEXT_ACCEPT",
            "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        )
    )
    accept_language: str = field(
        default_factory=lambda: os.environ.get(
            "JOBTEXT_ACCEPT_LANGUAGE", "en-US,en;q=0.9"
        )
    )
    max_body_bytes: int = field(
        default_factory=lambda: int(
            os.environ.get("JOBTEXT_MAX_BODY_BYTES", str(5 * 1024 * 1024))
        )
    )

    # ------------------------------------------------------------------
    # Extraction & ranking
    # ------------------------------------------------------------------
    min_text_chars: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_MIN_TEXT_CHARS", "120"))
    )
    dom_min_chars: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_DOM_MIN_CHARS", "120"))
    )
    meta_min_chars: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_META_MIN_CHARS", "40"))
    )
    max_output_chars: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_MAX_OUTPUT_CHARS", "12000"))
    )
    keywords: tuple[str, ...] = field(
        default_factory=lambda: _env_list("JOBTEXT_KEYWORDS", _DEFAULT_KEYWORDS)
    )
    keyword_weight: int = field(
        default_factory=lambda: int(os.environ.get("JOBTEXT_KEYWORD_WEIGHT", "500"))
    )
    selectors: tuple[str, ...] = _DEFAULT_SELECTORS

    @property
    def proxy_enabled(self) -> bool:
        """``True`` when a render-as-text proxy template is configured."""
        return bool(self.proxy_url_template.strip())


# Module-level singleton; import this everywhere:
#   from jobtext.config import settings
settings = Settings()
