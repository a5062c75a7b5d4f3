"""jobtext CLI — entry-point for running the extraction pipeline by hand.

Usage:
    python cli/main.py --help

Commands:
    resolve   → print the resolved, redirect-unwrapped URL (no network)
    extract   → fetch the posting and print its job-description text
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from jobtext.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import json
from typing import NoReturn, Optional

import typer

from jobtext.config import settings
from jobtext.errors import ExtractionFailedError, JobTextError
from jobtext.logging_config import setup_logging
from jobtext.scraper.pipeline import JobTextPipeline

app = typer.Typer(
    name="jobtext",
    help="Extract job-description text from job-posting URLs.",
    no_args_is_help=True,
)

EXIT_INPUT_ERROR = 1
EXIT_EXTRACTION_FAILED = 2


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    setup_logging()


def _fail(exc: JobTextError) -> NoReturn:
    typer.echo(f"[{exc.code}] {exc.message}", err=True)
    code = EXIT_EXTRACTION_FAILED if isinstance(exc, ExtractionFailedError) else EXIT_INPUT_ERROR
    raise typer.Exit(code=code)


@app.command("resolve")
def resolve(
    text: str = typer.Argument(..., help="A URL, a bare domain, or prose containing one."),
) -> None:
    """Print the URL the pipeline would fetch for TEXT."""
    pipeline = JobTextPipeline(settings)
    try:
        url = pipeline.resolve(text)
    except JobTextError as exc:
        _fail(exc)
    typer.echo(url)


@app.command("extract")
def extract(
    text: str = typer.Argument(..., help="A URL, a bare domain, or prose containing one."),
    max_chars: Optional[int] = typer.Option(
        None, "--max-chars", min=1, help="Cap on the returned text length."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print {text, sourceUrl} as JSON."),
) -> None:
    """Fetch the posting behind TEXT and print its job-description text."""
    pipeline = JobTextPipeline(settings)
    try:
        outcome = pipeline.run(text, max_chars=max_chars)
    except JobTextError as exc:
        _fail(exc)

    if as_json:
        typer.echo(json.dumps(outcome.to_dict(), ensure_ascii=False))
        return
    typer.echo(f"[extract] Source : {outcome.source_url}")
    typer.echo(f"[extract] Chars  : {len(outcome.text)}")
    typer.echo("")
    typer.echo(outcome.text)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
