"""FastAPI application factory.

Lifespan
--------
On startup the app configures structured logging and builds one
:class:`~jobtext.scraper.pipeline.JobTextPipeline` (configuration only, no
shared connections), exposed to handlers via ``request.app.state.pipeline``.

Routers
-------
    /job-url  — job-posting URL → job-description text
    /health   — liveness probe

Authentication, plan entitlement and rate limiting belong to the hosting
application and are not handled here.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from jobtext.api.routers import job_url as job_url_router
from jobtext.config import Settings
from jobtext.logging_config import setup_logging
from jobtext.scraper.pipeline import JobTextPipeline


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging()
        app.state.pipeline = JobTextPipeline(settings)
        yield

    app = FastAPI(
        title="jobtext API",
        description=(
            "Extracts clean job-description text from a job-posting URL, "
            "a URL embedded in prose, or a bare domain."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(job_url_router.router, tags=["job-url"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn jobtext.api.app:app --reload
app = create_app()
