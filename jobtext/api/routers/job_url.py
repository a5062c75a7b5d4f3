"""Job-URL extraction endpoint.

Routes
------
POST /job-url    Body: {"url": "...", "max_chars": 8000}    → {"text", "sourceUrl"}

Pipeline errors map to transport status codes here:
input errors → 400, extraction failure → 422, client gone → 499.

The blocking pipeline runs on the default thread-pool executor while the
event loop watches the connection; a client that disconnects sets the
run's cancel event so no further fetch attempts are made on its behalf.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from jobtext.errors import (
    ExtractionCancelled,
    ExtractionFailedError,
    InvalidURLError,
    JobTextError,
    UnsupportedSchemeError,
)

router = APIRouter()

# Non-standard "client closed request" status, as used by nginx.
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_SECONDS = 0.5


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class JobUrlRequest(BaseModel):
    url: Optional[str] = None
    max_chars: Optional[int] = Field(default=None, gt=0)


class JobUrlResponse(BaseModel):
    text: str
    source_url: str = Field(serialization_alias="sourceUrl")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error_detail(exc: JobTextError) -> dict[str, str]:
    return {"code": exc.code, "message": exc.message}


async def _cancel_on_disconnect(
    request: Request,
    cancel: threading.Event,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """Set *cancel* once the client has gone away; runs until cancelled."""
    while not cancel.is_set():
        if await request.is_disconnected():
            cancel.set()
            return
        await asyncio.sleep(poll_interval)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/job-url", response_model=JobUrlResponse)
async def job_url_endpoint(body: JobUrlRequest, request: Request) -> JobUrlResponse:
    """Fetch the posting behind *url* and return its job-description text."""
    if not (body.url or "").strip():
        raise HTTPException(
            status_code=400,
            detail={"code": InvalidURLError.code, "message": "Job URL is required"},
        )

    pipeline = request.app.state.pipeline
    cancel = threading.Event()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel))
    loop = asyncio.get_running_loop()
    try:
        outcome = await loop.run_in_executor(
            None,
            functools.partial(
                pipeline.run, body.url, max_chars=body.max_chars, cancel=cancel
            ),
        )
    except (InvalidURLError, UnsupportedSchemeError) as exc:
        raise HTTPException(status_code=400, detail=_error_detail(exc)) from exc
    except ExtractionFailedError as exc:
        raise HTTPException(status_code=422, detail=_error_detail(exc)) from exc
    except ExtractionCancelled as exc:
        raise HTTPException(
            status_code=CLIENT_CLOSED_REQUEST, detail=_error_detail(exc)
        ) from exc
    finally:
        watcher.cancel()

    return JobUrlResponse(text=outcome.text, source_url=outcome.source_url)
