"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from jobtext.api import app

    uvicorn jobtext.api:app --reload
"""

from jobtext.api.app import app, create_app

__all__ = ["app", "create_app"]
