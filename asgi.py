"""
asgi.py -- Application assembly for Folio Admin.

This is the ONLY file that imports from both api/ and web/. It joins the two
independent layers into a single ASGI app without coupling them to each other.
api/main.py knows nothing about web/; web/routes.py knows nothing about api/.

Run with:  uvicorn asgi:app --reload
           python main.py serve
"""

from typing import Optional

from fastapi import FastAPI

from api.main import create_app
from core.config import Settings
from web.routes import router as web_router


def build_app(settings: Optional[Settings] = None) -> FastAPI:
    """Return the API app with the web UI router mounted."""
    app = create_app(settings)
    # Mount the web UI router here, not in api/main.py.
    app.include_router(web_router, tags=["Web UI"])
    return app


app = build_app()
