"""
ASGI entry point for the Gatherly API.

Re-exports the FastAPI app from src/api/main.py for deployment
(e.g. `uvicorn src.app:app`).
"""

from src.api.main import app

__all__ = ["app"]
