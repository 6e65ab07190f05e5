"""
Gatherly API module.

Provides FastAPI HTTP endpoints over the event, calendar and invitation
repositories.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
