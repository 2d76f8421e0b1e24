"""
Calendar Link API module.

Provides FastAPI HTTP endpoints for account linking and calendar export.
"""

from src.api.main import app, run_server

__all__ = ["app", "run_server"]
