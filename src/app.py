"""
ASGI entry point for Calendar Link.

Re-exports the FastAPI app from src/api/main.py for deployment
(`uvicorn src.app:app`).
"""

from src.api.main import app

__all__ = ["app"]
