"""ASGI entry point: ``uvicorn main:app`` from the backend directory."""

from __future__ import annotations

from app.main import app


__all__ = ["app"]
