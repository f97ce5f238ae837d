"""FastAPI server adapter for docflow.

This module exposes a REST API over the workflow engine.

Design intent:
- Keep business logic in `docflow.engine.*`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from docflow.server.app import create_app
