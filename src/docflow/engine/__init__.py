"""Document workflow engine.

Provides:
- Settings loaded from .env
- Structured logging
- A SQLite-backed transactional store
- Workflow definitions and atomic event application
- A small CLI surface
"""
