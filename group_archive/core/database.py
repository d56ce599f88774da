# group_archive/core/database.py

import logging

from fastapi import Request

from group_archive.core.backends import BackendAdapter, create_backend
from group_archive.core.config import Settings
from group_archive.core.errors import SchemaFatal
from group_archive.core.schema import SchemaManager


def init_db(settings: Settings) -> BackendAdapter:
    """Build the configured backend and bring its schema up to date.

    Raises SchemaFatal when the required tables cannot be created; nothing
    may use the backend in that case.
    """
    backend = create_backend(settings)
    try:
        applied = SchemaManager(backend).ensure_schema()
    except SchemaFatal:
        backend.dispose()
        raise
    if applied:
        logging.info(f"Database schema migrated: {', '.join(applied)}")
    return backend


def get_backend(request: Request) -> BackendAdapter:
    """FastAPI dependency returning the process-wide backend."""
    return request.app.state.backend
