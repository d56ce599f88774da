# group_archive/core/backends/__init__.py

"""
Storage backends: one interface, two engines.

    from group_archive.core.backends import create_backend

    backend = create_backend(settings)   # chosen once, from DB_CLIENT
    backend.upsert_group(GroupInfo(id="123@g.us", name="Team"))

Nothing outside this package should check which engine is active.
"""

import logging

from group_archive.core.backends.base import BackendAdapter, utc_now_iso
from group_archive.core.backends.embedded import EmbeddedBackend
from group_archive.core.backends.networked import NetworkedBackend
from group_archive.core.config import BackendKind, Settings

__all__ = [
    "create_backend",
    "BackendAdapter",
    "EmbeddedBackend",
    "NetworkedBackend",
    "utc_now_iso",
]


def create_backend(settings: Settings) -> BackendAdapter:
    """Build the single backend this process will use."""
    if settings.backend_kind is BackendKind.NETWORKED:
        url = settings.networked_url
        logging.info(
            f"Using networked storage at {url.render_as_string(hide_password=True)} "
            f"(pool max {settings.PGPOOL_MAX})"
        )
        return NetworkedBackend(
            url,
            pool_size=settings.PGPOOL_MAX,
            timeout=settings.DB_OPERATION_TIMEOUT,
        )

    logging.info(f"Using embedded storage at {settings.DB_PATH}")
    return EmbeddedBackend(settings.DB_PATH, timeout=settings.DB_OPERATION_TIMEOUT)
