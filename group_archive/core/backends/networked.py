# group_archive/core/backends/networked.py

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.pool import QueuePool

from group_archive.core.backends.sql import SQLBackend
from group_archive.core.config import BackendKind


class NetworkedBackend(SQLBackend):
    """
    Client-server engine (PostgreSQL) behind a bounded connection pool.

    The pool holds at most pool_size connections with no overflow; a caller
    waits at most `timeout` seconds for one. Calls are dispatched off the
    event loop by the stores, so writes can be fire-and-forget.

        backend = NetworkedBackend(
            "postgresql+psycopg2://user:pass@db:5432/archive?sslmode=require",
            pool_size=10,
        )
    """

    kind = BackendKind.NETWORKED
    runs_inline = False

    def __init__(self, url, pool_size: int = 10, timeout: float = 5.0):
        self.url = make_url(url)
        self.pool_size = pool_size

        if self.url.get_backend_name() == "postgresql":
            connect_args = {
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            }
        else:
            # Any other SQLAlchemy dialect we accept is SQLite
            connect_args = {"check_same_thread": False, "timeout": timeout}

        engine = create_engine(
            self.url,
            echo=False,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=timeout,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
        super().__init__(engine)
