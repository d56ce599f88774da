# group_archive/core/backends/embedded.py

import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL

from group_archive.core.backends.sql import SQLBackend
from group_archive.core.config import BackendKind


def _configure_sqlite_connection(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class EmbeddedBackend(SQLBackend):
    """
    Single-file SQLite engine.

    Calls run synchronously on the caller's thread; SQLite's own locking
    serializes writers. The per-call timeout is the SQLite busy timeout.

        backend = EmbeddedBackend("./data.sqlite")
        backend.upsert_group(GroupInfo(id="123@g.us", name="Team"))
    """

    kind = BackendKind.EMBEDDED
    runs_inline = True

    def __init__(self, db_path: str = "./data.sqlite", timeout: float = 5.0):
        self.db_path = db_path
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)

        engine = create_engine(
            URL.create("sqlite", database=db_path),
            echo=False,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
        event.listen(engine, "connect", _configure_sqlite_connection)
        super().__init__(engine)

    @contextmanager
    def foreign_keys_disabled(self, connection):
        # PRAGMA foreign_keys is ignored inside a transaction, so close
        # whatever SQLAlchemy opened before toggling it.
        connection.commit()
        connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
        connection.commit()
        try:
            yield connection
        finally:
            if connection.in_transaction():
                connection.rollback()
            connection.exec_driver_sql("PRAGMA foreign_keys=ON")
            connection.commit()
