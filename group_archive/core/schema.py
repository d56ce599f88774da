# group_archive/core/schema.py

"""
Schema bootstrap and versioned migrations.

ensure_schema() runs on every start:

  1. baseline   - create groups, messages, history and schema_migrations when
                  absent. Failure here raises SchemaFatal.
  2. migrations - the MIGRATIONS list, in order. A migration whose version is
                  recorded in schema_migrations is skipped. Each one also
                  inspects the live schema first, so re-running it is a no-op.
                  A failure is logged as degraded, left unrecorded (retried on
                  the next start) and the run moves on.
"""

import logging
from typing import Callable, List, NamedTuple

from sqlalchemy import MetaData, column, inspect, table, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from group_archive.core.backends import BackendAdapter, utc_now_iso
from group_archive.core.backends.sql import dialect_insert
from group_archive.core.errors import SchemaDegraded, SchemaFatal
from group_archive.data_schemas import Group, GroupHistory, Message, SchemaMigration

CORE_TABLES = [
    Group.__table__,
    Message.__table__,
    GroupHistory.__table__,
    SchemaMigration.__table__,
]

SHADOW_MESSAGES_TABLE = "__messages_new"
LEGACY_BLOB_COLUMN = "json_dump"
LEGACY_HISTORY_TABLE = "history_info_groups"
DEPRECATED_TABLES = ("group_members", "users")


class Migration(NamedTuple):
    version: int
    name: str
    apply: Callable[["SchemaManager"], None]


class SchemaManager:
    """Brings the database behind a backend up to the current schema."""

    def __init__(self, backend: BackendAdapter):
        self.backend = backend
        self.engine = backend.engine

    def ensure_schema(self) -> List[str]:
        """Create and migrate the schema. Returns the migrations applied now."""
        try:
            SQLModel.metadata.create_all(self.engine, tables=CORE_TABLES)
            applied = self.applied_versions()
        except SQLAlchemyError as e:
            logging.critical(f"Could not create required tables: {e}")
            raise SchemaFatal(f"Could not create required tables: {e}") from e

        newly_applied = []
        for migration in MIGRATIONS:
            if migration.version in applied:
                continue
            try:
                migration.apply(self)
                self._record(migration)
            except (SQLAlchemyError, SchemaDegraded) as e:
                logging.warning(
                    f"Schema migration {migration.version} ({migration.name}) failed, "
                    f"continuing with the existing schema: {e}"
                )
                continue
            logging.info(f"Applied schema migration {migration.version} ({migration.name})")
            newly_applied.append(migration.name)

        return newly_applied

    def applied_versions(self) -> set:
        with Session(self.engine) as session:
            return set(session.exec(select(SchemaMigration.version)).all())

    def _record(self, migration: Migration) -> None:
        stmt = dialect_insert(self.engine.dialect.name, SchemaMigration.__table__).values(
            version=migration.version, name=migration.name, applied_at=utc_now_iso()
        )
        with self.engine.begin() as conn:
            conn.execute(stmt.on_conflict_do_nothing(index_elements=["version"]))

    # ── Migrations ────────────────────────────────────────────

    def add_messages_metadata_blob(self) -> None:
        with self.engine.begin() as conn:
            columns = _column_names(conn, "messages")
            if "metadata_blob" not in columns:
                conn.execute(text("ALTER TABLE messages ADD COLUMN metadata_blob TEXT"))
            if LEGACY_BLOB_COLUMN in columns:
                conn.execute(
                    text(
                        f"UPDATE messages SET metadata_blob = {LEGACY_BLOB_COLUMN} "
                        f"WHERE metadata_blob IS NULL AND {LEGACY_BLOB_COLUMN} IS NOT NULL"
                    )
                )

    def rebuild_messages_without_foreign_keys(self) -> None:
        """Swap messages for a copy with the current schema and no foreign keys."""
        with self.engine.connect() as conn:
            inspector = inspect(conn)
            if not inspector.get_foreign_keys("messages"):
                return
            legacy_columns = {c["name"] for c in inspector.get_columns("messages")}
            rows_before = conn.execute(text("SELECT COUNT(*) FROM messages")).scalar()
            conn.commit()

            shadow = Message.__table__.to_metadata(MetaData(), name=SHADOW_MESSAGES_TABLE)

            # shadow column -> legacy column it is filled from
            sources = {}
            for name in shadow.columns.keys():
                if name in legacy_columns:
                    sources[name] = name
                elif name == "metadata_blob" and LEGACY_BLOB_COLUMN in legacy_columns:
                    sources[name] = LEGACY_BLOB_COLUMN
            legacy = table("messages", *[column(name) for name in set(sources.values())])
            copy_rows = (
                dialect_insert(conn.dialect.name, shadow)
                .from_select(
                    list(sources),
                    select(*[legacy.c[source] for source in sources.values()]).where(
                        legacy.c.id.isnot(None)
                    ),
                )
                .on_conflict_do_nothing(index_elements=["id"])
            )

            with self.backend.foreign_keys_disabled(conn):
                shadow.drop(conn, checkfirst=True)
                shadow.create(conn)
                conn.execute(copy_rows)
                conn.execute(text("DROP TABLE messages"))
                conn.execute(text(f"ALTER TABLE {SHADOW_MESSAGES_TABLE} RENAME TO messages"))
                rows_after = conn.execute(text("SELECT COUNT(*) FROM messages")).scalar()
                if rows_after != rows_before:
                    conn.rollback()
                    # the shadow CREATE may have committed outside the transaction
                    shadow.drop(conn, checkfirst=True)
                    conn.commit()
                    raise SchemaDegraded(
                        f"messages rebuild would keep {rows_after} of {rows_before} rows"
                    )
                conn.commit()
            logging.info(f"Rebuilt messages without foreign keys ({rows_after} rows kept)")

    def import_legacy_group_history(self) -> None:
        """Move rows of the old history table into history, oldest first."""
        with self.engine.begin() as conn:
            if not inspect(conn).has_table(LEGACY_HISTORY_TABLE):
                return
            legacy_columns = _column_names(conn, LEGACY_HISTORY_TABLE)
            # ids are reassigned; ordering by the old id keeps the sequence
            names = [
                c.name
                for c in GroupHistory.__table__.columns
                if c.name != "id" and c.name in legacy_columns
            ]
            legacy = table(LEGACY_HISTORY_TABLE, column("id"), *[column(n) for n in names])
            conn.execute(
                GroupHistory.__table__.insert().from_select(
                    names,
                    select(*[legacy.c[n] for n in names]).order_by(legacy.c.id),
                )
            )
            conn.execute(text(f"DROP TABLE {LEGACY_HISTORY_TABLE}"))

    def drop_deprecated_tables(self) -> None:
        """Drop unused legacy tables that nothing references any more."""
        with self.engine.connect() as conn:
            referenced = _referenced_tables(conn, exclude=DEPRECATED_TABLES)
            conn.commit()
            kept = [name for name in DEPRECATED_TABLES if name in referenced]
            with self.backend.foreign_keys_disabled(conn):
                for name in DEPRECATED_TABLES:
                    if name not in kept:
                        conn.execute(text(f"DROP TABLE IF EXISTS {name}"))
                conn.commit()
        if kept:
            raise SchemaDegraded(f"{', '.join(kept)} still referenced by a foreign key")


def _column_names(conn, table_name: str) -> set:
    return {c["name"] for c in inspect(conn).get_columns(table_name)}


def _referenced_tables(conn, exclude=()) -> set:
    """Tables some other table points at through a foreign key."""
    inspector = inspect(conn)
    referenced = set()
    for name in inspector.get_table_names():
        if name in exclude:
            continue
        referenced.update(fk["referred_table"] for fk in inspector.get_foreign_keys(name))
    return referenced


MIGRATIONS = [
    Migration(1, "add_messages_metadata_blob", SchemaManager.add_messages_metadata_blob),
    Migration(2, "rebuild_messages_without_foreign_keys", SchemaManager.rebuild_messages_without_foreign_keys),
    Migration(3, "import_legacy_group_history", SchemaManager.import_legacy_group_history),
    Migration(4, "drop_deprecated_tables", SchemaManager.drop_deprecated_tables),
]
