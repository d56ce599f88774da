# group_archive/core/backends/sql.py

import logging
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from group_archive.core.backends.base import BackendAdapter, utc_now_iso
from group_archive.data_schemas import Group, GroupHistory, Message
from group_archive.models import GroupInfo, GroupSnapshot, MessageRecord

# Both dialects spell "INSERT ... ON CONFLICT" the same way in SQLAlchemy
_DIALECT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


def dialect_insert(dialect_name: str, table):
    """INSERT construct supporting on_conflict_* for the given dialect."""
    try:
        return _DIALECT_INSERTS[dialect_name](table)
    except KeyError:
        raise ValueError(
            f"Unsupported SQL dialect '{dialect_name}'. "
            f"Supported: {', '.join(sorted(_DIALECT_INSERTS))}"
        )


class SQLBackend(BackendAdapter):
    """Store operations shared by every SQLAlchemy engine we support."""

    def __init__(self, engine):
        self.engine = engine
        self.dialect = engine.dialect.name
        if self.dialect not in _DIALECT_INSERTS:
            raise ValueError(f"Unsupported SQL dialect '{self.dialect}'")

    def upsert_group(self, group: GroupInfo) -> None:
        now = utc_now_iso()
        stmt = dialect_insert(self.dialect, Group.__table__).values(
            id=group.id, name=group.name, created_at=now, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={"name": stmt.excluded.name, "updated_at": stmt.excluded.updated_at},
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def insert_message_if_absent(self, message: MessageRecord) -> bool:
        now = utc_now_iso()
        stmt = dialect_insert(self.dialect, Message.__table__).values(
            id=message.id,
            group_id=message.group_id,
            user_id=message.user_id,
            body=message.body,
            type=message.type,
            timestamp=message.timestamp,
            created_at=now,
            updated_at=now,
            metadata_blob=message.metadata_blob,
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["id"])
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount == 1

    def insert_history_snapshot(self, snapshot: GroupSnapshot) -> int:
        now = utc_now_iso()
        stmt = GroupHistory.__table__.insert().values(
            group_id=snapshot.group_id,
            name=snapshot.name,
            users_count=snapshot.users_count,
            description=snapshot.description,
            created_at=now,
            updated_at=now,
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.inserted_primary_key[0]

    def get_latest_history_snapshot(self, group_id: str) -> Optional[GroupHistory]:
        with Session(self.engine) as session:
            return session.exec(
                select(GroupHistory)
                .where(GroupHistory.group_id == group_id)
                .order_by(GroupHistory.id.desc())
                .limit(1)
            ).first()

    def get_group(self, group_id: str) -> Optional[Group]:
        with Session(self.engine) as session:
            return session.get(Group, group_id)

    def list_groups(self) -> List[Group]:
        with Session(self.engine) as session:
            return list(session.exec(select(Group).order_by(Group.name, Group.id)).all())

    def list_messages(self, group_id: str, limit: int = 50) -> List[Message]:
        with Session(self.engine) as session:
            return list(
                session.exec(
                    select(Message)
                    .where(Message.group_id == group_id)
                    .order_by(Message.timestamp.desc().nulls_last(), Message.id.desc())
                    .limit(limit)
                ).all()
            )

    def list_history(self, group_id: str) -> List[GroupHistory]:
        with Session(self.engine) as session:
            return list(
                session.exec(
                    select(GroupHistory)
                    .where(GroupHistory.group_id == group_id)
                    .order_by(GroupHistory.id)
                ).all()
            )

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logging.warning(f"Database ping failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
