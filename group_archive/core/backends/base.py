# group_archive/core/backends/base.py

"""
Storage capability interface.

Every backend implements the same surface:

    upsert_group(group)                      -> None
    insert_message_if_absent(message)        -> bool   row written
    insert_history_snapshot(snapshot)        -> int    new surrogate id
    get_latest_history_snapshot(group_id)    -> GroupHistory | None

plus the read side used by the inspection API and the lifecycle hooks
(ping, dispose). Methods are synchronous and raise SQLAlchemy errors; the
stores decide how they run (inline or in a worker thread) and absorb
failures.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

from group_archive.core.config import BackendKind
from group_archive.data_schemas import Group, GroupHistory, Message
from group_archive.models import GroupInfo, GroupSnapshot, MessageRecord


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2024-05-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BackendAdapter(ABC):
    """
    One storage engine behind the stores.

    Subclasses set:
      kind        - BackendKind the factory selected
      runs_inline - True when calls should run on the caller's thread
      engine      - SQLAlchemy engine, used by the SchemaManager
    """

    kind: BackendKind
    runs_inline: bool = True
    engine = None

    # ── Writes ────────────────────────────────────────────────

    @abstractmethod
    def upsert_group(self, group: GroupInfo) -> None:
        """Insert the group or overwrite its name and updated_at."""
        ...

    @abstractmethod
    def insert_message_if_absent(self, message: MessageRecord) -> bool:
        """Insert unless the id exists. Returns True when a row was written."""
        ...

    @abstractmethod
    def insert_history_snapshot(self, snapshot: GroupSnapshot) -> int:
        """Append a snapshot row unconditionally."""
        ...

    # ── Reads ─────────────────────────────────────────────────

    @abstractmethod
    def get_latest_history_snapshot(self, group_id: str) -> Optional[GroupHistory]:
        """Snapshot with the highest id for group_id, or None."""
        ...

    @abstractmethod
    def get_group(self, group_id: str) -> Optional[Group]:
        ...

    @abstractmethod
    def list_groups(self) -> List[Group]:
        ...

    @abstractmethod
    def list_messages(self, group_id: str, limit: int = 50) -> List[Message]:
        ...

    @abstractmethod
    def list_history(self, group_id: str) -> List[GroupHistory]:
        ...

    # ── Lifecycle ─────────────────────────────────────────────

    @abstractmethod
    def ping(self) -> bool:
        """Connectivity check. Must not raise."""
        ...

    def dispose(self) -> None:
        """Release pooled connections."""

    @contextmanager
    def foreign_keys_disabled(self, connection):
        """Run the block with foreign-key enforcement off on connection."""
        yield connection

    def __repr__(self):
        return f"<{self.__class__.__name__} kind={self.kind.value}>"
