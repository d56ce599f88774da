# group_archive/services/history_store.py

import asyncio
import logging
from collections import Counter

from group_archive.core.errors import ReadFailed
from group_archive.models import GroupSnapshot, StoreResult
from group_archive.services.store_base import BaseStore


class HistoryStore(BaseStore):
    """Change-detected, append-only log of group snapshots.

    insert_snapshot_if_changed reads the latest row and then writes, so two
    concurrent calls for one group can both insert the same new value. With
    serialize_per_group=True calls for the same group_id take turns on an
    asyncio.Lock, which removes that race inside this process only.
    """

    def __init__(self, backend, timeout: float = 5.0, supervisor=None, serialize_per_group: bool = False):
        super().__init__(backend, timeout=timeout, supervisor=supervisor)
        self.serialize_per_group = serialize_per_group
        self._locks = {}
        self._users = Counter()  # holders plus waiters per group id

    async def insert_history_snapshot(self, snapshot: GroupSnapshot) -> StoreResult:
        """Append a snapshot without comparing it to the previous one."""
        result = await self._execute(
            "insert_history_snapshot",
            snapshot.group_id,
            self.backend.insert_history_snapshot,
            snapshot,
        )
        return self._finish(result)

    async def insert_snapshot_if_changed(self, snapshot: GroupSnapshot) -> StoreResult:
        """Append the snapshot only if it differs from the latest stored one.

        The result's `changed` says whether a row was written. When the
        lookup fails the snapshot is written anyway and the result carries
        kind="read_failed".
        """
        if not self.serialize_per_group:
            return self._finish(await self._check_and_insert(snapshot))
        group_id = snapshot.group_id
        lock = self._locks.setdefault(group_id, asyncio.Lock())
        self._users[group_id] += 1
        try:
            async with lock:
                return self._finish(await self._check_and_insert(snapshot))
        finally:
            self._users[group_id] -= 1
            if not self._users[group_id]:
                del self._users[group_id]
                del self._locks[group_id]

    async def _check_and_insert(self, snapshot: GroupSnapshot) -> StoreResult:
        operation = "insert_snapshot_if_changed"
        read_error = None
        try:
            latest = await self._call(self.backend.get_latest_history_snapshot, snapshot.group_id)
        except Exception as e:
            read_error = ReadFailed(f"{type(e).__name__}: {e}")
            latest = None
            logging.warning(
                f"Could not read latest snapshot of {snapshot.group_id}, treating it as changed: {e}"
            )

        if read_error is None and not snapshot.differs_from(latest):
            return StoreResult(operation=operation, key=snapshot.group_id, changed=False)

        result = await self._execute(
            operation, snapshot.group_id, self.backend.insert_history_snapshot, snapshot
        )
        if read_error is not None and result.ok:
            result = result.model_copy(update={"kind": "read_failed", "error": str(read_error)})
        return result
