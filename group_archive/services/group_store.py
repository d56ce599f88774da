# group_archive/services/group_store.py

from group_archive.models import GroupInfo, StoreResult
from group_archive.services.store_base import BaseStore


class GroupStore(BaseStore):
    async def upsert_group(self, group: GroupInfo) -> StoreResult:
        """Insert the group, or refresh its name and updated_at. Never raises."""
        result = await self._execute("upsert_group", group.id, self.backend.upsert_group, group)
        return self._finish(result)
