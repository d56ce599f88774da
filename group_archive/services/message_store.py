# group_archive/services/message_store.py

from group_archive.models import MessageRecord, StoreResult
from group_archive.services.store_base import BaseStore


class MessageStore(BaseStore):
    async def insert_message_if_absent(self, message: MessageRecord) -> StoreResult:
        """Store a message once per id.

        Redelivered messages come back with changed=False and leave the
        stored row untouched, even when their body differs.
        """
        result = await self._execute(
            "insert_message_if_absent",
            message.id,
            self.backend.insert_message_if_absent,
            message,
        )
        return self._finish(result)
