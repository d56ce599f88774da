# group_archive/services/ingestion_service.py

import logging
from typing import List

from group_archive.models import (
    GroupInfo,
    GroupSighting,
    GroupSnapshot,
    InboundMessage,
    MessageRecord,
)
from group_archive.services.group_store import GroupStore
from group_archive.services.history_store import HistoryStore
from group_archive.services.message_store import MessageStore
from group_archive.services.metadata import build_message_metadata, serialize_metadata
from group_archive.services.supervisor import IngestionSupervisor


class IngestionService:
    """Turns messaging-client events into store calls.

    Group and message writes go through the supervisor, so with networked
    storage they are fire-and-forget. Snapshot checks are always awaited.
    """

    def __init__(
        self,
        groups: GroupStore,
        messages: MessageStore,
        history: HistoryStore,
        supervisor: IngestionSupervisor,
    ):
        self.groups = groups
        self.messages = messages
        self.history = history
        self.supervisor = supervisor

    async def handle_groups(self, sightings: List[GroupSighting]) -> dict:
        """Persist the group list sent on ready or refresh"""
        named = sorted((g for g in sightings if g.name), key=lambda g: g.name.casefold())
        snapshots = 0

        for sighting in named:
            await self.supervisor.dispatch(
                self.groups.upsert_group(GroupInfo(id=sighting.id, name=sighting.name))
            )
            result = await self.history.insert_snapshot_if_changed(
                GroupSnapshot(
                    group_id=sighting.id,
                    name=sighting.name,
                    users_count=len(sighting.participants),
                    description=sighting.description,
                )
            )
            if result.changed:
                snapshots += 1
                logging.info(f"Group snapshot stored for {sighting.id} (change detected)")

        logging.info(f"Groups updated and persisted: {len(named)}")
        return {"status": "ok", "groups": len(named), "snapshots": snapshots}

    async def handle_message(self, message: InboundMessage) -> dict:
        """Persist one inbound message of a group chat"""
        chat = message.chat
        if not chat.is_group:
            return {"status": "ignored"}

        if chat.name:
            await self.supervisor.dispatch(
                self.groups.upsert_group(GroupInfo(id=chat.id, name=chat.name))
            )
        else:
            logging.debug(f"Chat {chat.id} has no name yet, group row not refreshed")

        metadata = build_message_metadata(message)
        record = MessageRecord(
            id=message.id,
            group_id=chat.id,
            user_id=message.user_id,
            body=self._body_with_transcription(message),
            type=message.type,
            timestamp=message.timestamp,
            metadata_blob=serialize_metadata(metadata),
        )
        await self.supervisor.dispatch(self.messages.insert_message_if_absent(record))
        return {"status": "accepted"}

    @staticmethod
    def _body_with_transcription(message: InboundMessage):
        transcription = message.transcription or {}
        text = transcription.get("text")
        if message.type == "ptt" and transcription.get("ok") and text:
            return f"[PTT] {text}"
        return message.body
