# tests/test_message_store.py

import time
from unittest.mock import MagicMock

import pytest

from group_archive.models import MessageRecord
from group_archive.services.message_store import MessageStore
from group_archive.services.supervisor import IngestionSupervisor


def _message(**overrides):
    data = {
        "id": "false_120363025246125486@g.us_3EB0",
        "group_id": "120363025246125486@g.us",
        "user_id": "5511999990001@c.us",
        "body": "hello team",
        "type": "chat",
        "timestamp": 1714564800,
        "metadata_blob": '{"fromMe": false}',
    }
    data.update(overrides)
    return MessageRecord(**data)


@pytest.mark.asyncio
async def test_first_delivery_is_stored(message_store, backend):
    result = await message_store.insert_message_if_absent(_message())

    assert result.ok and result.changed
    stored = backend.list_messages("120363025246125486@g.us")
    assert len(stored) == 1
    assert stored[0].body == "hello team"
    assert stored[0].metadata_blob == '{"fromMe": false}'
    assert stored[0].timestamp == 1714564800


@pytest.mark.asyncio
async def test_redelivery_is_ignored(message_store, backend):
    await message_store.insert_message_if_absent(_message())

    result = await message_store.insert_message_if_absent(_message(body="edited"))

    assert result.ok
    assert not result.changed
    stored = backend.list_messages("120363025246125486@g.us")
    assert [m.body for m in stored] == ["hello team"]


@pytest.mark.asyncio
async def test_message_for_unknown_group_is_stored(message_store, backend):
    """No group row is needed first"""
    result = await message_store.insert_message_if_absent(_message(group_id="new@g.us"))

    assert result.changed
    assert backend.get_group("new@g.us") is None
    assert len(backend.list_messages("new@g.us")) == 1


@pytest.mark.asyncio
async def test_blank_fields_stored_as_null(message_store, backend):
    await message_store.insert_message_if_absent(_message(body="", user_id="", metadata_blob=""))

    stored = backend.list_messages("120363025246125486@g.us")[0]
    assert stored.body is None
    assert stored.user_id is None
    assert stored.metadata_blob is None


@pytest.mark.asyncio
async def test_timeout_is_reported():
    def slow_insert(message):
        time.sleep(0.5)
        return True

    backend = MagicMock()
    backend.runs_inline = False
    backend.insert_message_if_absent.side_effect = slow_insert
    supervisor = IngestionSupervisor(fire_and_forget=True, alert_threshold=3)
    store = MessageStore(backend, timeout=0.05, supervisor=supervisor)

    result = await store.insert_message_if_absent(_message())

    assert not result.ok
    assert result.kind == "timeout"
    assert "longer than 0.05s" in result.error
    assert supervisor.consecutive_failures == 1


@pytest.mark.asyncio
async def test_repeated_failures_raise_storage_alert(caplog):
    backend = MagicMock()
    backend.runs_inline = True
    backend.insert_message_if_absent.side_effect = ConnectionError("connection refused")
    supervisor = IngestionSupervisor(alert_threshold=3)
    store = MessageStore(backend, supervisor=supervisor)

    for i in range(3):
        result = await store.insert_message_if_absent(_message(id=f"m{i}"))
        assert result.kind == "write_failed"

    assert supervisor.alerting
    assert "Storage alert: 3 consecutive failures" in caplog.text
