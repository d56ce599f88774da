import pytest
from pydantic import ValidationError

from group_archive.data_schemas import GroupHistory
from group_archive.models import (
    GroupInfo,
    GroupSighting,
    GroupSnapshot,
    InboundMessage,
    MessageRecord,
    StoreResult,
)


def test_group_info_requires_an_id():
    with pytest.raises(ValidationError):
        GroupInfo(id="", name="Team")


def test_message_record_blank_optionals_become_null():
    record = MessageRecord(id="m1", group_id="g1", user_id="", body="", type="", metadata_blob="")

    assert record.user_id is None
    assert record.body is None
    assert record.type is None
    assert record.metadata_blob is None


def test_message_record_requires_group():
    with pytest.raises(ValidationError):
        MessageRecord(id="m1", group_id="")


@pytest.mark.parametrize(
    "raw, expected",
    [(5, 5), (0, 0), (6.0, 6), ("5", None), (True, None), (None, None), (2.5, None)],
)
def test_snapshot_users_count_only_accepts_numbers(raw, expected):
    assert GroupSnapshot(group_id="g1", users_count=raw).users_count == expected


def test_snapshot_blank_text_becomes_null():
    snapshot = GroupSnapshot(group_id="g1", name="", description="")
    assert snapshot.name is None
    assert snapshot.description is None


def test_snapshot_differs_from():
    snapshot = GroupSnapshot(group_id="g1", name="Team", users_count=5, description=None)
    same = GroupHistory(
        group_id="g1", name="Team", users_count=5, description=None, created_at="t", updated_at="t"
    )
    renamed = GroupHistory(
        group_id="g1", name="Team 2", users_count=5, created_at="t", updated_at="t"
    )
    described = GroupHistory(
        group_id="g1", name="Team", users_count=5, description="x", created_at="t", updated_at="t"
    )

    assert snapshot.differs_from(None)
    assert not snapshot.differs_from(same)
    assert snapshot.differs_from(renamed)
    assert snapshot.differs_from(described)


def test_store_result_failed():
    result = StoreResult.failed("upsert_group", "write_failed", RuntimeError("disk I/O error"), key="g1")

    assert result.ok is False
    assert result.changed is False
    assert result.kind == "write_failed"
    assert result.error == "RuntimeError: disk I/O error"
    assert result.key == "g1"


def test_group_sighting_counts_admins():
    sighting = GroupSighting(
        id="g1",
        name="Team",
        participants=[{"id": "a", "is_admin": True}, {"id": "b"}, {"id": "c", "is_admin": True}],
    )
    assert sighting.admins_count == 2


def test_inbound_message_user_id_prefers_author():
    chat = {"id": "g1", "is_group": True}
    assert InboundMessage(id="m1", chat=chat, author="a", sender="s").user_id == "a"
    assert InboundMessage(id="m1", chat=chat, sender="s").user_id == "s"
    assert InboundMessage(id="m1", chat=chat, author="").user_id is None
