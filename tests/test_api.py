# tests/test_api.py

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

GROUP_ID = "120363025246125486@g.us"


def test_root(client):
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Hello, WhatsApp Group Archive"}


def test_health_check(client):
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "backend": "embedded",
        "database": True,
        "pending_writes": 0,
        "storage_alert": False,
    }


def test_post_groups(client, group_sighting_payload):
    response = client.post("/webhook/groups", json=[group_sighting_payload()])

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "groups": 1, "snapshots": 1}

    groups = client.get("/groups").json()
    assert [g["id"] for g in groups] == [GROUP_ID]
    history = client.get(f"/groups/{GROUP_ID}/history").json()
    assert len(history) == 1
    assert history[0]["users_count"] == 3


def test_post_groups_rejects_bad_payload(client):
    response = client.post("/webhook/groups", json=[{"name": "missing id"}])
    assert response.status_code == 422


def test_post_message_then_read_it_back(client, inbound_message_payload):
    response = client.post("/webhook/messages", json=inbound_message_payload())

    assert response.status_code == 200
    assert response.json() == {"status": "accepted"}

    group = client.get(f"/groups/{GROUP_ID}").json()
    assert group["name"] == "Team"
    messages = client.get(f"/groups/{GROUP_ID}/messages").json()
    assert len(messages) == 1
    assert messages[0]["body"] == "hello team"


def test_direct_message_is_ignored(client, inbound_message_payload):
    response = client.post(
        "/webhook/messages",
        json=inbound_message_payload(group_id="5511999990001@c.us", is_group=False),
    )

    assert response.json() == {"status": "ignored"}
    assert client.get("/groups").json() == []


def test_messages_limit(client, inbound_message_payload):
    for i in range(3):
        client.post(
            "/webhook/messages",
            json=inbound_message_payload(message_id=f"m{i}", timestamp=1714564800 + i),
        )

    messages = client.get(f"/groups/{GROUP_ID}/messages", params={"limit": 2}).json()

    assert [m["id"] for m in messages] == ["m2", "m1"]


def test_messages_limit_out_of_range(client):
    assert client.get(f"/groups/{GROUP_ID}/messages", params={"limit": 0}).status_code == 422
    assert client.get(f"/groups/{GROUP_ID}/messages", params={"limit": 501}).status_code == 422


def test_unknown_group_is_404(client):
    response = client.get("/groups/nobody@g.us")
    assert response.status_code == 404


def test_storage_outage_is_503(client, app):
    outage = OperationalError("SELECT", {}, Exception("could not connect to server"))
    with patch.object(app.state.backend, "list_groups", side_effect=outage):
        response = client.get("/groups")

    assert response.status_code == 503
    assert response.json()["detail"] == "Storage unavailable"
