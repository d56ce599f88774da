# group_archive/services/metadata.py

import json
import logging
from typing import Any, Dict

from group_archive.models import InboundMessage

# Context fields copied verbatim from the client's message payload
_RAW_FIELDS = (
    "deviceType",
    "fromMe",
    "hasMedia",
    "ack",
    "isStatus",
    "isStarred",
    "broadcast",
    "url",
    "buttons",
    "list",
    "poll",
    "orderId",
    "productId",
    "ephemeralExpiration",
)

_LIST_FIELDS = ("mentionedIds", "vCards", "links")


def _serialized_id(value):
    if isinstance(value, dict):
        return value.get("_serialized") or value.get("id")
    return value


def _location(raw: Dict[str, Any]):
    location = raw.get("location")
    if not isinstance(location, dict):
        return None
    return {key: location.get(key) for key in ("latitude", "longitude", "description", "degrees")}


def _contact(raw: Dict[str, Any]):
    contact = raw.get("contact")
    if not isinstance(contact, dict):
        return None
    return {
        "id": _serialized_id(contact.get("id")),
        "number": contact.get("number"),
        "pushname": contact.get("pushname"),
        "name": contact.get("name"),
        "isBusiness": contact.get("isBusiness"),
        "isEnterprise": contact.get("isEnterprise"),
    }


def _quoted_message_id(raw: Dict[str, Any]):
    if not raw.get("hasQuotedMsg"):
        return None
    data = raw.get("_data") or {}
    return data.get("quotedMsgId") or (data.get("contextInfo") or {}).get("stanzaId")


def _internal_data(raw: Dict[str, Any]):
    data = raw.get("_data")
    if not isinstance(data, dict):
        return None
    return {
        "subtype": data.get("subtype"),
        "notifyName": data.get("notifyName"),
        "isForwarded": data.get("isForwarded"),
        "hasReaction": data.get("hasReaction"),
        "contextInfoKeys": sorted((data.get("contextInfo") or {}).keys()),
        "mediaDataPresent": data.get("mediaData") is not None,
    }


def build_message_metadata(message: InboundMessage) -> Dict[str, Any]:
    """Collect the event context stored alongside a message.

    Never raises: a payload that cannot be read yields
    {"error": "metadata_build_failed"} so the message is still stored.
    """
    try:
        raw = message.raw
        metadata = {
            "messageId": message.id,
            "chatId": message.chat.id,
            "from": message.sender,
            "to": message.recipient,
            "author": message.author,
            "type": message.type,
            "timestamp": message.timestamp,
            "bodyLength": len(message.body or ""),
            "quotedMsgId": _quoted_message_id(raw),
            "location": _location(raw),
            "contact": _contact(raw),
            "chatSnapshot": {
                "name": message.chat.name,
                "isGroup": message.chat.is_group,
                "unreadCount": message.chat.unread_count,
            },
        }
        for key in _RAW_FIELDS:
            metadata[key] = raw.get(key)
        metadata["ephemeralOutOfSync"] = raw.get("isEphemeralOutOfSync")
        for key in _LIST_FIELDS:
            value = raw.get(key)
            metadata[key] = value if isinstance(value, list) else []

        internal = _internal_data(raw)
        if internal:
            metadata["raw"] = internal
        if message.transcription is not None:
            metadata["transcription"] = message.transcription
        return metadata
    except (AttributeError, TypeError, ValueError) as e:
        logging.warning(f"Could not build metadata for message {message.id}: {e}")
        return {"error": "metadata_build_failed"}


def serialize_metadata(metadata: Dict[str, Any]) -> str:
    return json.dumps(metadata, default=str, ensure_ascii=False)
