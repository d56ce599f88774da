# group_archive/models.py

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional


def _blank_to_none(value):
    if isinstance(value, str) and value == "":
        return None
    return value


class GroupInfo(BaseModel):
    """Identity of a group as last seen by the messaging client"""

    id: str = Field(min_length=1)
    name: str


class MessageRecord(BaseModel):
    """An inbound group message, ready to be stored"""

    id: str = Field(min_length=1)
    group_id: str = Field(min_length=1)
    user_id: Optional[str] = None
    body: Optional[str] = None
    type: Optional[str] = None
    timestamp: Optional[int] = None  # event time from the source, epoch seconds
    metadata_blob: Optional[str] = None

    @field_validator("user_id", "body", "type", "metadata_blob", mode="before")
    @classmethod
    def empty_as_null(cls, value):
        return _blank_to_none(value)


class GroupSnapshot(BaseModel):
    """Mutable attributes of a group at one point in time"""

    group_id: str = Field(min_length=1)
    name: Optional[str] = None
    users_count: Optional[int] = None
    description: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def empty_as_null(cls, value):
        return _blank_to_none(value)

    @field_validator("users_count", mode="before")
    @classmethod
    def count_or_null(cls, value):
        # Only real numbers count; anything else is "unknown"
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if not isinstance(value, int):
            return None
        return value

    def differs_from(self, other) -> bool:
        """True when other is None or any tracked attribute changed."""
        if other is None:
            return True
        return (
            other.name != self.name
            or other.users_count != self.users_count
            or other.description != self.description
        )


class StoreResult(BaseModel):
    """Outcome of one store operation, handed to the ingestion supervisor"""

    operation: str
    ok: bool = True
    changed: bool = False  # a row was written
    kind: Optional[str] = None  # write_failed, read_failed, timeout
    error: Optional[str] = None
    key: Optional[str] = None  # id the operation was about

    @classmethod
    def failed(cls, operation: str, kind: str, error: BaseException, key: str = None):
        return cls(
            operation=operation,
            ok=False,
            kind=kind,
            error=f"{type(error).__name__}: {error}",
            key=key,
        )


# Events posted by the messaging client bridge


class Participant(BaseModel):
    id: str
    is_admin: bool = False


class GroupSighting(BaseModel):
    """A group chat as listed by the client on ready or refresh"""

    id: str = Field(min_length=1)
    name: Optional[str] = None
    participants: List[Participant] = Field(default_factory=list)
    description: Optional[str] = None
    unread_count: int = 0

    @property
    def admins_count(self) -> int:
        return sum(1 for p in self.participants if p.is_admin)


class ChatInfo(BaseModel):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    is_group: bool = False
    unread_count: Optional[int] = None


class InboundMessage(BaseModel):
    """A message_create / message event from the client"""

    id: str = Field(min_length=1)
    chat: ChatInfo
    author: Optional[str] = None
    sender: Optional[str] = None  # "from" on the client side
    recipient: Optional[str] = None  # "to" on the client side
    body: Optional[str] = None
    type: Optional[str] = None
    timestamp: Optional[int] = None
    raw: Dict[str, Any] = Field(default_factory=dict)
    transcription: Optional[Dict[str, Any]] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.author or self.sender or None
