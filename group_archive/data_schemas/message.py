# group_archive/data_schemas/message.py

from sqlmodel import SQLModel, Field
from sqlalchemy import BigInteger, Column, Text
from typing import Optional


class Message(SQLModel, table=True):
    """Write-once record of a group message. No foreign key to groups."""

    __tablename__ = "messages"

    id: str = Field(primary_key=True)
    group_id: str
    user_id: Optional[str] = Field(default=None)
    body: Optional[str] = Field(default=None, sa_column=Column(Text))
    type: Optional[str] = Field(default=None)
    timestamp: Optional[int] = Field(default=None, sa_column=Column(BigInteger))
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = Field(default=None)
    metadata_blob: Optional[str] = Field(default=None, sa_column=Column(Text))  # JSON
