# group_archive/data_schemas/group.py

from sqlmodel import SQLModel, Field
from typing import Optional


class Group(SQLModel, table=True):
    __tablename__ = "groups"

    id: str = Field(primary_key=True)  # WhatsApp serialized chat id
    name: str
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = Field(default=None)  # reserved, never written
