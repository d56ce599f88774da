# group_archive/data_schemas/group_history.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Text
from typing import Optional


class GroupHistory(SQLModel, table=True):
    """Append-only snapshots of a group's name, member count and description.

    The row with the highest id for a group_id is its current known state.
    """

    __tablename__ = "history"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: str = Field(index=True)
    name: Optional[str] = Field(default=None)
    users_count: Optional[int] = Field(default=None)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: str
    updated_at: str
    deleted_at: Optional[str] = Field(default=None)
