from .group import Group
from .message import Message
from .group_history import GroupHistory
from .schema_migration import SchemaMigration

__all__ = ["Group", "Message", "GroupHistory", "SchemaMigration"]
