# group_archive/data_schemas/schema_migration.py

from sqlmodel import SQLModel, Field


class SchemaMigration(SQLModel, table=True):
    __tablename__ = "schema_migrations"

    version: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    name: str
    applied_at: str
