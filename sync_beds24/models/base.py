import uuid

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase

from sync_beds24.config import SCHEMA

# JSONB on PostgreSQL, plain JSON on other backends
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models in this application inherit from this base class to provide
    consistent table metadata and ORM functionality across the database schema.
    """

    pass


def qualified(table_name: str) -> str:
    """Return the schema-qualified table name used in ForeignKey targets."""
    return f"{SCHEMA}.{table_name}" if SCHEMA else table_name


def new_id() -> str:
    """Generate an internal entity identifier."""
    return str(uuid.uuid4())
