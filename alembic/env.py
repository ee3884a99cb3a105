from logging.config import fileConfig
from typing import Any

from sqlalchemy import engine_from_config, pool
from sqlalchemy.schema import CreateSchema

from alembic import context  # type: ignore[attr-defined]
from sync_beds24.config import DATABASE_URL, SCHEMA
from sync_beds24.models.audit import AuditLogEntry  # noqa: F401
from sync_beds24.models.base import Base
from sync_beds24.models.calendar import CalendarDay  # noqa: F401
from sync_beds24.models.connections import Connection  # noqa: F401
from sync_beds24.models.mappings import ExternalIdMapping  # noqa: F401
from sync_beds24.models.reservations import Reservation  # noqa: F401
from sync_beds24.models.room_types import RoomType  # noqa: F401
from sync_beds24.models.secrets import ConnectionSecret  # noqa: F401
from sync_beds24.models.sync_state import SyncState  # noqa: F401

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
config.set_main_option("sqlalchemy.url", DATABASE_URL)  # type: ignore[arg-type]


def include_object(
    object_: Any,
    name: str,
    type_: str,
    reflected: bool,
    compare_to: Any,
) -> bool:
    if hasattr(object_, "schema") and object_.schema != SCHEMA:
        return False
    return True


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Emits SQL to the script output without connecting.
    """
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=SCHEMA is not None,
        include_object=include_object,
        version_table_schema=SCHEMA,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_schemas=SCHEMA is not None,
            include_object=include_object,
            version_table_schema=SCHEMA,
        )
        # The version table lives in SCHEMA, so it must exist first
        if SCHEMA and connection.dialect.name == "postgresql":
            connection.execute(CreateSchema(SCHEMA, if_not_exists=True))

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
