"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: alembic/env.py (Alembic Environment Configuration)

Responsibilities:
  - Correr las migraciones del catálogo de permisos y de la cadena de
    auditoría (online u offline).
  - Tomar el DSN de Settings (DATABASE_URL), el mismo que usa el pool.
  - Acotar la espera por locks: una migración no debe quedar colgada
    detrás de un append que tiene tomado audit_chain_state.

Collaborators:
  - hotel_core.crosscutting.config.get_settings
  - Alembic (context, config)
  - SQLAlchemy Engine (driver psycopg 3)

Policy:
  - Sin ORM: migraciones escritas a mano, autogenerate deshabilitado
    (target_metadata = None).
============================================================
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from hotel_core.crosscutting.config import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = None

MIGRATION_LOCK_TIMEOUT = os.getenv("MIGRATION_LOCK_TIMEOUT", "10s")

_DRIVER_PREFIXES = ("postgresql://", "postgres://")


def migration_url() -> str:
    """DSN de Settings con el dialecto psycopg 3 de SQLAlchemy."""
    url = get_settings().database_url
    for prefix in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=migration_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(
        migration_url(),
        poolclass=pool.NullPool,
        connect_args={"options": f"-c lock_timeout={MIGRATION_LOCK_TIMEOUT}"},
    )

    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
