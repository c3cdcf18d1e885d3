"""Alembic environment configuration."""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from sgs.config import env
from sgs.database import Base

# Import models directly so every table registers on Base.metadata
from sgs.models.iam.compensation_task import CompensationTask  # noqa: F401
from sgs.models.iam.project import Project  # noqa: F401
from sgs.models.iam.project_api_key import ProjectAPIKey  # noqa: F401
from sgs.models.iam.project_file import ProjectFile  # noqa: F401
from sgs.models.iam.user import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
  fileConfig(config.config_file_name)

# Database URL always comes from the environment, with SSL options applied
config.set_main_option("sqlalchemy.url", env.get_database_url())

target_metadata = Base.metadata


def run_migrations_offline() -> None:
  """Run migrations in 'offline' mode, emitting SQL to the script output."""
  url = config.get_main_option("sqlalchemy.url")
  context.configure(
    url=url,
    target_metadata=target_metadata,
    literal_binds=True,
    dialect_opts={"paramstyle": "named"},
  )

  with context.begin_transaction():
    context.run_migrations()


def run_migrations_online() -> None:
  """Run migrations in 'online' mode against a live connection."""
  connectable = engine_from_config(
    config.get_section(config.config_ini_section, {}),
    prefix="sqlalchemy.",
    poolclass=pool.NullPool,
  )

  with connectable.connect() as connection:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
      context.run_migrations()


if context.is_offline_mode():
  run_migrations_offline()
else:
  run_migrations_online()
