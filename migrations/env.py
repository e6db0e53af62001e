from logging.config import fileConfig

from sqlalchemy import engine_from_config, text
from sqlalchemy import pool

from alembic import context
from integration_hub.db.db_interface import DbInterface
from integration_hub.env_var_injection import database_url
import integration_hub.db.models  # noqa: F401  registers every table on DbInterface.metadata

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Inject actual database URL from environment with same sanitization as the app
config.set_main_option("sqlalchemy.url", database_url())

# Interpret the config file for Python logging.
if config.config_file_name is not None:
	fileConfig(config.config_file_name)

target_metadata = DbInterface.metadata


def _is_postgres(url: str) -> bool:
	return url.startswith("postgres")


def run_migrations_offline() -> None:
	"""Run migrations in 'offline' mode."""
	url = config.get_main_option("sqlalchemy.url")
	context.configure(
		url=url,
		target_metadata=target_metadata,
		literal_binds=True,
		dialect_opts={"paramstyle": "named"},
		version_table_schema="public" if _is_postgres(url) else None
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
		postgres = connection.dialect.name == "postgresql"
		if postgres:
			connection.execute(text("SET search_path TO public;"))

		context.configure(
			connection=connection,
			target_metadata=target_metadata,
			version_table_schema="public" if postgres else None
		)

		with context.begin_transaction():
			context.run_migrations()


if context.is_offline_mode():
	run_migrations_offline()
else:
	run_migrations_online()
