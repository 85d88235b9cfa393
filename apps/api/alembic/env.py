from logging.config import fileConfig

from sqlalchemy import engine_from_config, inspect, pool, text

from alembic import context

# Import the Base and models for autogenerate support
from feedback_hub.db.base import Base
# Import all models here so they are registered with Base.metadata
import feedback_hub.db.models  # noqa: F401

from feedback_hub.core.config import settings

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Override sqlalchemy.url with the value from settings
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

ALEMBIC_VERSION_TABLE = "alembic_version"
ALEMBIC_VERSION_COL_LEN = 128


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _ensure_alembic_version_table(connection) -> None:
    """Create the version table with room for descriptive revision ids."""
    inspector = inspect(connection)
    if ALEMBIC_VERSION_TABLE in set(inspector.get_table_names()):
        return
    connection.execute(
        text(
            f"""
            CREATE TABLE {ALEMBIC_VERSION_TABLE} (
                version_num VARCHAR({ALEMBIC_VERSION_COL_LEN}) NOT NULL,
                CONSTRAINT alembic_version_pkc PRIMARY KEY (version_num)
            )
            """
        )
    )


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a connection)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against the configured database."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        with connection.begin():
            _ensure_alembic_version_table(connection)

        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
