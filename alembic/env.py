from logging.config import fileConfig
import os
import sys

from alembic import context

# import from the project root
sys.path.append(os.getcwd())

# Migrations own the schema here, not create_all
os.environ.setdefault('DB_AUTO_CREATE', '0')

from database import Base, Database
# Import all models to ensure they are registered in Base.metadata
from models.user import User  # noqa: F401
from models.plot import Plot  # noqa: F401

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# add your model's MetaData object here
# for 'autogenerate' support
target_metadata = Base.metadata

# Same URL as the app (DB_TYPE / DB_* / TEST_DB)
db_instance = Database()
config.set_main_option("sqlalchemy.url", str(db_instance.engine.url))


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    Emits SQL to the script output using only the URL.
    """
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
    """Run migrations in 'online' mode on the app's engine."""
    connectable = db_instance.engine

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == 'sqlite',
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
