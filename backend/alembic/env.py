"""Alembic environment configuration."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from mercadopro import models  # noqa: F401
from mercadopro.config import settings
from mercadopro.database import Base, _engine_kwargs

config = context.config

DATABASE_URL = settings.database_url
# ConfigParser interpola "%": senhas URL-encoded (ex: "%40") precisam de escape
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Gera o SQL das migrações sem conectar ao banco."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Aplica as migrações conectando ao banco configurado."""
    kwargs = _engine_kwargs(DATABASE_URL)
    kwargs.pop("pool_size", None)
    kwargs.pop("max_overflow", None)
    connectable = create_engine(DATABASE_URL, poolclass=pool.NullPool, **kwargs)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
