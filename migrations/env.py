from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from backoffice_api.extensions import db
from backoffice_api.wsgi import app as flask_app

config = context.config

if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name, disable_existing_loggers=False)
    except Exception:
        pass

# the Flask app owns the database URL; alembic.ini does not
with flask_app.app_context():
    DB_URL = flask_app.config["SQLALCHEMY_DATABASE_URI"]
config.set_main_option("sqlalchemy.url", DB_URL)


def _configure(**kw) -> None:
    context.configure(
        target_metadata=db.metadata,
        compare_type=True,
        render_as_batch=DB_URL.startswith("sqlite"),
        **kw,
    )


def run_migrations_offline() -> None:
    _configure(url=DB_URL, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection, flask_app.app_context():
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
