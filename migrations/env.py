from logging.config import fileConfig
from alembic import context
import os
import sys

# корень репозитория в sys.path, чтобы работал `from app import create_app`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from app import create_app            # noqa: E402
from extensions import db             # noqa: E402
import models                         # noqa: E402,F401  регистрирует таблицы в db.metadata

app = create_app(os.getenv("FLASK_CONFIG"))
app.app_context().push()

engine_url = str(db.engine.url)
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", engine_url.replace("%", "%%"))

target_metadata = db.metadata


def run_migrations_offline():
    """SQL-скрипт без подключения к БД."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url") or engine_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,  # ALTER для SQLite
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    with db.engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
