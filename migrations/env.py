# migrations/env.py
from alembic import context
from sqlalchemy import engine_from_config, pool

# (1) carregar .env antes de montar o Settings
from dotenv import load_dotenv
load_dotenv()

# (2) URL já normalizada (postgres -> psycopg) pelo app
from app.db.session import SQLALCHEMY_DATABASE_URL  # noqa: E402
from app.db.base import Base  # noqa: E402

config = context.config

# (3) Alembic usará esta URL
config.set_main_option("sqlalchemy.url", SQLALCHEMY_DATABASE_URL.replace("%", "%%"))

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online():
    connectable = engine_from_config(config.get_section(config.config_ini_section), prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=connection.dialect.name == "sqlite")
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
