from __future__ import annotations

from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect, text

from backend.app.database import Base
from backend.app.migrations import run_database_migrations

BACKEND_DIR = Path(__file__).resolve().parents[1]


def _configure_alembic_script() -> ScriptDirectory:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return ScriptDirectory.from_config(config)


def _current_version(url: str) -> str | None:
    engine = create_engine(url, connect_args={"check_same_thread": False})
    try:
        with engine.connect() as connection:
            return connection.scalar(text("SELECT version_num FROM alembic_version"))
    finally:
        engine.dispose()


def test_run_database_migrations_creates_schema_on_empty_database(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    run_database_migrations()

    engine = create_engine(url, connect_args={"check_same_thread": False})
    tables = set(inspect(engine).get_table_names())
    engine.dispose()

    assert {
        "clients",
        "promotions",
        "payments",
        "payment_audit_log",
        "operational_metric_events",
        "alembic_version",
    } <= tables
    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_run_database_migrations_is_idempotent(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'twice.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    run_database_migrations()
    run_database_migrations()

    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_run_database_migrations_stamps_head_for_current_schema(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'current.db'}"

    engine = create_engine(url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    monkeypatch.setenv("DATABASE_URL", url)
    run_database_migrations()

    engine = create_engine(url, connect_args={"check_same_thread": False})
    assert inspect(engine).has_table("alembic_version")
    engine.dispose()
    assert _current_version(url) == _configure_alembic_script().get_current_head()


def test_models_match_latest_migration(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'compare.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    run_database_migrations()

    engine = create_engine(url, connect_args={"check_same_thread": False})
    inspector = inspect(engine)
    for table in Base.metadata.sorted_tables:
        migrated = {column["name"] for column in inspector.get_columns(table.name)}
        assert migrated == {column.name for column in table.columns}, table.name
    engine.dispose()
