from __future__ import annotations

import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The in-memory schema below replaces the Alembic run performed at start-up.
os.environ.setdefault("RUN_DB_MIGRATIONS", "0")

from backend.app.database import Base, get_db
from backend.app.main import app
from backend.app import models

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


# pysqlite defers BEGIN until the first write, which turns the first SAVEPOINT into the
# outermost transaction. Emitting BEGIN ourselves keeps savepoints nested.
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    # Service-level rollbacks only unwind to a savepoint, never the outer transaction.
    session = TestingSessionLocal(bind=connection, join_transaction_mode="create_savepoint")
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def seed_basic_data(db_session: Session) -> dict:
    member = models.Client(
        full_name="Ana Torres",
        first_name="Ana",
        last_name="Torres",
        email="ana@example.com",
        registration_date=date(2024, 1, 2),
    )
    other_member = models.Client(full_name="Luis Pérez", first_name="Luis", last_name="Pérez")
    db_session.add_all([member, other_member])

    promotion = models.Promotion(
        name="Cuatrimestre",
        fixed_price=Decimal("100.00"),
        subscription_months=4,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 12, 31),
        active=True,
    )
    open_promotion = models.Promotion(
        name="Precio fijo",
        fixed_price=Decimal("250.00"),
        subscription_months=None,
        active=True,
    )
    inactive_promotion = models.Promotion(
        name="Verano",
        fixed_price=Decimal("80.00"),
        subscription_months=2,
        active=False,
    )
    db_session.add_all([promotion, open_promotion, inactive_promotion])
    db_session.commit()

    return {
        "client": member,
        "other_client": other_member,
        "promotion": promotion,
        "open_promotion": open_promotion,
        "inactive_promotion": inactive_promotion,
    }
