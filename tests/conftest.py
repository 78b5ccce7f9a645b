"""
Pytest configuration and fixtures for the ledger import tests.

Every test gets a fresh in-memory SQLite database (shared through a
``StaticPool`` so all sessions see the same connection) with the ORM tables
created and a small set of categories and accounts for user ``user-1``.
"""

import os

# Application startup must not touch a real database during tests.
os.environ.setdefault("SKIP_DB_INIT", "1")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_import.db.session import Base
from ledger_import.db import models  # noqa: F401  (registers tables on Base.metadata)
from ledger_import.db.models import Account, Category
from ledger_import.domain.imports.references import build_reference_index

USER_ID = "user-1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def seeded(session_factory):
    """
    Seed categories and accounts for ``USER_ID`` (plus one foreign account).

    Returns a dict of ids keyed by a short name.
    """
    with session_factory() as session:
        with session.begin():
            food = Category(user_id=USER_ID, name="Food", type="EXPENSE", included_in_budget=True)
            rent = Category(user_id=USER_ID, name="Rent", type="EXPENSE", included_in_budget=True)
            salary = Category(user_id=USER_ID, name="Salary", type="INCOME", included_in_budget=True)
            chase = Account(
                user_id=USER_ID,
                holder_name="John Doe",
                bank_name="Chase",
                account_number="1234567890",
                branch_name="Main Street",
            )
            hdfc = Account(
                user_id=USER_ID,
                holder_name="John Doe",
                bank_name="HDFC Bank",
                account_number="5550001111",
                branch_name="MG Road",
            )
            foreign = Account(
                user_id="someone-else",
                holder_name="Mallory",
                bank_name="Evil Bank",
                account_number="666",
                branch_name="Nowhere",
            )
            session.add_all([food, rent, salary, chase, hdfc, foreign])
            session.flush()
            ids = {
                "food": food.id,
                "rent": rent.id,
                "salary": salary.id,
                "chase": chase.id,
                "hdfc": hdfc.id,
                "foreign": foreign.id,
            }
    return ids


@pytest.fixture
def reference_index(session_factory, seeded):
    with session_factory() as session:
        return build_reference_index(session, USER_ID)


@pytest.fixture
def client(session_factory, seeded):
    """TestClient wired to the in-memory database and a clean run registry."""
    from fastapi.testclient import TestClient

    from ledger_import.api import dependencies
    from ledger_import.main import app

    app.dependency_overrides[dependencies.get_session_factory] = lambda: session_factory
    dependencies.import_runs.clear()
    test_client = TestClient(app)
    test_client.headers.update({"X-User-Id": USER_ID})
    yield test_client
    app.dependency_overrides.clear()
    dependencies.import_runs.clear()
