"""
Pytest fixtures for the budget kernel and duplication test suite.

Provides:
- A session-scoped engine (SQLite in memory unless DATABASE_URL is set)
  with per-test isolation through a rolled-back outer transaction
- A second, independent store for cross-store export/import tests
- Structured log capture
- Factory fixtures that build a fully populated fiscal-year aggregate

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the primary test store
  (default: sqlite+pysqlite:///:memory:).
"""

import json
import logging
import os
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from budget_kernel.db.engine import build_engine, create_tables, drop_tables
from budget_kernel.domain.clock import DeterministicClock
from budget_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from budget_kernel.services.fiscal_year_service import FiscalYearService
from budget_kernel.services.repositories import RepositoryRegistry
from budget_duplication.service import DuplicationService
from tests.builders import TEST_ACTOR_ID, SampleFiscalYear, populate_fiscal_year

DEFAULT_TEST_URL = "sqlite+pysqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture budget_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, duplication_service):
            duplication_service.clone_fiscal_year(...)
            logs = captured_logs()
            assert any(r["message"] == "clone_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("budget_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_TEST_URL)


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the primary test store."""
    eng = build_engine(get_database_url())
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture(scope="session")
def other_engine():
    """An unrelated in-memory store, the target of cross-store transfers."""
    eng = build_engine(DEFAULT_TEST_URL)
    create_tables(eng)
    yield eng
    eng.dispose()


def _joined_session(engine) -> Generator[Session, None, None]:
    conn = engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    try:
        yield sess
    finally:
        try:
            sess.close()
        finally:
            try:
                trans.rollback()
            finally:
                conn.close()


@pytest.fixture(scope="function")
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    Uses the SQLAlchemy 2.0 ``join_transaction_mode`` pattern:
    - Opens a dedicated connection with an outer transaction
    - Creates a session that *joins* the outer transaction
    - Any ``session.commit()`` inside the test releases a savepoint -- it
      does NOT actually commit to the database
    - At teardown the outer transaction is rolled back, undoing ALL data
      changes made during the test
    """
    yield from _joined_session(db_engine)


@pytest.fixture(scope="function")
def other_session(other_engine) -> Generator[Session, None, None]:
    """Session on the second store, isolated the same way as ``session``."""
    yield from _joined_session(other_engine)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def registry(session) -> RepositoryRegistry:
    return RepositoryRegistry(session)


@pytest.fixture
def fiscal_year_service(session, registry) -> FiscalYearService:
    return FiscalYearService(session, registry)


@pytest.fixture
def duplication_service(session, deterministic_clock) -> DuplicationService:
    return DuplicationService(session, clock=deterministic_clock)


# =============================================================================
# Aggregate fixtures
# =============================================================================


@pytest.fixture
def responsibility_centre(fiscal_year_service, test_actor_id):
    """A centre with no fiscal years yet."""
    return fiscal_year_service.create_responsibility_centre("Corporate Finance", test_actor_id)


@pytest.fixture
def sample_fiscal_year(session, responsibility_centre, test_actor_id) -> SampleFiscalYear:
    """A populated fiscal year in the primary store."""
    return populate_fiscal_year(session, responsibility_centre.id, actor_id=test_actor_id)
