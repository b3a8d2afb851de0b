"""
Shared test fixtures for DraftPulse.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode)
- Database session (in-memory SQLite)
- Telemetry factories for common session shapes
- A fixed evaluation clock

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("DRAFTPULSE_DEV_MODE", "1")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from draftpulse.models.base import Base  # noqa: E402
from draftpulse.models.intervention_log import InterventionLogEntry  # noqa: E402, F401
from draftpulse.models.telemetry import EditOperation, TelemetryRecord  # noqa: E402

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# 2. db_session -- in-memory SQLite session for unit tests
# ---------------------------------------------------------------------------

@pytest.fixture()
def db_session():
    """
    Provide a SQLAlchemy session backed by an in-memory SQLite database.

    A fresh database is created for every test that requests this fixture.
    """
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    TestingSession = sessionmaker(bind=engine)
    session = TestingSession()

    yield session

    session.close()
    engine.dispose()


# ---------------------------------------------------------------------------
# 3. Clock
# ---------------------------------------------------------------------------

@pytest.fixture()
def now():
    """Fixed evaluation time (a Monday morning, UTC)."""
    return NOW


# ---------------------------------------------------------------------------
# 4. Telemetry factories
# ---------------------------------------------------------------------------

def make_record(**overrides) -> TelemetryRecord:
    """
    Build a TelemetryRecord with a calm 20-minute session as the baseline.

    Any field can be overridden by keyword.
    """
    fields = {
        "session_id": "session-1",
        "started_at": NOW,
        "duration_seconds": 20 * 60,
        "characters_added": 1500,
        "characters_deleted": 150,
        "words_added": 250,
        "words_deleted": 25,
        "timestamps": (),
        "edits": (),
        "cursor_positions": None,
    }
    fields.update(overrides)
    return TelemetryRecord(**fields)


def make_session_series(count: int, start: datetime = NOW, **overrides) -> list[TelemetryRecord]:
    """Build `count` sessions one day apart with identical counters."""
    return [
        make_record(
            session_id=f"session-{index + 1}",
            started_at=start + timedelta(days=index),
            **overrides,
        )
        for index in range(count)
    ]


@pytest.fixture()
def record_factory():
    """Expose make_record to tests as a fixture."""
    return make_record


@pytest.fixture()
def thrashing_positions():
    """Ten cursor positions alternating far apart (every move is a jump)."""
    return tuple(0 if i % 2 == 0 else 500 for i in range(10))


@pytest.fixture()
def revision_edits():
    """Two add -> delete -> add cycles at nearby positions."""
    return (
        EditOperation(type="add", length=10, position=100),
        EditOperation(type="delete", length=5, position=105),
        EditOperation(type="add", length=8, position=110),
        EditOperation(type="add", length=10, position=200),
        EditOperation(type="delete", length=5, position=205),
        EditOperation(type="add", length=8, position=210),
    )


@pytest.fixture()
def series_factory():
    """Expose make_session_series to tests as a fixture."""
    return make_session_series
