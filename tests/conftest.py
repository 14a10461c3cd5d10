"""Shared fixtures.

``catalogs`` mirrors the rows ``tests.helpers.db.seed_catalogs`` writes, so
pure tests and database-backed tests resolve titles to the same ids.
Engines are cached per URL by ``db.client``; they are disposed after every
test so each temporary SQLite file is released.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines

from cashflow_forecast.models import (
    Area,
    Bank,
    Catalogs,
    RevenueAccount,
    RevenueType,
    WeekWindow,
)
from tests.helpers.db import (
    ACCOUNTS,
    AREAS,
    BANKS,
    REVENUE_TYPES,
    bootstrap_sqlite_db,
    seed_catalogs,
)

# A Monday well in the past (locked) and its window.
PAST_MONDAY = dt.date(2024, 3, 18)


@pytest.fixture
def catalogs() -> Catalogs:
    return Catalogs(
        areas=[Area(id=i, display_name=name) for i, name, active in AREAS if active],
        accounts=[
            RevenueAccount(
                id=i, display_name=name, code=code, bank_id=bank, revenue_type_id=rtype
            )
            for i, name, code, bank, rtype in ACCOUNTS
        ],
        revenue_types=[RevenueType(id=i, display_name=name) for i, name in REVENUE_TYPES],
        banks=[Bank(id=i, display_name=name) for i, name in BANKS],
    )


@pytest.fixture
def window() -> WeekWindow:
    return WeekWindow(PAST_MONDAY)


@pytest.fixture
def future_window() -> WeekWindow:
    """Window of the week after next, never locked for the test run's ``today``."""

    return WeekWindow(WeekWindow.containing(dt.date.today()).start + dt.timedelta(days=14))


@pytest.fixture(autouse=True)
def _dispose_engines() -> Iterator[None]:
    yield
    dispose_engines()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """Fresh SQLite database with the schema and the seeded catalogs."""

    url = bootstrap_sqlite_db(tmp_path / "cashflow.db")
    seed_catalogs(database_url=url)
    return url
