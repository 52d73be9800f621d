import copy
import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg.types.json import Jsonb

from app.config.settings import Settings
from app.database.connection import Database
from tests.support import SAMPLE_FORM_DATA


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "onboarding_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    db = Database(test_settings)
    try:
        with db.connection() as conn:
            conn.execute("SELECT 1 FROM onboardings LIMIT 1")
    except Exception as e:
        db.close()
        pytest.skip(
            f"PostgreSQL test DB with an onboardings table not available: {e}. "
            "Set DB_* env to point at a migrated test database"
        )
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db_conn(database: Database) -> Generator[psycopg.Connection[Any], None, None]:
    with database.connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(database: Database) -> Generator[list[str], None, None]:
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with database.connection() as conn:
        with conn.cursor() as cur:
            for onboarding_id in cleanup:
                cur.execute("DELETE FROM onboardings WHERE id::text = %s", (onboarding_id,))
        conn.commit()


@pytest.fixture
def seed_onboarding(
    db_conn: psycopg.Connection[Any],
    integration_cleanup: list[str],
) -> str:
    onboarding_id = str(uuid.uuid4())
    with db_conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO onboardings (id, subsidiary, is_form_complete, india_form_data)
            VALUES (%s, %s, %s, %s)
            """,
            (onboarding_id, "INDIA", True, Jsonb(copy.deepcopy(SAMPLE_FORM_DATA))),
        )
    db_conn.commit()
    integration_cleanup.append(onboarding_id)
    return onboarding_id
