# File: tests/conftest.py

import pytest
import os
import sys
import sqlalchemy
from datetime import datetime, timezone
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy_utils import database_exists, create_database

# 1. Add project root to path, force the SQLite test database before settings load
sys.path.append(os.getcwd())
os.environ["USE_SQLITE"] = "true"

# 2. Import Settings
from dispatchwatch.core.config.settings import settings

# 3. Create Test Engine
TEST_ENGINE = create_engine(settings.DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE)


@pytest.fixture(scope="session", autouse=True)
def global_setup():
    """
    Runs once per test session.
    Ensures DB exists and every table is registered.
    """
    if not database_exists(TEST_ENGINE.url):
        create_database(TEST_ENGINE.url)

    # Import all models to ensure they are registered
    from dispatchwatch.core.database.base import Base
    import dispatchwatch.features.storage.data.sql_models
    import dispatchwatch.features.post_processing.data.sql_models
    import dispatchwatch.features.hospital_calls.data.sql_models
    import dispatchwatch.features.incidents.data.sql_models

    # Create tables once
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield


@pytest.fixture(scope="function", autouse=True)
def clean_db(global_setup):
    """
    Runs before EVERY test.
    Detects DB type and cleans tables appropriately.
    """
    from dispatchwatch.core.database.base import Base

    # 1. Safety Check: Ensure tables exist
    Base.metadata.create_all(bind=TEST_ENGINE)

    # 2. Clean Data
    with TEST_ENGINE.connect() as conn:
        trans = conn.begin()

        is_sqlite = "sqlite" in str(TEST_ENGINE.url)

        inspector = sqlalchemy.inspect(TEST_ENGINE)
        table_names = inspector.get_table_names()

        if table_names:
            if is_sqlite:
                # SQLite: no TRUNCATE; disable FK checks to delete in any order
                conn.execute(text("PRAGMA foreign_keys = OFF;"))
                for table in table_names:
                    conn.execute(text(f'DELETE FROM "{table}";'))
                conn.execute(text("PRAGMA foreign_keys = ON;"))
            else:
                conn.execute(text("SET session_replication_role = 'replica';"))
                for table in table_names:
                    conn.execute(text(f'TRUNCATE TABLE "{table}" CASCADE;'))
                conn.execute(text("SET session_replication_role = 'origin';"))

        trans.commit()

    yield


@pytest.fixture(scope="function")
def db_session():
    """
    Provides a session for the test to use.
    """
    connection = TEST_ENGINE.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def t0():
    """A fixed, timezone-aware reference instant."""
    return datetime(2025, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def audio_file(tmp_path):
    """A placeholder clip on disk; analyzers and providers in tests are fakes."""
    path = tmp_path / "clip.m4a"
    path.write_bytes(b"FAKE_AUDIO")
    return path
