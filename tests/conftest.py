# File: tests/conftest.py

import os
import tempfile
from pathlib import Path

import pytest
import sqlalchemy
from sqlalchemy import text
from sqlalchemy_utils import database_exists, create_database

# 1. Point the engine and the data dir at throwaway locations before anything imports them
_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="reelforge_tests_"))
os.environ.setdefault("USE_SQLITE", "true")
os.environ.setdefault("SQLITE_PATH", str(_TEST_DB_DIR / "reelforge_test.db"))
os.environ.setdefault("REELFORGE_DATA_DIR", str(_TEST_DB_DIR / "data"))

# 2. Import Settings and the shared engine
from reelforge.core.config.settings import settings  # noqa: E402
from reelforge.core.database.connection import engine, init_db  # noqa: E402
from reelforge.core.jobs.service.registry import active_jobs  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def global_setup():
    """
    Runs once per test session.
    Ensures the DB exists and every table is created.
    """
    if not database_exists(engine.url):
        create_database(engine.url)

    init_db()

    yield


@pytest.fixture(scope="function", autouse=True)
def clean_db(global_setup):
    """
    Runs before EVERY test.
    Detects DB type and cleans tables appropriately.
    """
    with engine.connect() as conn:
        trans = conn.begin()

        is_sqlite = "sqlite" in str(engine.url)
        table_names = sqlalchemy.inspect(engine).get_table_names()

        if table_names:
            if is_sqlite:
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

    active_jobs.clear()

    yield

    active_jobs.clear()


@pytest.fixture
def project_repo():
    from reelforge.features.projects.data.repository import SqlProjectRepo
    return SqlProjectRepo()


@pytest.fixture
def project_id(project_repo, tmp_path):
    return project_repo.create_project(name="Demo Talk", path=str(tmp_path / "demo"))


@pytest.fixture
def fake_video(tmp_path):
    """A placeholder source video; the fake media tool never decodes it."""
    video = tmp_path / "source_clip.mp4"
    video.write_bytes(b"\x00" * 1024)
    return video
