# File: reelforge/core/database/connection.py

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from reelforge.core.config.settings import settings
from .base import Base

# check_same_thread=False is needed only for SQLite: export workers write from their own threads
connect_args = {"check_same_thread": False, "timeout": 30} if "sqlite" in settings.DATABASE_URL else {}

engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """
    Creates every table known to the shared Base.
    Model modules are imported here so their tables are registered.
    """
    import reelforge.core.jobs.models  # noqa: F401
    import reelforge.features.projects.data.sql_models  # noqa: F401

    Base.metadata.create_all(bind=engine)
