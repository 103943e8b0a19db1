from functools import lru_cache
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)


def make_engine(database_url: str, **kwargs):
    """Create a synchronous engine; SQLite needs cross-thread access for the API workers."""
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
    logger.debug(f"Creating engine for {database_url.split('@')[-1]}")
    return create_engine(database_url, echo=False, **kwargs)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


@lru_cache
def get_engine():
    """Process-wide engine for settings.DATABASE_URL, created on first use."""
    return make_engine(settings.DATABASE_URL)


Base = declarative_base()
