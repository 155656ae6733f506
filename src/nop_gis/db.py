from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from nop_gis.settings import Settings, get_settings


def _resolve_database_url(settings: Settings | None = None) -> str:
    resolved_settings = settings or get_settings()
    return resolved_settings.resolved_database_url


def _resolve_pool_size(settings: Settings | None = None) -> int:
    resolved_settings = settings or get_settings()
    return resolved_settings.db_pool_size


@lru_cache(maxsize=4)
def _get_engine_cached(database_url: str, pool_size: int = 20):
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=0,
        pool_timeout=30,
        pool_recycle=600,
        future=True,
    )


def get_engine(settings: Settings | None = None):
    return _get_engine_cached(_resolve_database_url(settings), _resolve_pool_size(settings))


@lru_cache(maxsize=4)
def _get_session_factory_cached(database_url: str, pool_size: int = 20):
    engine = _get_engine_cached(database_url, pool_size)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


def get_session_factory(settings: Settings | None = None):
    return _get_session_factory_cached(_resolve_database_url(settings), _resolve_pool_size(settings))


def dispose_engine(settings: Settings | None = None) -> None:
    if _get_engine_cached.cache_info().currsize:
        get_engine(settings).dispose()


@contextmanager
def session_scope(settings: Settings | None = None) -> Iterator[Session]:
    factory = get_session_factory(settings)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def healthcheck(settings: Settings | None = None) -> bool:
    engine = get_engine(settings)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
