from __future__ import annotations

import contextlib
import os
from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


def get_db_dsn() -> str:
    dsn = os.getenv("STORE_DB_DSN")
    if not dsn:
        raise RuntimeError("STORE_DB_DSN is required")
    return dsn


def _timeout_connect_args(dsn: str, statement_timeout_seconds: float | None) -> dict[str, Any]:
    if statement_timeout_seconds is None:
        return {}
    if dsn.startswith("postgresql"):
        millis = int(statement_timeout_seconds * 1000)
        return {"options": f"-c statement_timeout={millis}"}
    if dsn.startswith("sqlite"):
        return {"timeout": statement_timeout_seconds}
    return {}


def make_engine(dsn: str | None = None, statement_timeout_seconds: float | None = None) -> Engine:
    dsn = dsn or get_db_dsn()
    return create_engine(
        dsn,
        pool_pre_ping=True,
        future=True,
        connect_args=_timeout_connect_args(dsn, statement_timeout_seconds),
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


@contextlib.contextmanager
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = make_session_factory(engine)
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextlib.contextmanager
def read_session(engine: Engine) -> Iterator[Session]:
    """Session for reads only: always rolled back, never commits."""
    SessionLocal = make_session_factory(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
