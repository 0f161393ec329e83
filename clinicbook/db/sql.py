# clinicbook/db/sql.py
from __future__ import annotations

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from clinicbook.core.config import settings
from clinicbook.db.base import Base
from clinicbook.db.store import KeyValueStore, SqlStore


def make_engine(dsn: str | None = None) -> Engine:
    dsn = dsn or settings.STORE_DSN
    # SQLite connections are shared with the threadpool FastAPI runs sync routes on
    connect_args = {"check_same_thread": False} if dsn.startswith("sqlite") else {}
    return create_engine(dsn, echo=settings.DB_ECHO, future=True, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """
    Create the store table if it doesn't exist.
    """
    Base.metadata.create_all(bind=engine)


def make_store(engine: Engine | None = None) -> SqlStore:
    engine = engine or make_engine()
    init_db(engine)
    # expire_on_commit=False -> rows stay readable after the session closes
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    return SqlStore(session_factory)


def get_store(request: Request) -> KeyValueStore:
    """
    Provide the application's store to each request.
    """
    return request.app.state.store
