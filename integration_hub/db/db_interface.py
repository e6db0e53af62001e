#!/usr/bin/env python3
"""
Declarative base and lazily built engine for the hub database.

Models import DbInterface from here; workers, scripts and the webhook server
open sessions with get_db_session(). Nothing connects until the first session
is requested, so tests can swap in their own engine.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from integration_hub.env_var_injection import database_url

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

DbInterface = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))

_engine = None
_session_factory = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(database_url(), pool_pre_ping=True)
    return _engine


def get_session_local() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        # rows stay readable after commit; handlers log ids once the transaction is done
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


@contextmanager
def get_db_session() -> Iterator[Session]:
    session = get_session_local()()
    try:
        yield session
    finally:
        session.close()
