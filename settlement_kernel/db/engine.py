"""
Module: settlement_kernel.db.engine
Responsibility: Own the process-wide SQLAlchemy engine for the settlement
    ledgers and hand out sessions bound to it.
Architecture position: Kernel > DB.  Imports only db/base.py, except
    create_tables(), which pulls in the module ORM registry so that
    ``Base.metadata`` knows every table.

One transaction per mutating operation: session_scope() commits when the
block finishes and rolls back when it raises, so a verification that fails
halfway leaves payables, orders, invoices and verification rows untouched.

In-memory SQLite shares a single connection through StaticPool; without it
each session would open an empty database.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from settlement_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_READY = "Settlement database not initialized; call init_engine_from_url()"


def _engine_options(url: URL, pool_size: int, max_overflow: int) -> dict:
    if url.get_backend_name() == "sqlite":
        options: dict = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options
    # Sequence counters are taken with SELECT ... FOR UPDATE.
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    ``sqlite://`` gives a shared in-memory database (used by the tests);
    ``postgresql://...`` needs the ``postgres`` extra installed.
    """
    global _engine, _SessionFactory

    reset_engine()
    url = make_url(database_url)
    _engine = create_engine(url, echo=echo, **_engine_options(url, pool_size, max_overflow))
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "settlement_db_ready",
        extra={"dialect": url.get_backend_name(), "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session() -> Session:
    """New session from the shared factory.  Callers own commit/close."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_READY)
    return _SessionFactory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Run a block in one transaction.

        with session_scope() as session:
            VerificationService(session, clock).verify(...)

    The exception that caused a rollback is re-raised unchanged.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("settlement_tx_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every settlement table on the current engine."""
    from settlement_kernel.db.base import Base
    from settlement_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info(
        "settlement_tables_created",
        extra={"table_count": len(Base.metadata.tables)},
    )


def reset_engine() -> None:
    """Dispose the engine (if any) and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
