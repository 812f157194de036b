import threading

from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from felka.core.config import settings

SQLITE_BUSY_TIMEOUT = 30


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str) -> Engine:
    """Build an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT})
    return create_engine(database_url, pool_pre_ping=True)


def _serialize_transactions(factory: sessionmaker) -> None:
    """Let only one session at a time hold an open transaction.

    With StaticPool every session runs on the same DBAPI connection, so one
    session's rollback would also discard another session's pending writes
    (e.g. a capacity reservation). The lock is taken when a session starts
    its transaction, before it checks the connection out, and released once
    the transaction has ended and the connection is back in the pool. It is
    a plain Lock because FastAPI may close a request's session on a
    different worker thread than the one that opened it.
    """
    lock = threading.Lock()

    @event.listens_for(factory, "after_transaction_create")
    def _acquire(session, transaction):
        if transaction.parent is None and not session.info.get("holds_connection_lock"):
            if not lock.acquire(timeout=SQLITE_BUSY_TIMEOUT):
                raise exc.TimeoutError(f"in-memory database busy for {SQLITE_BUSY_TIMEOUT}s")
            session.info["holds_connection_lock"] = True

    @event.listens_for(factory, "after_transaction_end")
    def _release(session, transaction):
        if transaction.parent is None and session.info.pop("holds_connection_lock", False):
            lock.release()


def make_session_factory(engine: Engine) -> sessionmaker:
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    if isinstance(engine.pool, StaticPool):
        _serialize_transactions(factory)
    return factory


engine = make_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
