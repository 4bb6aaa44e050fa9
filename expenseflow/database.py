"""Engine and session factory.

In-memory SQLite shares a single connection so the schema outlives each
session. File SQLite opens a fresh connection per checkout, each one put in
WAL mode with a generous busy timeout so concurrent approvers queue instead
of failing.
"""

from sqlalchemy import event
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import settings

SQLITE_BUSY_TIMEOUT_MS = 60_000


def _is_memory_sqlite(url: str) -> bool:
    return url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in url


def _set_sqlite_pragmas(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS};")
    cursor.close()


def build_engine(url: str):
    if _is_memory_sqlite(url):
        return create_engine(
            url,
            echo=settings.sql_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            echo=settings.sql_echo,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_MS / 1000},
            poolclass=NullPool,  # pooled connections would hold write locks
        )
        event.listen(sqlite_engine, "connect", _set_sqlite_pragmas)
        return sqlite_engine
    return create_engine(url, echo=settings.sql_echo, pool_pre_ping=True)


engine = build_engine(settings.database_url)


def get_session():
    with Session(engine) as session:
        yield session


def init_db():
    from .models import approval_rule, company, expense, user  # noqa: F401

    SQLModel.metadata.create_all(engine)
