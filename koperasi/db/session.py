from collections.abc import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from koperasi.core.config import settings

# Seconds a SQLite connection waits for another writer; same bound as the
# document-number lock wait.
SQLITE_BUSY_TIMEOUT_SECONDS = 5


def enable_sqlite_savepoints(engine: Engine) -> None:
    """
    pysqlite starts transactions lazily on its own, which breaks SAVEPOINT
    (the number generator runs its locked read inside one). Hand BEGIN over
    to SQLAlchemy instead.

    SQLite ignores FOR UPDATE, so transactions start with BEGIN IMMEDIATE:
    the write lock is taken up front and a second numbering transaction waits
    for the first to finish before it reads the last number.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_conn, _connection_record):
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # FastAPI serves sync endpoints from a threadpool.
        sqlite_engine = create_engine(
            url,
            echo=settings.SQL_ECHO,
            connect_args={
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            },
        )
        enable_sqlite_savepoints(sqlite_engine)
        return sqlite_engine
    return create_engine(url, echo=settings.SQL_ECHO, pool_pre_ping=True)


engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
