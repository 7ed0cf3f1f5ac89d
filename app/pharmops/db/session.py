import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.pharmops.core.config import settings
from app.pharmops.core.db_timing import add_db_time, get_db_time_ms


def build_connect_args(database_url: str, statement_timeout_ms: int) -> dict:
    if database_url.startswith("sqlite"):
        # busy timeout, in seconds
        return {"check_same_thread": False, "timeout": max(statement_timeout_ms / 1000, 1)}
    if database_url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={statement_timeout_ms}"}
    return {}


def build_engine(database_url: str, statement_timeout_ms: int | None = None):
    timeout_ms = statement_timeout_ms if statement_timeout_ms is not None else settings.DB_STATEMENT_TIMEOUT_MS
    engine = create_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args=build_connect_args(database_url, timeout_ms),
    )
    event.listen(engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(engine, "after_cursor_execute", _after_cursor_execute)
    return engine


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if get_db_time_ms() is None:
        return
    conn.info["query_start_time"] = time.perf_counter()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if get_db_time_ms() is None:
        return
    start = conn.info.pop("query_start_time", None)
    if start is None:
        return
    add_db_time((time.perf_counter() - start) * 1000)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
