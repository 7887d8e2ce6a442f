from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from hive_setup.persistence.models import Base


SQLITE_PREFIX = "sqlite:///"
IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def resolve_history_url(database_url: str) -> str:
    """Expand ``~`` in file-backed SQLite URLs and make sure the parent directory exists."""
    if database_url in IN_MEMORY_URLS or not database_url.startswith(SQLITE_PREFIX):
        return database_url
    db_path = Path(database_url.removeprefix(SQLITE_PREFIX)).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"{SQLITE_PREFIX}{db_path}"


def create_history_engine(database_url: str) -> Engine:
    url = resolve_history_url(database_url)
    engine = create_engine(url, echo=False)
    if url.startswith("sqlite"):
        # step_runs rows reference setup_runs; SQLite only enforces that when asked.
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_database(database_url: str) -> sessionmaker[Session]:
    engine = create_history_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    del connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
