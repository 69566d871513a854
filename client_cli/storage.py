"""
Durable key-value store backing the token store. SQLite via SQLAlchemy.
Only TokenStore writes here; everything else reads the session through TokenStore.
"""
from pathlib import Path

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from client_cli.models import Base, StoredEntry


def _make_engine(database_url: str):
    # In-memory needs StaticPool so every connection sees the same DB
    if database_url.startswith("sqlite:///:memory:") or database_url == "sqlite://":
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite:///"):
        Path(database_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    connect_args = {"check_same_thread": False} if "sqlite" in database_url else {}
    return create_engine(database_url, connect_args=connect_args)


class DurableStore:
    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = _make_engine(database_url)
        self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    def get(self, key: str) -> str | None:
        with self._sessions() as db:
            entry = db.get(StoredEntry, key)
            return entry.value if entry else None

    def get_many(self, *keys: str) -> dict[str, str]:
        with self._sessions() as db:
            rows = db.scalars(select(StoredEntry).where(StoredEntry.key.in_(keys))).all()
            return {row.key: row.value for row in rows}

    def set_many(self, values: dict[str, str]) -> None:
        """Write all values in one transaction."""
        with self._sessions() as db:
            for key, value in values.items():
                db.merge(StoredEntry(key=key, value=value))
            db.commit()

    def remove(self, *keys: str) -> None:
        with self._sessions() as db:
            db.execute(delete(StoredEntry).where(StoredEntry.key.in_(keys)))
            db.commit()

    def close(self) -> None:
        self.engine.dispose()
