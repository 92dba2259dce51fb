# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy declarative base and the ``Database`` handle.

There is no module-level engine.  The application factory builds one
``Database`` from the settings and hangs it on ``app.state``; everything that
touches the store receives it explicitly.  Each operation borrows a session
for its own duration only:

    with database.session() as db:        # read / single write
        ...
    with database.transaction() as db:    # all-or-nothing
        ...
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class Database:
    """Engine + session factory with scoped acquire / release helpers."""

    def __init__(self, url: str, engine: Optional[Engine] = None):
        if engine is None:
            engine = _build_engine(url)
        self.engine = engine
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
        )

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Yield a session and close it on every exit path.  Writes are
        committed by the caller; an exception discards anything uncommitted.
        """
        db = self._session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session whose work commits on success and rolls back otherwise."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self) -> None:
        """Create every mapped table.  Used by tests; production runs alembic."""
        # Import every ORM model so that Base.metadata knows about all tables.
        import models.user                # noqa: F401
        import models.device_session      # noqa: F401
        import models.activity_log        # noqa: F401
        import models.bridge_transaction  # noqa: F401
        import models.wallet_backup       # noqa: F401
        import models.wallet              # noqa: F401

        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads, otherwise
        # every checkout sees an empty database.
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_fk(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    # pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
    return create_engine(url, pool_pre_ping=True, pool_recycle=3600)
