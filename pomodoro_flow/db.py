"""
SQLite storage for the current-pomodoro slot and the history log.

Each public method of PomodoroStore runs in its own transaction. Engines and
write locks are shared per database file so every store opened on the same
data directory serialises its writers on the same lock.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from pomodoro_flow.errors import ClientInitFailure, PersistenceFailure
from pomodoro_flow.history import History
from pomodoro_flow.models import (
    SLOT_ID,
    CurrentPomodoro,
    Pomodoro,
    PomodoroRecord,
    row_fields,
    row_to_pomodoro,
)

logger = logging.getLogger(__name__)

DATABASE_FILE = "pomodoro.db"

_engines: dict[Path, tuple[Engine, threading.Lock]] = {}
_engines_lock = threading.Lock()


def open_database(directory: Path) -> tuple[Engine, threading.Lock]:
    """Create (once per file) the engine, schema and write lock for a data directory."""
    path = (Path(directory) / DATABASE_FILE).resolve()
    with _engines_lock:
        cached = _engines.get(path)
        if cached is not None:
            return cached
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(
                f"sqlite:///{path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
            SQLModel.metadata.create_all(engine)
        except (OSError, SQLAlchemyError) as e:
            raise ClientInitFailure(f"failed to open {path}: {e}") from e
        logger.debug("Opened pomodoro database at %s", path)
        _engines[path] = (engine, threading.Lock())
        return _engines[path]


class PomodoroStore:
    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.engine, self.lock = open_database(self.directory)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"storage error: {e}") from e

    # --- slot ---

    def current(self) -> Optional[Pomodoro]:
        with self._session() as db:
            row = db.get(CurrentPomodoro, SLOT_ID)
            return row_to_pomodoro(row) if row else None

    def set_current(self, pomodoro: Pomodoro) -> None:
        with self._session() as db:
            db.merge(CurrentPomodoro(id=SLOT_ID, **row_fields(pomodoro)))
            db.commit()

    def clear_current(self) -> None:
        with self._session() as db:
            row = db.get(CurrentPomodoro, SLOT_ID)
            if row is not None:
                db.delete(row)
                db.commit()

    def archive_current(self) -> Optional[Pomodoro]:
        """Move the slot's pomodoro to the end of the history log."""
        with self._session() as db:
            row = db.get(CurrentPomodoro, SLOT_ID)
            if row is None:
                return None
            pomodoro = row_to_pomodoro(row)
            db.add(PomodoroRecord(**row_fields(pomodoro)))
            db.delete(row)
            db.commit()
            return pomodoro

    # --- history log ---

    def append(self, pomodoro: Pomodoro) -> None:
        with self._session() as db:
            db.add(PomodoroRecord(**row_fields(pomodoro)))
            db.commit()

    def history(self) -> History:
        with self._session() as db:
            rows = db.exec(select(PomodoroRecord).order_by(PomodoroRecord.id)).all()
            return History([row_to_pomodoro(row) for row in rows])
