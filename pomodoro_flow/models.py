from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

SLOT_ID = 1


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes (as SQLite hands them back) are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class PomodoroState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    DONE = "done"


class Pomodoro(SQLModel):
    """A timed work interval. Remaining/elapsed are always computed from `now`."""

    start_time: datetime
    duration: timedelta
    description: str = ""
    tags: list[str] = Field(default_factory=list)

    def elapsed(self, now: datetime) -> timedelta:
        return now - as_utc(self.start_time)

    def remaining(self, now: datetime) -> timedelta:
        return max(timedelta(0), self.duration - self.elapsed(now))

    def is_active(self, now: datetime) -> bool:
        return self.elapsed(now) < self.duration

    def is_done(self, now: datetime) -> bool:
        return not self.is_active(now)


def pomodoro_state(pomodoro: Optional[Pomodoro], now: datetime) -> PomodoroState:
    if pomodoro is None:
        return PomodoroState.INACTIVE
    if pomodoro.is_active(now):
        return PomodoroState.ACTIVE
    return PomodoroState.DONE


# --- Tables ---


class CurrentPomodoro(SQLModel, table=True):
    """The slot. Never holds more than the one row with id == SLOT_ID."""

    __tablename__ = "current_pomodoro"

    id: int = Field(default=SLOT_ID, primary_key=True)
    start_time: datetime
    duration_seconds: float
    description: str = ""
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))


class PomodoroRecord(SQLModel, table=True):
    """One history entry; `id` order is append order."""

    __tablename__ = "pomodoro_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    start_time: datetime = Field(index=True)
    duration_seconds: float
    description: str = ""
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))


def row_fields(pomodoro: Pomodoro) -> dict:
    return {
        "start_time": as_utc(pomodoro.start_time).replace(tzinfo=None),
        "duration_seconds": pomodoro.duration.total_seconds(),
        "description": pomodoro.description,
        "tags": list(pomodoro.tags),
    }


def row_to_pomodoro(row: Union[CurrentPomodoro, PomodoroRecord]) -> Pomodoro:
    return Pomodoro(
        start_time=as_utc(row.start_time),
        duration=timedelta(seconds=row.duration_seconds),
        description=row.description,
        tags=list(row.tags or []),
    )
