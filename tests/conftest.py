from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from pomodoro_flow.config import Settings
from pomodoro_flow.db import PomodoroStore
from pomodoro_flow.errors import HookFailure
from pomodoro_flow.hooks import HookInvoker
from pomodoro_flow.timer import PomodoroTimer

# Local noon keeps every test timestamp on the same local calendar day.
LOCAL_NOON = datetime(2026, 10, 19, 12, 0).astimezone()


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingHooks(HookInvoker):
    """Records each event and what the slot held when it fired."""

    def __init__(self, store: PomodoroStore | None = None):
        self.store = store
        self.events: list[str] = []
        self.slot_at_event: list = []
        self.failing: set[str] = set()

    def invoke(self, event: str) -> None:
        self.events.append(event)
        if self.store is not None:
            self.slot_at_event.append(self.store.current())
        if event in self.failing:
            raise HookFailure(f"{event} hook exited with status 1")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's POMODORO_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("POMODORO_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "pomodoro"


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_directory=data_dir, daily_goal=4, default_tags=["focus"])


@pytest.fixture
def store(data_dir: Path) -> PomodoroStore:
    return PomodoroStore(data_dir)


@pytest.fixture
def clock() -> Clock:
    return Clock(LOCAL_NOON)


@pytest.fixture
def hooks(store: PomodoroStore) -> RecordingHooks:
    return RecordingHooks(store)


@pytest.fixture
def timer(store, hooks, settings, clock) -> PomodoroTimer:
    return PomodoroTimer(store, hooks, settings, clock=clock)
