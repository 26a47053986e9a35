"""
The pomodoro lifecycle.

A pomodoro is Inactive (empty slot), Active or Done; the state is never
stored, it is derived from the slot and the clock. Writes that start a
pomodoro (start, repeat) persist first and fire the hook second. Writes that
end one (finish, cancel, clear) fire the `stop` hook first and only touch the
slot when the hook succeeded. A hook failure after a start keeps the write.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from pydantic import BaseModel

from pomodoro_flow.config import Settings, minutes
from pomodoro_flow.db import PomodoroStore
from pomodoro_flow.errors import (
    CannotRepeatActive,
    NoActiveSession,
    NothingToAmend,
    NothingToRepeat,
)
from pomodoro_flow.history import GoalProgress
from pomodoro_flow.hooks import HookInvoker
from pomodoro_flow.models import Pomodoro, PomodoroState, now_utc, pomodoro_state

logger = logging.getLogger(__name__)


class PomodoroStatus(BaseModel):
    state: PomodoroState
    pomodoro: Optional[Pomodoro] = None
    remaining: Optional[timedelta] = None
    goal: GoalProgress


class PomodoroTimer:
    def __init__(
        self,
        store: PomodoroStore,
        hooks: HookInvoker,
        settings: Settings,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.store = store
        self.hooks = hooks
        self.settings = settings
        self.clock = clock

    @staticmethod
    def _duration(value: Optional[float], default: timedelta) -> timedelta:
        if value is None:
            return default
        return minutes(value) or default

    def _begin(self, pomodoro: Pomodoro) -> None:
        self.store.set_current(pomodoro)
        logger.info("Started pomodoro %r for %s", pomodoro.description, pomodoro.duration)
        self.hooks.invoke("start")

    def start(
        self,
        description: str = "",
        duration: Optional[float] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Pomodoro:
        """Start a fresh pomodoro, replacing whatever is in the slot."""
        with self.store.lock:
            pomodoro = Pomodoro(
                start_time=self.clock(),
                duration=self._duration(duration, self.settings.default_pomodoro_duration),
                description=description or "",
                tags=list(self.settings.default_tags if tags is None else tags),
            )
            self._begin(pomodoro)
        return pomodoro

    def finish(self) -> timedelta:
        """Record the current pomodoro in history. Returns the elapsed time."""
        with self.store.lock:
            current = self.store.current()
            if current is None:
                raise NoActiveSession("no active pomodoro to finish")
            elapsed = current.elapsed(self.clock())
            self.hooks.invoke("stop")
            self.store.archive_current()
        logger.info("Finished pomodoro %r after %s", current.description, elapsed)
        return elapsed

    def cancel(self) -> None:
        with self.store.lock:
            current = self.store.current()
            if current is None:
                raise NoActiveSession("no active pomodoro to cancel")
            self.hooks.invoke("stop")
            self.store.clear_current()
        logger.info("Cancelled pomodoro %r", current.description)

    def clear(self) -> None:
        with self.store.lock:
            self.hooks.invoke("stop")
            self.store.clear_current()
        logger.info("Cleared current pomodoro")

    def amend(
        self,
        description: Optional[str] = None,
        duration: Optional[float] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Pomodoro:
        """
        Rewrite the most recent history entry into the slot, replacing only
        the fields given. This reads history, not the slot.
        """
        with self.store.lock:
            latest = self.store.history().latest()
            if latest is None:
                raise NothingToAmend("no pomodoro to amend")

            changes: dict = {}
            if description:
                changes["description"] = description
            span = minutes(duration) if duration is not None else None
            if span:
                changes["duration"] = span
            if tags:
                changes["tags"] = list(tags)

            amended = Pomodoro(**{**latest.model_dump(), **changes})
            self.store.set_current(amended)
        logger.info("Amended pomodoro %r", amended.description)
        return amended

    def repeat(self) -> Pomodoro:
        """Start a new pomodoro with the last one's description and tags."""
        with self.store.lock:
            latest = self.store.history().latest()
            if latest is None:
                raise NothingToRepeat("no previous pomodoro to repeat")
            now = self.clock()
            if latest.is_active(now):
                raise CannotRepeatActive("cannot repeat an active pomodoro")

            pomodoro = Pomodoro(
                start_time=now,
                duration=self.settings.default_pomodoro_duration,
                description=latest.description,
                tags=list(latest.tags),
            )
            self._begin(pomodoro)
        return pomodoro

    def start_break(self, duration: Optional[float] = None) -> timedelta:
        """Fire the `break` hook and return at once. Nothing is stored."""
        span = self._duration(duration, self.settings.default_break_duration)
        self.hooks.invoke("break")
        logger.info("Break started for %s", span)
        return span

    def status(self) -> PomodoroStatus:
        # Slot and history read together under the write lock.
        with self.store.lock:
            now = self.clock()
            current = self.store.current()
            history = self.store.history()
        goal = history.goal(now.astimezone().date(), self.settings.daily_goal)

        state = pomodoro_state(current, now)
        if current is None:
            return PomodoroStatus(state=state, goal=goal)
        return PomodoroStatus(
            state=state,
            pomodoro=current,
            remaining=current.remaining(now),
            goal=goal,
        )
