"""Read-only view over the ordered pomodoro log, plus daily goal counting."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Union

from pydantic import BaseModel

from pomodoro_flow.models import Pomodoro


def as_minutes(span: timedelta) -> Union[int, float]:
    value = span.total_seconds() / 60
    return int(value) if value.is_integer() else round(value, 2)


class GoalProgress(BaseModel):
    complete: int
    total: int


class History:
    def __init__(self, pomodoros: Iterable[Pomodoro] = ()):
        self.pomodoros: tuple[Pomodoro, ...] = tuple(pomodoros)

    def __len__(self) -> int:
        return len(self.pomodoros)

    def __iter__(self):
        return iter(self.pomodoros)

    def latest(self) -> Optional[Pomodoro]:
        return self.pomodoros[-1] if self.pomodoros else None

    def window(self, limit: int) -> History:
        """The last `limit` entries, oldest first. limit <= 0 means all."""
        if 0 < limit < len(self.pomodoros):
            return History(self.pomodoros[-limit:])
        return self

    def date_count(self, day: date) -> int:
        """Entries started on `day` in the local timezone."""
        return sum(1 for p in self.pomodoros if p.start_time.astimezone().date() == day)

    def goal(self, day: date, daily_goal: int) -> GoalProgress:
        return GoalProgress(complete=self.date_count(day), total=daily_goal)

    def to_dict(self) -> dict:
        return {
            "pomodoros": [
                {
                    "start_time": p.start_time.astimezone().isoformat(),
                    "description": p.description,
                    "duration": as_minutes(p.duration),
                    "tags": list(p.tags),
                }
                for p in self.pomodoros
            ]
        }
