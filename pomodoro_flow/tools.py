"""
Tool layer shared by the MCP server and the HTTP router.

Each call resolves settings, opens the store and runs one timer operation.
Every PomodoroError comes back as an error ToolResult; nothing is raised to
the transport.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from pomodoro_flow.config import MAX_MINUTES, Settings, load_settings
from pomodoro_flow.db import PomodoroStore
from pomodoro_flow.errors import (
    ClientInitFailure,
    HookFailure,
    PersistenceFailure,
    PomodoroError,
    SerializationFailure,
)
from pomodoro_flow.history import as_minutes
from pomodoro_flow.hooks import ScriptHooks
from pomodoro_flow.models import PomodoroState, now_utc
from pomodoro_flow.timer import PomodoroTimer

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    text: str
    is_error: bool = False
    status_code: int = 200

    @classmethod
    def error(cls, text: str, status_code: int = 400) -> "ToolResult":
        return cls(text=text, is_error=True, status_code=status_code)


def format_duration(span: timedelta) -> str:
    """m:ss, never negative."""
    seconds = max(0, int(span.total_seconds()))
    return f"{seconds // 60}:{seconds % 60:02d}"


def _dump(payload: Any, what: str) -> str:
    try:
        return json.dumps(payload, indent=2)
    except (TypeError, ValueError) as e:
        raise SerializationFailure(f"failed to marshal {what}: {e}") from e


# --- Arguments ---


class NoArgs(BaseModel):
    pass


class StartArgs(BaseModel):
    description: Optional[str] = Field(default=None, description="Description of what you're working on")
    duration: Optional[float] = Field(
        default=None, le=MAX_MINUTES, allow_inf_nan=False,
        description="Duration in minutes (default: 25)",
    )
    tags: Optional[list[str]] = Field(default=None, description="Tags for this Pomodoro")


class BreakArgs(BaseModel):
    duration: Optional[float] = Field(
        default=None, le=MAX_MINUTES, allow_inf_nan=False,
        description="Break duration in minutes (default: 5)",
    )


class AmendArgs(BaseModel):
    description: Optional[str] = Field(default=None, description="New description")
    duration: Optional[float] = Field(
        default=None, le=MAX_MINUTES, allow_inf_nan=False,
        description="New duration in minutes",
    )
    tags: Optional[list[str]] = Field(default=None, description="New tags")


class HistoryArgs(BaseModel):
    # A number, truncated towards zero.
    limit: float = Field(
        default=0, allow_inf_nan=False,
        description="Limit number of entries returned (0 = all)",
    )


# --- Handlers ---


def start_pomodoro(timer: PomodoroTimer, args: StartArgs) -> str:
    p = timer.start(args.description or "", args.duration, args.tags)
    return f"Pomodoro started: {p.description} ({format_duration(p.duration)})"


def get_status(timer: PomodoroTimer, args: NoArgs) -> str:
    status = timer.status()
    payload: dict[str, Any] = {
        "active": status.state == PomodoroState.ACTIVE,
        "done": status.state == PomodoroState.DONE,
    }
    if status.pomodoro is not None:
        payload["remaining"] = format_duration(status.remaining)
        payload["duration"] = format_duration(status.pomodoro.duration)
        payload["description"] = status.pomodoro.description
        payload["tags"] = list(status.pomodoro.tags)
    payload["goal_complete"] = status.goal.complete
    payload["goal_total"] = status.goal.total
    return _dump(payload, "status")


def finish_pomodoro(timer: PomodoroTimer, args: NoArgs) -> str:
    elapsed = timer.finish()
    return f"Pomodoro finished after {format_duration(elapsed)}"


def cancel_pomodoro(timer: PomodoroTimer, args: NoArgs) -> str:
    timer.cancel()
    return "Pomodoro cancelled"


def clear_pomodoro(timer: PomodoroTimer, args: NoArgs) -> str:
    timer.clear()
    return "Pomodoro cleared"


def start_break(timer: PomodoroTimer, args: BreakArgs) -> str:
    span = timer.start_break(args.duration)
    return f"Break started ({format_duration(span)})"


def repeat_pomodoro(timer: PomodoroTimer, args: NoArgs) -> str:
    p = timer.repeat()
    return f"Pomodoro repeated: {p.description}"


def amend_pomodoro(timer: PomodoroTimer, args: AmendArgs) -> str:
    p = timer.amend(args.description, args.duration, args.tags)
    return f"Pomodoro amended: {p.description}"


def get_history(timer: PomodoroTimer, args: HistoryArgs) -> str:
    history = timer.store.history().window(int(args.limit))
    return _dump(history.to_dict(), "history")


def settings_payload(settings: Settings) -> dict:
    return {
        "data_directory": str(settings.data_directory),
        "daily_goal": settings.daily_goal,
        "default_pomodoro_duration": as_minutes(settings.default_pomodoro_duration),
        "default_break_duration": as_minutes(settings.default_break_duration),
        "default_tags": list(settings.default_tags),
    }


def get_settings(timer: PomodoroTimer, args: NoArgs) -> str:
    return _dump(settings_payload(timer.settings), "settings")


# --- Registry ---


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    arguments: Type[BaseModel]
    handler: Callable[[PomodoroTimer, Any], str]
    action: str

    @property
    def input_schema(self) -> dict:
        schema = self.arguments.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema


TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec("start_pomodoro", "Start a new Pomodoro timer",
                 StartArgs, start_pomodoro, "start pomodoro"),
        ToolSpec("get_status", "Get the status of the current Pomodoro",
                 NoArgs, get_status, "get status"),
        ToolSpec("finish_pomodoro", "Finish the current Pomodoro early",
                 NoArgs, finish_pomodoro, "finish pomodoro"),
        ToolSpec("cancel_pomodoro", "Cancel the current active Pomodoro",
                 NoArgs, cancel_pomodoro, "cancel pomodoro"),
        ToolSpec("clear_pomodoro", "Clear a finished Pomodoro",
                 NoArgs, clear_pomodoro, "clear pomodoro"),
        ToolSpec("start_break", "Start a break timer",
                 BreakArgs, start_break, "start break"),
        ToolSpec("repeat_pomodoro", "Repeat the last Pomodoro with the same description and tags",
                 NoArgs, repeat_pomodoro, "repeat pomodoro"),
        ToolSpec("amend_pomodoro", "Amend the current Pomodoro's description, duration, or tags",
                 AmendArgs, amend_pomodoro, "amend pomodoro"),
        ToolSpec("get_history", "Get Pomodoro history",
                 HistoryArgs, get_history, "get history"),
        ToolSpec("get_settings", "Get current Pomodoro settings",
                 NoArgs, get_settings, "get settings"),
    )
}


def open_timer(settings: Settings, clock: Callable[[], datetime] = now_utc) -> PomodoroTimer:
    store = PomodoroStore(settings.data_directory)
    hooks = ScriptHooks(settings.data_directory, timeout=settings.hook_timeout)
    return PomodoroTimer(store, hooks, settings, clock=clock)


def call_tool(
    name: str,
    arguments: Optional[Mapping[str, Any]] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    clock: Callable[[], datetime] = now_utc,
) -> ToolResult:
    spec = TOOLS.get(name)
    if spec is None:
        return ToolResult.error(f"unknown tool: {name}", 404)

    try:
        args = spec.arguments.model_validate(dict(arguments or {}))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        return ToolResult.error(f"invalid arguments for {name}: {problems}", 422)

    try:
        timer = open_timer(load_settings(overrides), clock)
    except ClientInitFailure as e:
        logger.error("Could not initialise pomodoro client: %s", e)
        return ToolResult.error(f"failed to create client: {e}", e.status_code)

    try:
        text = spec.handler(timer, args)
    except HookFailure as e:
        logger.warning("%s: hook failed: %s", name, e)
        return ToolResult.error(f"hook failed: {e}", e.status_code)
    except PersistenceFailure as e:
        logger.error("%s: %s", name, e)
        return ToolResult.error(f"failed to {spec.action}: {e}", e.status_code)
    except PomodoroError as e:
        logger.info("%s rejected: %s", name, e)
        return ToolResult.error(str(e), e.status_code)
    return ToolResult(text=text)
