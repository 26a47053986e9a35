"""
Settings resolution.

Every key is resolved on its own: an explicit override wins, then the
`settings` file in the data directory, then the built-in default. Durations
are minutes at every layer; a duration of zero or less is ignored at the
layer it appears in and the next layer is consulted.

Nothing here is cached. Callers run `load_settings()` once per operation.
"""
from __future__ import annotations

import logging
import math
import os
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict

from pomodoro_flow.errors import ClientInitFailure

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings"
DIRECTORY_ENV = "POMODORO_DIR"
ENV_PREFIX = "POMODORO_"

# One year. timedelta overflows not far above 1e12 minutes.
MAX_MINUTES = 365 * 24 * 60

DEFAULTS: dict[str, Any] = {
    "data_directory": "~/.pomodoro",
    "daily_goal": 0,
    "default_pomodoro_duration": 25,
    "default_break_duration": 5,
    "default_tags": "",
    "hook_timeout": 10,
}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    data_directory: Path
    daily_goal: int = 0
    default_pomodoro_duration: timedelta = timedelta(minutes=25)
    default_break_duration: timedelta = timedelta(minutes=5)
    default_tags: list[str] = []
    hook_timeout: float = 10.0


def configure_logging(level: Optional[str] = None) -> None:
    """Log to stderr; stdout belongs to the MCP transport."""
    name = (level or os.getenv("POMODORO_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def minutes(value: Any) -> Optional[timedelta]:
    """Minutes -> timedelta; zero or negative means "not set"."""
    amount = float(value)
    if not math.isfinite(amount) or amount > MAX_MINUTES:
        raise ValueError(f"duration must be at most {MAX_MINUTES} minutes")
    if amount <= 0:
        return None
    return timedelta(minutes=amount)


def _goal(value: Any) -> Optional[int]:
    goal = int(value)
    return goal if goal >= 0 else None


def _seconds(value: Any) -> Optional[float]:
    amount = float(value)
    if not math.isfinite(amount):
        raise ValueError("must be a finite number")
    return amount if amount > 0 else None


def _tags(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(tag) for tag in value if str(tag)]
    return [tag.strip() for tag in str(value).split(",") if tag.strip()]


def _directory(value: Any) -> Optional[Path]:
    text = str(value).strip()
    return Path(text).expanduser() if text else None


_PARSERS: dict[str, Callable[[Any], Any]] = {
    "data_directory": _directory,
    "daily_goal": _goal,
    "default_pomodoro_duration": minutes,
    "default_break_duration": minutes,
    "default_tags": _tags,
    "hook_timeout": _seconds,
}


def resolve_settings(
    overrides: Mapping[str, Any],
    stored: Mapping[str, Any],
    defaults: Mapping[str, Any] = DEFAULTS,
) -> Settings:
    """Merge the three layers into effective settings. Pure."""
    values: dict[str, Any] = {}
    for key, parse in _PARSERS.items():
        for layer in (overrides, stored, defaults):
            raw = layer.get(key)
            if raw is None:
                continue
            try:
                parsed = parse(raw)
            except (TypeError, ValueError, OverflowError) as e:
                raise ClientInitFailure(f"invalid setting {key}={raw!r}: {e}") from e
            if parsed is not None:
                values[key] = parsed
                break
    if "data_directory" not in values:
        raise ClientInitFailure("no data directory configured")
    return Settings(**values)


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """POMODORO_* environment variables, keyed by setting name."""
    environ = os.environ if environ is None else environ
    found: dict[str, str] = {}
    if environ.get(DIRECTORY_ENV):
        found["data_directory"] = environ[DIRECTORY_ENV]
    for key in _PARSERS:
        if key == "data_directory":
            continue
        value = environ.get(ENV_PREFIX + key.upper())
        if value:
            found[key] = value
    return found


def read_stored_settings(directory: Path) -> dict[str, str]:
    """Parse `<directory>/settings` (key=value lines). Missing file -> {}."""
    path = Path(directory) / SETTINGS_FILE
    if not path.is_file():
        return {}
    try:
        raw = dotenv_values(path)
    except OSError as e:
        raise ClientInitFailure(f"cannot read {path}: {e}") from e

    stored: dict[str, str] = {}
    for key, value in raw.items():
        key = key.strip().lower()
        if key == "data_directory" or key not in _PARSERS:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            continue
        if value is not None:
            stored[key] = value
    return stored


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Settings:
    """Resolve settings from the environment, the settings file and defaults."""
    layered = env_overrides()
    layered.update({k: v for k, v in (overrides or {}).items() if v is not None})

    directory = _directory(layered.get("data_directory") or "") or _directory(
        DEFAULTS["data_directory"]
    )
    stored = read_stored_settings(directory)
    return resolve_settings(layered, stored, DEFAULTS)
