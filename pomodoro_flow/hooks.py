"""
Lifecycle hooks: `start`, `stop` and `break`.

A hook is an executable at `<data_dir>/hooks/<event>`. A missing hook counts
as success; anything else that keeps it from exiting 0 within the timeout is
a HookFailure.
"""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from pomodoro_flow.errors import HookFailure

logger = logging.getLogger(__name__)

HOOKS_DIR = "hooks"


class HookInvoker:
    """Interface for notification backends."""

    def invoke(self, event: str) -> None:
        raise NotImplementedError


class NoopHooks(HookInvoker):
    def invoke(self, event: str) -> None:
        return None


class ScriptHooks(HookInvoker):
    def __init__(self, directory: Path, timeout: float = 10.0):
        self.directory = Path(directory)
        self.timeout = timeout

    def path_for(self, event: str) -> Path:
        return self.directory / HOOKS_DIR / event

    def invoke(self, event: str) -> None:
        script = self.path_for(event)
        if not script.is_file():
            logger.debug("No %s hook at %s", event, script)
            return

        env = dict(os.environ)
        env["POMODORO_EVENT"] = event
        env["POMODORO_DIR"] = str(self.directory)
        try:
            proc = subprocess.run(
                [str(script)],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
                env=env,
                cwd=str(self.directory),
            )
        except subprocess.TimeoutExpired as e:
            raise HookFailure(f"{event} hook timed out after {self.timeout:g}s") from e
        except OSError as e:
            raise HookFailure(f"{event} hook could not run: {e}") from e

        if proc.returncode != 0:
            detail = proc.stderr.strip() or proc.stdout.strip()
            message = f"{event} hook exited with status {proc.returncode}"
            raise HookFailure(f"{message}: {detail}" if detail else message)
        logger.debug("Ran %s hook", event)
