"""
Errors raised by the Pomodoro core. The tool layer turns every one of these
into an error reply; the HTTP router maps them to a status code.
"""


class PomodoroError(RuntimeError):
    status_code = 500


class ClientInitFailure(PomodoroError):
    """Data directory, database or settings could not be opened."""
    status_code = 503


class NoActiveSession(PomodoroError):
    status_code = 409


class NothingToAmend(PomodoroError):
    status_code = 409


class NothingToRepeat(PomodoroError):
    status_code = 409


class CannotRepeatActive(PomodoroError):
    status_code = 409


class HookFailure(PomodoroError):
    """A hook script exited non-zero, could not run, or timed out."""
    status_code = 502


class PersistenceFailure(PomodoroError):
    status_code = 500


class SerializationFailure(PomodoroError):
    status_code = 500
