"""Pomodoro Flow: pomodoro timer, history and daily goal tools for agents."""

__version__ = "1.0.0"
