"""Chat-bot features: reminders, group management, song guessing and small utilities."""

__version__ = "0.1.0"