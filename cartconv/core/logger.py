"""
User-facing reporting for cartconv.

Diagnostics (warnings, debug traces) go through :mod:`logging`; the lines a
user asked for -- conversion summaries and insertion progress -- go through
an :class:`IReporter` so that quiet mode can swap in :class:`NullReporter`.
"""

import sys
from abc import ABC, abstractmethod
from typing import Optional, TextIO


class IReporter(ABC):
    """Sink for conversion summaries and insertion progress."""

    @abstractmethod
    def line(self, message: str): ...


class NullReporter(IReporter):
    """No-op reporter, used in quiet mode."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def line(self, message: str):
        pass


class ConsoleReporter(IReporter):
    """Reporter that prints to a text stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def line(self, message: str):
        print(message, file=self.stream)


class RecordingReporter(IReporter):
    """Reporter that keeps every line in memory."""

    def __init__(self):
        self.lines: list[str] = []

    def line(self, message: str):
        self.lines.append(message)


# Default reporter instance
DEFAULT_REPORTER: IReporter = NullReporter()
