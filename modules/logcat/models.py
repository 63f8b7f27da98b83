"""Data models for the logcat streaming subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class LogLevel(Enum):
    """Logcat priority with an explicit severity order.

    Each member carries its single-letter code and a priority; comparisons use
    the priority, so ``LogLevel.DEBUG < LogLevel.ERROR`` holds.
    """

    VERBOSE = ('V', 0, 'Verbose')
    DEBUG = ('D', 1, 'Debug')
    INFO = ('I', 2, 'Info')
    WARNING = ('W', 3, 'Warning')
    ERROR = ('E', 4, 'Error')
    FATAL = ('F', 5, 'Fatal')
    SILENT = ('S', 6, 'Silent')

    def __init__(self, code: str, priority: int, label: str):
        self._code = code
        self._priority = priority
        self._label = label

    @property
    def code(self) -> str:
        return self._code

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def label(self) -> str:
        return self._label

    @classmethod
    def from_code(cls, code: str) -> 'LogLevel':
        """Return the level for a code such as ``'W'`` (case-insensitive)."""
        normalized = (code or '').strip().upper()
        for member in cls:
            if member.code == normalized:
                return member
        raise ValueError(f'Unknown log level code: {code!r}')

    def __lt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self._priority < other._priority

    def __le__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self._priority <= other._priority

    def __gt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self._priority > other._priority

    def __ge__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self._priority >= other._priority


@dataclass(frozen=True)
class LogcatEntry:
    """One parsed threadtime line."""

    timestamp: datetime
    pid: int
    tid: int
    level: LogLevel
    tag: str
    message: str
    raw_line: str = ''

    def format(self) -> str:
        """Render the entry in a compact threadtime-like layout."""
        time_text = self.timestamp.strftime('%m-%d %H:%M:%S.') + f'{self.timestamp.microsecond // 1000:03d}'
        return f'{time_text} {self.pid:>5} {self.tid:>5} {self.level.code} {self.tag}: {self.message}'


@dataclass(frozen=True)
class LogcatFilter:
    """Level and text criteria applied to entries before they are retained."""

    min_level: LogLevel = LogLevel.VERBOSE
    text: str = ''

    def matches(self, entry: LogcatEntry) -> bool:
        if entry.level < self.min_level:
            return False
        needle = self.text.lower()
        if not needle:
            return True
        return needle in entry.tag.lower() or needle in entry.message.lower()


class EngineState(Enum):
    """Lifecycle states of the stream engine."""

    STOPPED = 'stopped'
    RUNNING = 'running'


class LogcatEventType(Enum):
    """Kinds of events delivered to subscribers."""

    START = 'start'
    ENTRY = 'entry'
    ERROR = 'error'
    CLOSE = 'close'


@dataclass(frozen=True)
class LogcatEvent:
    """Event published by the stream engine."""

    kind: LogcatEventType
    entry: Optional[LogcatEntry] = None
    message: Optional[str] = None
    exit_code: Optional[int] = None

    @classmethod
    def started(cls, message: Optional[str] = None) -> 'LogcatEvent':
        return cls(kind=LogcatEventType.START, message=message)

    @classmethod
    def for_entry(cls, entry: LogcatEntry) -> 'LogcatEvent':
        return cls(kind=LogcatEventType.ENTRY, entry=entry)

    @classmethod
    def error(cls, message: str) -> 'LogcatEvent':
        return cls(kind=LogcatEventType.ERROR, message=message)

    @classmethod
    def closed(cls, exit_code: Optional[int]) -> 'LogcatEvent':
        return cls(kind=LogcatEventType.CLOSE, exit_code=exit_code)
