"""Logcat streaming subsystem."""

from .entry_buffer import EntryBuffer
from .models import (
    EngineState,
    LogcatEntry,
    LogcatEvent,
    LogcatEventType,
    LogcatFilter,
    LogLevel,
)
from .parser import LogcatParser, parse_line
from .stream_engine import LogcatChannel, LogcatStreamEngine, LogcatSubscription, StreamSession

__all__ = [
    'EngineState',
    'EntryBuffer',
    'LogcatChannel',
    'LogcatEntry',
    'LogcatEvent',
    'LogcatEventType',
    'LogcatFilter',
    'LogcatParser',
    'LogcatStreamEngine',
    'LogcatSubscription',
    'LogLevel',
    'StreamSession',
    'parse_line',
]
