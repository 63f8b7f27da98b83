"""Tests for logcat levels, filters and events."""

import os
import sys
import unittest
from datetime import datetime

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modules.logcat.models import (  # noqa: E402
    LogcatEntry,
    LogcatEvent,
    LogcatEventType,
    LogcatFilter,
    LogLevel,
)


def _entry(level=LogLevel.INFO, tag='Network', message='Connected to wifi'):
    return LogcatEntry(
        timestamp=datetime(2024, 5, 1, 10, 0, 0),
        pid=1,
        tid=2,
        level=level,
        tag=tag,
        message=message,
    )


class LogLevelTests(unittest.TestCase):

    def test_levels_are_ordered_by_severity(self):
        ordered = [
            LogLevel.VERBOSE,
            LogLevel.DEBUG,
            LogLevel.INFO,
            LogLevel.WARNING,
            LogLevel.ERROR,
            LogLevel.FATAL,
            LogLevel.SILENT,
        ]
        self.assertEqual(sorted(reversed(ordered)), ordered)
        self.assertTrue(LogLevel.DEBUG < LogLevel.ERROR)
        self.assertTrue(LogLevel.WARNING >= LogLevel.WARNING)

    def test_from_code(self):
        self.assertIs(LogLevel.from_code('w'), LogLevel.WARNING)
        self.assertEqual(LogLevel.FATAL.code, 'F')
        with self.assertRaises(ValueError):
            LogLevel.from_code('Q')


class LogcatFilterTests(unittest.TestCase):

    def test_default_filter_accepts_everything(self):
        self.assertTrue(LogcatFilter().matches(_entry(level=LogLevel.VERBOSE)))

    def test_level_threshold(self):
        logcat_filter = LogcatFilter(min_level=LogLevel.WARNING)

        self.assertFalse(logcat_filter.matches(_entry(level=LogLevel.INFO)))
        self.assertTrue(logcat_filter.matches(_entry(level=LogLevel.WARNING)))
        self.assertTrue(logcat_filter.matches(_entry(level=LogLevel.FATAL)))

    def test_text_matches_tag_or_message(self):
        self.assertTrue(LogcatFilter(text='network').matches(_entry()))
        self.assertTrue(LogcatFilter(text='WIFI').matches(_entry()))
        self.assertFalse(LogcatFilter(text='bluetooth').matches(_entry()))

    def test_both_criteria_must_hold(self):
        logcat_filter = LogcatFilter(min_level=LogLevel.ERROR, text='wifi')

        self.assertFalse(logcat_filter.matches(_entry(level=LogLevel.INFO)))
        self.assertTrue(logcat_filter.matches(_entry(level=LogLevel.ERROR)))


@pytest.mark.parametrize(
    'event, kind',
    [
        (LogcatEvent.started(), LogcatEventType.START),
        (LogcatEvent.for_entry(_entry()), LogcatEventType.ENTRY),
        (LogcatEvent.error('boom'), LogcatEventType.ERROR),
        (LogcatEvent.closed(0), LogcatEventType.CLOSE),
    ],
)
def test_event_factories(event, kind):
    assert event.kind is kind


def test_close_event_carries_exit_code():
    assert LogcatEvent.closed(255).exit_code == 255


if __name__ == '__main__':
    unittest.main()
