"""Parsing helpers for logcat threadtime output."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from .models import LogcatEntry, LogLevel

# MM-DD HH:MM:SS.mmm  PID  TID LEVEL TAG: MESSAGE
_THREADTIME_PATTERN = re.compile(
    r'^(?P<month>\d{2})-(?P<day>\d{2})\s+'
    r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})\.(?P<millis>\d{3})\s+'
    r'(?P<pid>\d+)\s+(?P<tid>\d+)\s+'
    r'(?P<level>[VDIWEFS])\s+'
    r'(?P<tag>[^:]+?)\s*:\s?(?P<message>.*)$'
)


def parse_line(raw: str, year: Optional[int] = None) -> Optional[LogcatEntry]:
    """Parse a single threadtime line into a LogcatEntry.

    Returns None for anything that does not match the grammar, including
    buffer separators and impossible dates. The format carries no year, so the
    current wall-clock year is used unless ``year`` is given; entries logged
    just before New Year and parsed just after it get the wrong year.
    """
    if not raw:
        return None

    line = raw.rstrip('\r\n')
    match = _THREADTIME_PATTERN.match(line)
    if not match:
        return None

    effective_year = year if year is not None else datetime.now().year
    try:
        timestamp = datetime(
            effective_year,
            int(match.group('month')),
            int(match.group('day')),
            int(match.group('hour')),
            int(match.group('minute')),
            int(match.group('second')),
            int(match.group('millis')) * 1000,
        )
    except ValueError:
        return None

    return LogcatEntry(
        timestamp=timestamp,
        pid=int(match.group('pid')),
        tid=int(match.group('tid')),
        level=LogLevel.from_code(match.group('level')),
        tag=match.group('tag').strip(),
        message=match.group('message'),
        raw_line=line,
    )


class LogcatParser:
    """Stateful wrapper around ``parse_line`` that counts skipped lines."""

    def __init__(self, year: Optional[int] = None) -> None:
        self._year = year
        self.parsed_count = 0
        self.skipped_count = 0

    def parse(self, raw: str) -> Optional[LogcatEntry]:
        entry = parse_line(raw, year=self._year)
        if entry is None:
            if raw and raw.strip():
                self.skipped_count += 1
        else:
            self.parsed_count += 1
        return entry

    def reset(self) -> None:
        self.parsed_count = 0
        self.skipped_count = 0
