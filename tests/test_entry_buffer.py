"""Tests for the bounded logcat entry buffer."""

import os
import sys
import tempfile
import threading
import unittest
from datetime import datetime

os.environ.setdefault('ANDROID_DEVKIT_LOG_DIR', tempfile.mkdtemp(prefix='android_devkit_test_logs_'))

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from modules.logcat.entry_buffer import EntryBuffer  # noqa: E402
from modules.logcat.models import LogcatEntry, LogLevel  # noqa: E402


def _entry(index: int) -> LogcatEntry:
    return LogcatEntry(
        timestamp=datetime(2024, 1, 1, 0, 0, 0),
        pid=100,
        tid=100,
        level=LogLevel.INFO,
        tag='Test',
        message=f'message {index}',
    )


class EntryBufferTests(unittest.TestCase):

    def test_evicts_oldest_when_full(self):
        buffer = EntryBuffer(capacity=3)
        for index in range(5):
            buffer.push(_entry(index))

        messages = [entry.message for entry in buffer.snapshot()]
        self.assertEqual(messages, ['message 2', 'message 3', 'message 4'])
        self.assertEqual(len(buffer), 3)
        self.assertEqual(buffer.evicted_count, 2)

    def test_keeps_insertion_order_below_capacity(self):
        buffer = EntryBuffer(capacity=10)
        for index in range(4):
            buffer.push(_entry(index))

        self.assertEqual([entry.message for entry in buffer], [f'message {i}' for i in range(4)])

    def test_clear_empties_buffer(self):
        buffer = EntryBuffer(capacity=2)
        buffer.push(_entry(0))
        buffer.clear()

        self.assertEqual(len(buffer), 0)
        self.assertEqual(buffer.snapshot(), ())

    def test_snapshot_is_detached(self):
        buffer = EntryBuffer(capacity=5)
        buffer.push(_entry(0))
        snapshot = buffer.snapshot()
        buffer.push(_entry(1))

        self.assertEqual(len(snapshot), 1)
        self.assertEqual(len(buffer), 2)

    def test_capacity_is_read_only(self):
        buffer = EntryBuffer(capacity=5)

        self.assertEqual(buffer.capacity, 5)
        with self.assertRaises(AttributeError):
            buffer.capacity = 10

    def test_rejects_non_positive_capacity(self):
        for capacity in (0, -1):
            with self.subTest(capacity=capacity):
                with self.assertRaises(ValueError):
                    EntryBuffer(capacity=capacity)

    def test_concurrent_readers_see_bounded_snapshots(self):
        buffer = EntryBuffer(capacity=50)
        sizes = []

        def reader():
            for _ in range(200):
                sizes.append(len(buffer.snapshot()))

        thread = threading.Thread(target=reader)
        thread.start()
        for index in range(500):
            buffer.push(_entry(index))
        thread.join()

        self.assertTrue(all(size <= 50 for size in sizes))
        self.assertEqual(len(buffer), 50)


if __name__ == '__main__':
    unittest.main()
