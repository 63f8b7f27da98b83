"""Long-lived logcat stream: process lifecycle, line assembly and fan-out."""

from __future__ import annotations

import codecs
import functools
import queue
import threading
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QObject, QProcess, pyqtSignal

from config.constants import LogcatConstants
from utils import adb_commands
from utils import adb_tools
from utils import common
from utils.adb_client import AdbClient
from utils.adb_errors import AdbSpawnError, LogcatAlreadyRunningError

from .entry_buffer import EntryBuffer
from .models import (
    EngineState,
    LogcatEntry,
    LogcatEvent,
    LogcatEventType,
    LogcatFilter,
    LogLevel,
)
from .parser import LogcatParser


logger = common.get_logger('logcat_engine')


EventCallback = Callable[[LogcatEvent], None]
ProcessFactory = Callable[[], QProcess]


class StreamSession:
    """One running logcat process and the unterminated tail of its output."""

    def __init__(self, process, serial: Optional[str], tags: Tuple[str, ...]) -> None:
        self.process = process
        self.serial = serial
        self.tags = tags
        self.partial_line = ''
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')

    def feed(self, data: bytes) -> List[str]:
        """Append a chunk and return the complete lines it closes."""
        text = self._decoder.decode(data)
        if not text:
            return []
        pieces = (self.partial_line + text).split('\n')
        self.partial_line = pieces.pop()
        return [piece.rstrip('\r') for piece in pieces]

    def discard_partial(self) -> str:
        dropped = self.partial_line
        self.partial_line = ''
        self._decoder.reset()
        return dropped


class LogcatSubscription:
    """Handle returned by ``LogcatStreamEngine.subscribe``.

    ``cancel()`` detaches the callback; once it returns no further events are
    delivered to it.
    """

    def __init__(
        self,
        engine: 'LogcatStreamEngine',
        callback: EventCallback,
        kinds: Optional[Iterable[LogcatEventType]] = None,
    ) -> None:
        self._engine = engine
        self._callback = callback
        self._kinds = frozenset(kinds) if kinds is not None else None
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def wants(self, event: LogcatEvent) -> bool:
        return self._active and (self._kinds is None or event.kind in self._kinds)

    def deliver(self, event: LogcatEvent) -> None:
        self._callback(event)

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._engine._unsubscribe(self)

    def __enter__(self) -> 'LogcatSubscription':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


_CHANNEL_CLOSED = object()


class LogcatChannel(LogcatSubscription):
    """Queue-backed subscription for consumers that pull events.

    Iterating blocks until the next event and ends once the channel is
    cancelled.
    """

    def __init__(self, engine: 'LogcatStreamEngine', kinds: Optional[Iterable[LogcatEventType]] = None) -> None:
        self._queue: 'queue.Queue' = queue.Queue()
        super().__init__(engine, self._queue.put, kinds)

    def get(self, timeout: Optional[float] = None) -> Optional[LogcatEvent]:
        """Return the next event, or None on timeout or after cancel."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CHANNEL_CLOSED:
            # Keep the marker for other readers blocked on the same channel.
            self._queue.put(_CHANNEL_CLOSED)
            return None
        return item

    def cancel(self) -> None:
        if not self._active:
            return
        super().cancel()
        self._queue.put(_CHANNEL_CLOSED)

    def __iter__(self) -> Iterator[LogcatEvent]:
        while True:
            item = self._queue.get()
            if item is _CHANNEL_CLOSED:
                self._queue.put(_CHANNEL_CLOSED)
                return
            yield item


class LogcatStreamEngine(QObject):
    """Stopped/Running state machine around a single ``adb logcat`` process.

    Output chunks are assembled into lines, parsed, filtered, retained in an
    EntryBuffer and published to subscribers. Signal handlers are bound to the
    session they were created for, so anything a stopped process emits late is
    ignored.
    """

    event_published = pyqtSignal(object)

    def __init__(
        self,
        client: AdbClient,
        buffer: Optional[EntryBuffer] = None,
        min_level: LogLevel = LogLevel.VERBOSE,
        text_filter: str = LogcatConstants.DEFAULT_FILTER,
        process_factory: Optional[ProcessFactory] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._client = client
        self._buffer = buffer if buffer is not None else EntryBuffer()
        self._filter = LogcatFilter(min_level=min_level, text=text_filter or '')
        self._process_factory = process_factory or QProcess
        self._parser = LogcatParser()

        self._state = EngineState.STOPPED
        self._session: Optional[StreamSession] = None
        self._subscribers: List[LogcatSubscription] = []
        self._subscribers_lock = threading.Lock()

    @classmethod
    def from_settings(cls, client: AdbClient, settings, **kwargs) -> 'LogcatStreamEngine':
        """Build an engine from ``config.config_manager.LogcatSettings``."""
        return cls(
            client,
            buffer=EntryBuffer(settings.max_entries),
            min_level=LogLevel.from_code(settings.min_level),
            text_filter=settings.default_filter,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    @property
    def session(self) -> Optional[StreamSession]:
        return self._session

    @property
    def buffer(self) -> EntryBuffer:
        return self._buffer

    @property
    def parser(self) -> LogcatParser:
        return self._parser

    @property
    def min_level(self) -> LogLevel:
        return self._filter.min_level

    @property
    def text_filter(self) -> str:
        return self._filter.text

    def entries(self) -> Tuple[LogcatEntry, ...]:
        return self._buffer.snapshot()

    # ------------------------------------------------------------------
    # Lifecycle management
    # ------------------------------------------------------------------
    def start(self, serial: Optional[str] = None, tags: Optional[Sequence[str]] = None) -> None:
        """Spawn ``adb logcat`` and move to RUNNING.

        Raises:
          LogcatAlreadyRunningError: a session is already active.
          AdbSpawnError: the process could not be started.
        """
        if self._state is EngineState.RUNNING:
            raise LogcatAlreadyRunningError('Logcat stream is already running; stop it first')

        tag_list = tuple(tag for tag in (tags or ()) if tag)
        args = self._client.build_args(
            adb_commands.cmd_logcat_stream(tag_list, self._filter.min_level.code),
            serial,
        )

        process = self._process_factory()
        session = StreamSession(process, serial, tag_list)
        process.readyReadStandardOutput.connect(functools.partial(self._on_stdout, session))
        process.readyReadStandardError.connect(functools.partial(self._on_stderr, session))
        process.finished.connect(functools.partial(self._on_finished, session))
        process.errorOccurred.connect(functools.partial(self._on_process_error, session))

        logger.info('Starting logcat stream: %s', args)
        process.start(args[0], list(args[1:]))
        if not process.waitForStarted(LogcatConstants.START_TIMEOUT_MS):
            reason = process.errorString()
            logger.error('Failed to start logcat process: %s', reason)
            process.deleteLater()
            raise AdbSpawnError(args[0], reason)

        self._session = session
        self._parser.reset()
        self._state = EngineState.RUNNING
        self._publish(LogcatEvent.started(f'logcat started for {serial or "default device"}'))

    def stop(self) -> None:
        """Terminate the active process; a no-op when already stopped."""
        session = self._session
        if session is None:
            return

        self._session = None
        self._state = EngineState.STOPPED

        process = session.process
        process.terminate()
        if not process.waitForFinished(LogcatConstants.STOP_GRACE_MS):
            logger.warning('Logcat process ignored terminate, killing it')
            process.kill()
            process.waitForFinished(LogcatConstants.STOP_GRACE_MS)

        dropped = session.discard_partial()
        if dropped:
            logger.debug('Discarded partial line at stop: %r', dropped)

        exit_code = process.exitCode()
        process.deleteLater()
        logger.info('Logcat stream stopped (exit=%s, skipped=%s)', exit_code, self._parser.skipped_count)
        self._publish(LogcatEvent.closed(exit_code))

    def restart(self, serial: Optional[str] = None, tags: Optional[Sequence[str]] = None) -> None:
        self.stop()
        self.start(serial=serial, tags=tags)

    # ------------------------------------------------------------------
    # Filters and buffer
    # ------------------------------------------------------------------
    def set_min_level(self, level: LogLevel) -> None:
        """Apply ``level`` to entries that arrive from now on."""
        self._filter = LogcatFilter(min_level=level, text=self._filter.text)

    def set_text_filter(self, text: str) -> None:
        self._filter = LogcatFilter(min_level=self._filter.min_level, text=text or '')

    def clear(self) -> None:
        self._buffer.clear()

    def clear_device_buffer(self, serial: Optional[str] = None) -> None:
        """Run ``logcat -c`` on the device; raises AdbCommandError on failure."""
        target = serial if serial is not None else (self._session.serial if self._session else None)
        adb_tools.clear_logcat(self._client, target)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(
        self,
        callback: EventCallback,
        kinds: Optional[Iterable[LogcatEventType]] = None,
    ) -> LogcatSubscription:
        subscription = LogcatSubscription(self, callback, kinds)
        self._attach(subscription)
        return subscription

    def channel(self, kinds: Optional[Iterable[LogcatEventType]] = None) -> LogcatChannel:
        channel = LogcatChannel(self, kinds)
        self._attach(channel)
        return channel

    def _attach(self, subscription: LogcatSubscription) -> None:
        with self._subscribers_lock:
            self._subscribers.append(subscription)

    def _unsubscribe(self, subscription: LogcatSubscription) -> None:
        with self._subscribers_lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def _publish(self, event: LogcatEvent) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            if not subscription.wants(event):
                continue
            try:
                subscription.deliver(event)
            except Exception:
                logger.exception('Logcat subscriber failed handling %s event', event.kind.value)
        self.event_published.emit(event)

    # ------------------------------------------------------------------
    # Process signal handlers
    # ------------------------------------------------------------------
    def _on_stdout(self, session: StreamSession) -> None:
        if session is not self._session:
            return
        data = bytes(session.process.readAllStandardOutput())
        self._handle_lines(session.feed(data))

    def _handle_lines(self, lines: List[str]) -> None:
        for line in lines:
            entry = self._parser.parse(line)
            if entry is None:
                continue
            if not self._filter.matches(entry):
                continue
            self._buffer.push(entry)
            self._publish(LogcatEvent.for_entry(entry))

    def _on_stderr(self, session: StreamSession) -> None:
        if session is not self._session:
            return
        data = bytes(session.process.readAllStandardError())
        message = data.decode('utf-8', errors='replace').strip()
        if message:
            logger.warning('logcat stderr: %s', message)
            self._publish(LogcatEvent.error(message))

    def _on_process_error(self, session: StreamSession, error=None) -> None:
        if session is not self._session:
            return
        message = session.process.errorString()
        logger.warning('logcat process error (%s): %s', error, message)
        self._publish(LogcatEvent.error(message))

    def _on_finished(self, session: StreamSession, exit_code: int = 0, exit_status=None) -> None:
        if session is not self._session:
            return
        # Lines flushed right before exit may not have been read yet.
        self._handle_lines(session.feed(bytes(session.process.readAllStandardOutput())))
        session.discard_partial()

        self._session = None
        self._state = EngineState.STOPPED
        session.process.deleteLater()
        logger.info('Logcat process exited with code %s', exit_code)
        self._publish(LogcatEvent.closed(exit_code))
