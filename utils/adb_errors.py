"""Error types raised by the adb command and logcat layers."""

from typing import Optional, Sequence

from utils.adb_models import CommandResult


class AdbError(RuntimeError):
  """Base class for failures talking to the adb binary."""


class AdbSpawnError(AdbError):
  """Raised when the adb binary cannot be launched."""

  def __init__(self, adb_path: str, reason: str = ''):
    self.adb_path = adb_path
    self.reason = reason
    message = f'Unable to launch adb at {adb_path!r}'
    if reason:
      message = f'{message}: {reason}'
    super().__init__(message)


class AdbTimeoutError(AdbError):
  """Raised when an adb command exceeds its time budget."""

  def __init__(self, args: Sequence[str], timeout_ms: int):
    self.args_list = tuple(args)
    self.timeout_ms = timeout_ms
    super().__init__(f'ADB command timed out after {timeout_ms}ms: {" ".join(self.args_list)}')


class AdbCommandError(AdbError):
  """Raised when adb ran but reported a failure."""

  def __init__(self, message: str, result: Optional[CommandResult] = None):
    self.result = result
    if result is not None and result.output:
      message = f'{message}: {result.output}'
    super().__init__(message)


class LogcatAlreadyRunningError(AdbError):
  """Raised when a logcat stream is started while one is active."""
