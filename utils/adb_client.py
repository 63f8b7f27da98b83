"""Low-level adb command execution."""

import os
import re
import shutil
import subprocess
from typing import Optional, Sequence

from config.constants import ADBConstants
from utils import adb_commands
from utils import common
from utils.adb_errors import AdbSpawnError, AdbTimeoutError
from utils.adb_models import CommandResult

logger = common.get_logger('adb_client')

_VERSION_PATTERN = re.compile(r'Android Debug Bridge version ([\d.]+)')


def resolve_adb_path(configured_path: Optional[str] = None) -> str:
  """Pick the adb binary to invoke.

  Order: configured path, SDK environment variables, PATH lookup, bare name.
  """
  if configured_path and os.path.isfile(os.path.expanduser(configured_path)):
    return os.path.expanduser(configured_path)
  if configured_path:
    logger.warning('Configured adb path %s does not exist, falling back to auto-detect', configured_path)

  for env_var in ADBConstants.SDK_ENV_VARS:
    sdk_root = os.environ.get(env_var)
    if not sdk_root:
      continue
    candidate = os.path.join(sdk_root, ADBConstants.PLATFORM_TOOLS_DIR, ADBConstants.ADB_BINARY)
    if os.path.isfile(candidate):
      logger.debug('Using adb from %s: %s', env_var, candidate)
      return candidate

  found = shutil.which(ADBConstants.ADB_BINARY)
  if found:
    return found
  return ADBConstants.ADB_BINARY


class AdbClient:
  """Runs one adb subprocess per command and captures its output.

  Each call spawns exactly one process. A watchdog timeout kills the process
  before ``AdbTimeoutError`` is raised, so a timed-out command never leaves a
  process behind and never yields a result afterwards.
  """

  def __init__(self, adb_path: Optional[str] = None, timeout_ms: int = ADBConstants.DEFAULT_COMMAND_TIMEOUT_MS):
    self.adb_path = adb_path or resolve_adb_path()
    self.default_timeout_ms = timeout_ms

  @classmethod
  def from_settings(cls, settings) -> 'AdbClient':
    """Build a client from ``config.config_manager.AdbSettings``."""
    return cls(adb_path=resolve_adb_path(settings.adb_path), timeout_ms=settings.command_timeout_ms)

  def build_args(self, args: Sequence[str], serial: Optional[str] = None) -> list:
    full_args = [self.adb_path]
    if serial:
      full_args.extend(['-s', serial])
    full_args.extend(args)
    return full_args

  def execute(
      self,
      args: Sequence[str],
      serial: Optional[str] = None,
      timeout_ms: Optional[int] = None,
  ) -> CommandResult:
    """Run adb with ``args`` and return its exit code and output.

    Raises:
      AdbSpawnError: the binary could not be launched.
      AdbTimeoutError: the command did not finish within ``timeout_ms``.
    """
    full_args = self.build_args(args, serial)
    effective_timeout_ms = timeout_ms if timeout_ms is not None else self.default_timeout_ms
    logger.debug('Run adb command: %s', full_args)

    try:
      process = subprocess.Popen(
          full_args,
          stdin=subprocess.DEVNULL,
          stdout=subprocess.PIPE,
          stderr=subprocess.PIPE,
          shell=False,
          text=True,
          encoding='utf-8',
          errors='replace',
      )
    except OSError as exc:
      logger.error('Failed to launch adb at %s: %s', self.adb_path, exc)
      raise AdbSpawnError(self.adb_path, str(exc)) from exc

    with process:
      try:
        stdout, stderr = process.communicate(timeout=effective_timeout_ms / 1000.0)
      except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        logger.warning('ADB command timed out after %sms: %s', effective_timeout_ms, full_args)
        raise AdbTimeoutError(full_args, effective_timeout_ms) from None

    result = CommandResult(
        exit_code=process.returncode,
        stdout=stdout or '',
        stderr=stderr or '',
        args=tuple(full_args),
    )
    logger.debug('ADB command finished (exit=%s): %s', result.exit_code, full_args)
    return result

  def shell(
      self,
      command: str,
      serial: Optional[str] = None,
      timeout_ms: Optional[int] = None,
  ) -> CommandResult:
    """Run ``command`` through the device shell."""
    return self.execute(adb_commands.cmd_adb_shell(command), serial=serial, timeout_ms=timeout_ms)

  def version(self) -> str:
    """Return the adb version number, or ``"unknown"`` when it cannot be read."""
    result = self.execute(adb_commands.cmd_adb_version())
    match = _VERSION_PATTERN.search(result.stdout)
    if not match:
      logger.info('ADB version not found in output')
      return ADBConstants.UNKNOWN_ADB_VERSION
    return match.group(1)

  def start_server(self) -> CommandResult:
    return self.execute(adb_commands.cmd_start_adb_server())

  def kill_server(self) -> CommandResult:
    return self.execute(adb_commands.cmd_kill_adb_server())

  def connect(self, host: str, port: int = ADBConstants.DEFAULT_WIRELESS_PORT) -> str:
    """Connect to a device over TCP/IP and return adb's message."""
    result = self.execute(adb_commands.cmd_adb_connect(host, port))
    logger.info('adb connect %s:%s -> %s', host, port, result.stdout.strip())
    return result.stdout.strip()

  def disconnect(self, host: Optional[str] = None, port: Optional[int] = None) -> str:
    """Disconnect one TCP/IP device, or all of them when ``host`` is omitted."""
    result = self.execute(adb_commands.cmd_adb_disconnect(host, port))
    logger.info('adb disconnect %s -> %s', host or '(all)', result.stdout.strip())
    return result.stdout.strip()
