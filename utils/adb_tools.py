"""Get devices list and use the device info to set object."""

import concurrent.futures
import os
import re
from typing import Dict, List, Optional, TypeVar

from config.constants import ADBConstants, LogcatConstants
from utils import adb_commands
from utils import adb_models
from utils import common
from utils.adb_client import AdbClient
from utils.adb_errors import AdbCommandError, AdbError

logger = common.get_logger('adb_tools')

_T = TypeVar('_T')

_GETPROP_PATTERN = re.compile(r'^\[(?P<key>[^\]]+)\]\s*:\s*\[(?P<value>[^\]]*)\]')
_PROPERTY_KEY_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

# `adb devices -l` keys mapped onto Device fields
_DEVICE_FIELD_BY_KEY = {
    'model': 'model',
    'product': 'product',
    'device': 'device_name',
    'transport_id': 'transport_id',
    'usb': 'usb',
}


def _determine_worker_count(task_count: int) -> int:
  """Select a sensible worker count for per-device parallelism.

  Args:
    task_count: Number of tasks to execute.

  Returns:
    Number of threads to schedule.
  """
  if task_count <= 0:
    return 0
  cpu_count = os.cpu_count() or 1
  return max(1, min(task_count, cpu_count))


def _require_success(result: adb_models.CommandResult, message: str, marker: Optional[str] = None) -> None:
  """Raise AdbCommandError when adb failed or ``marker`` is missing from stdout."""
  if not result.ok or (marker is not None and marker not in result.stdout):
    raise AdbCommandError(message, result)


# ---------------------------------------------------------------------------
# Device registry
# ---------------------------------------------------------------------------
def parse_device_line(line: str) -> Optional[adb_models.Device]:
  """Parse one `SERIAL STATE [key:value]*` row.

  Returns None for rows with fewer than two tokens.
  """
  parts = line.split()
  if len(parts) < 2:
    return None

  serial = parts[0]
  rest = parts[2:]
  state_token = parts[1]
  # adb prints "no permissions (...)" as several tokens
  if state_token == 'no' and rest and rest[0].startswith('permissions'):
    state_token = ADBConstants.DEVICE_STATE_NO_PERMISSIONS
    rest = rest[1:]

  fields: Dict[str, str] = {}
  for token in rest:
    key, sep, value = token.partition(':')
    if not sep or not key or not value:
      continue
    if not _PROPERTY_KEY_PATTERN.match(key):
      continue
    field_name = _DEVICE_FIELD_BY_KEY.get(key)
    if field_name:
      fields[field_name] = value

  return adb_models.Device(
      serial=serial,
      state=adb_models.DeviceState.from_token(state_token),
      **fields,
  )


def parse_devices_output(output: str) -> List[adb_models.Device]:
  """Parse full `adb devices -l` output, skipping the header and noise."""
  devices: List[adb_models.Device] = []
  for raw_line in output.splitlines():
    line = raw_line.strip()
    if not line:
      continue
    if line.startswith(ADBConstants.DEVICES_HEADER_PREFIX) or line.startswith(ADBConstants.DAEMON_NOTICE_PREFIX):
      continue

    device = parse_device_line(line)
    if device is None:
      logger.debug('Skipping malformed device line: %r', raw_line)
      continue
    devices.append(device)
  return devices


def list_devices(client: AdbClient) -> List[adb_models.Device]:
  """Get devices list as a fresh snapshot.

  Returns:
    devices: the parsed devices, in adb's listing order.
  """
  result = client.execute(adb_commands.cmd_get_adb_devices())
  devices = parse_devices_output(result.stdout)
  logger.info('Found %s device(s): %s', len(devices), [device.serial for device in devices])
  return devices


# ---------------------------------------------------------------------------
# Device properties
# ---------------------------------------------------------------------------
def parse_getprop_output(output: str) -> Dict[str, str]:
  """Parse `[key]: [value]` lines produced by `getprop`."""
  properties: Dict[str, str] = {}
  for line in output.splitlines():
    match = _GETPROP_PATTERN.match(line.strip())
    if not match:
      continue
    properties[match.group('key').strip()] = match.group('value').strip()
  return properties


def get_device_properties(client: AdbClient, serial: str) -> Dict[str, str]:
  """Retrieve device properties via `adb shell getprop`.

  Args:
    client: adb client used for the query.
    serial: Device serial number.

  Returns:
    Dictionary mapping property keys to values.
  """
  result = client.execute(adb_commands.cmd_get_device_properties(), serial=serial)
  _require_success(result, f'getprop failed for {serial}')
  return parse_getprop_output(result.stdout)


def get_device_name(client: AdbClient, serial: str) -> str:
  props = get_device_properties(client, serial)
  return props.get(ADBConstants.PROP_MODEL) or props.get(ADBConstants.PROP_NAME) or serial


def get_android_api_level(client: AdbClient, serial: str) -> int:
  result = client.execute(adb_commands.cmd_get_android_api_level(), serial=serial)
  _require_success(result, f'Reading API level failed for {serial}')
  data = result.stdout.strip()
  if data.isdigit():
    return int(data)
  return ADBConstants.UNKNOWN_API_LEVEL


def get_android_version(client: AdbClient, serial: str) -> str:
  result = client.execute(adb_commands.cmd_get_android_version(), serial=serial)
  _require_success(result, f'Reading Android version failed for {serial}')
  return result.stdout.strip() or ADBConstants.UNKNOWN_VERSION


def _settle(future: 'concurrent.futures.Future[_T]', fallback: _T, label: str, serial: str) -> _T:
  """Return the future's value, or ``fallback`` if the query failed."""
  try:
    return future.result()
  except AdbError as exc:
    logger.warning('Falling back for %s on %s: %s', label, serial, exc)
    return fallback


def resolve_device_info(client: AdbClient, device: adb_models.Device) -> adb_models.DeviceInfo:
  """Combine a listed device with its name, API level and Android version.

  Devices that are not in the ``device`` state are never queried. For ready
  devices the three queries run concurrently and each one falls back on its
  own when it fails, so the call itself always succeeds.
  """
  if not device.is_ready:
    logger.debug('Device %s is %s, using basic info', device.serial, device.state.value)
    return adb_models.DeviceInfo.basic(device)

  serial = device.serial
  with concurrent.futures.ThreadPoolExecutor(max_workers=3) as executor:
    name_future = executor.submit(get_device_name, client, serial)
    api_future = executor.submit(get_android_api_level, client, serial)
    version_future = executor.submit(get_android_version, client, serial)

    name = _settle(name_future, device.model or serial, 'name', serial)
    api_level = _settle(api_future, ADBConstants.UNKNOWN_API_LEVEL, 'api_level', serial)
    android_version = _settle(version_future, ADBConstants.UNKNOWN_VERSION, 'android_version', serial)

  return adb_models.DeviceInfo(
      device=device,
      name=name,
      api_level=api_level,
      android_version=android_version,
  )


def list_device_infos(client: AdbClient) -> List[adb_models.DeviceInfo]:
  """List devices and resolve their details in parallel, keeping adb's order."""
  devices = list_devices(client)
  if not devices:
    logger.warning('Not found device')
    return []

  worker_count = _determine_worker_count(len(devices))
  with concurrent.futures.ThreadPoolExecutor(max_workers=worker_count) as executor:
    infos = list(executor.map(lambda device: resolve_device_info(client, device), devices))
  logger.info('Resolved details for %s device(s)', len(infos))
  return infos


def is_adb_available(client: AdbClient) -> bool:
  """Checks whether the configured adb binary can be launched."""
  try:
    return client.execute(adb_commands.cmd_adb_version()).ok
  except AdbError as exc:
    logger.debug('ADB availability check failed: %s', exc)
    return False


# ---------------------------------------------------------------------------
# Logcat buffer helpers
# ---------------------------------------------------------------------------
def clear_logcat(client: AdbClient, serial: Optional[str] = None) -> None:
  """Clear the on-device logcat buffer."""
  result = client.execute(adb_commands.cmd_clear_device_logcat(), serial=serial)
  _require_success(result, f'Failed to clear logcat (exit code {result.exit_code})')
  logger.info('Cleared logcat buffer on %s', serial or 'default device')


def dump_logcat(client: AdbClient, serial: Optional[str] = None, lines: int = LogcatConstants.DEFAULT_DUMP_LINES) -> str:
  """Return the last ``lines`` lines of the device log without streaming."""
  result = client.execute(adb_commands.cmd_dump_device_logcat(lines), serial=serial)
  return result.stdout


# ---------------------------------------------------------------------------
# Device actions
# ---------------------------------------------------------------------------
def take_screenshot(client: AdbClient, serial: str, local_path: str) -> str:
  """Capture the screen, pull it to ``local_path`` and remove the device copy."""
  remote_path = ADBConstants.SCREENSHOT_REMOTE_PATH
  result = client.execute(adb_commands.cmd_screencap_capture(remote_path), serial=serial)
  _require_success(result, f'screencap failed on {serial}')

  result = client.execute(adb_commands.cmd_pull_device_file(remote_path, local_path), serial=serial)
  _require_success(result, f'Pulling screenshot from {serial} failed')

  client.execute(adb_commands.cmd_remove_device_file(remote_path), serial=serial)
  logger.info('Screenshot from %s saved to %s', serial, local_path)
  return local_path


def reboot(client: AdbClient, serial: str, mode: Optional[str] = None) -> None:
  """Reboot the device, optionally into bootloader, recovery or sideload."""
  if mode is not None and mode not in ADBConstants.REBOOT_MODES:
    raise ValueError(f'Unsupported reboot mode: {mode}')
  result = client.execute(adb_commands.cmd_adb_reboot(mode), serial=serial)
  _require_success(result, f'Reboot failed on {serial}')
  logger.info('Rebooting %s%s', serial, f' into {mode}' if mode else '')


def install_apk(
    client: AdbClient,
    serial: str,
    apk_path: str,
    replace: bool = False,
    allow_downgrade: bool = False,
) -> None:
  result = client.execute(
      adb_commands.cmd_adb_install(apk_path, replace=replace, allow_downgrade=allow_downgrade),
      serial=serial,
      timeout_ms=ADBConstants.INSTALL_COMMAND_TIMEOUT_MS,
  )
  _require_success(result, f'Failed to install APK {apk_path}', marker='Success')
  logger.info('Installed %s on %s', apk_path, serial)


def uninstall_package(client: AdbClient, serial: str, package_name: str, keep_data: bool = False) -> None:
  result = client.execute(adb_commands.cmd_adb_uninstall(package_name, keep_data=keep_data), serial=serial)
  _require_success(result, f'Failed to uninstall package {package_name}', marker='Success')
  logger.info('Uninstalled %s from %s', package_name, serial)


def launch_app(client: AdbClient, serial: str, package_name: str, activity: Optional[str] = None) -> None:
  """Launch an activity, or the package's launcher activity when none is given."""
  if activity:
    command = adb_commands.cmd_launch_activity(package_name, activity)
  else:
    command = adb_commands.cmd_launch_app(package_name)
  result = client.execute(command, serial=serial)
  _require_success(result, f'Failed to launch {package_name}')


def force_stop_app(client: AdbClient, serial: str, package_name: str) -> None:
  result = client.execute(adb_commands.cmd_force_stop_app(package_name), serial=serial)
  _require_success(result, f'Failed to force-stop {package_name}')
