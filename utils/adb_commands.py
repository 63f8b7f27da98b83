"""Utility with argument-vector builders for adb.

Builders return the arguments that follow the adb binary (and the optional
``-s SERIAL`` selector, which the client adds). Shell commands are passed as a
single string so the device shell does the word splitting.
"""

import shlex
from typing import List, Optional, Sequence

from config.constants import ADBConstants, LogcatConstants


def _build_adb_command(*command_parts) -> List[str]:
  """Build an adb argument vector, dropping empty parts."""
  return [str(part) for part in command_parts if part is not None and part != '']


def _build_adb_shell_command(shell_command: str) -> List[str]:
  return _build_adb_command('shell', shell_command)


def _build_getprop_command(property_key: Optional[str] = None) -> List[str]:
  if property_key:
    return _build_adb_shell_command(f'getprop {property_key}')
  return _build_adb_shell_command('getprop')


def cmd_adb_shell(command: str) -> List[str]:
  return _build_adb_shell_command(command)


def cmd_get_adb_devices() -> List[str]:
  # adb devices -l
  return _build_adb_command('devices', '-l')


def cmd_get_device_properties() -> List[str]:
  return _build_getprop_command()


def cmd_get_android_api_level() -> List[str]:
  return _build_getprop_command(ADBConstants.PROP_SDK)


def cmd_get_android_version() -> List[str]:
  return _build_getprop_command(ADBConstants.PROP_RELEASE)


def cmd_adb_version() -> List[str]:
  return _build_adb_command('version')


def cmd_start_adb_server() -> List[str]:
  return _build_adb_command('start-server')


def cmd_kill_adb_server() -> List[str]:
  return _build_adb_command('kill-server')


def _format_endpoint(host: str, port: Optional[int]) -> str:
  return f'{host}:{port if port is not None else ADBConstants.DEFAULT_WIRELESS_PORT}'


def cmd_adb_connect(host: str, port: Optional[int] = None) -> List[str]:
  return _build_adb_command('connect', _format_endpoint(host, port))


def cmd_adb_disconnect(host: Optional[str] = None, port: Optional[int] = None) -> List[str]:
  if not host:
    return _build_adb_command('disconnect')
  return _build_adb_command('disconnect', _format_endpoint(host, port))


def cmd_logcat_stream(tags: Sequence[str] = (), min_level_code: str = 'V') -> List[str]:
  """Build the streaming logcat command.

  With tag filters every tag is listed at the minimum level and the catch-all
  silence directive is appended, so adb drops every other tag on the device.
  """
  parts = ['logcat', '-v', LogcatConstants.OUTPUT_FORMAT]
  tag_list = [tag.strip() for tag in tags if tag and tag.strip()]
  if tag_list:
    parts.extend(f'{tag}:{min_level_code}' for tag in tag_list)
    parts.append(LogcatConstants.SILENCE_ALL_DIRECTIVE)
  return _build_adb_command(*parts)


def cmd_clear_device_logcat() -> List[str]:
  return _build_adb_command('logcat', '-c')


def cmd_dump_device_logcat(lines: int = LogcatConstants.DEFAULT_DUMP_LINES) -> List[str]:
  return _build_adb_command('logcat', '-d', '-t', str(int(lines)))


def cmd_adb_reboot(mode: Optional[str] = None) -> List[str]:
  return _build_adb_command('reboot', mode)


def cmd_adb_install(apk_path: str, replace: bool = False, allow_downgrade: bool = False) -> List[str]:
  parts = ['install']
  if replace:
    parts.append('-r')
  if allow_downgrade:
    parts.append('-d')
  parts.append(apk_path)
  return _build_adb_command(*parts)


def cmd_adb_uninstall(package_name: str, keep_data: bool = False) -> List[str]:
  if keep_data:
    return _build_adb_command('uninstall', '-k', package_name)
  return _build_adb_command('uninstall', package_name)


def cmd_screencap_capture(remote_path: str) -> List[str]:
  return _build_adb_shell_command(f'screencap -p {shlex.quote(remote_path)}')


def cmd_pull_device_file(remote_path: str, local_path: str) -> List[str]:
  return _build_adb_command('pull', remote_path, local_path)


def cmd_remove_device_file(remote_path: str) -> List[str]:
  return _build_adb_shell_command(f'rm {shlex.quote(remote_path)}')


def cmd_launch_activity(package_name: str, activity: str) -> List[str]:
  component = shlex.quote(f'{package_name}/{activity}')
  return _build_adb_shell_command(f'am start -n {component}')


def cmd_launch_app(package_name: str) -> List[str]:
  return _build_adb_shell_command(
      f'monkey -p {shlex.quote(package_name)} -c android.intent.category.LAUNCHER 1'
  )


def cmd_force_stop_app(package_name: str) -> List[str]:
  return _build_adb_shell_command(f'am force-stop {shlex.quote(package_name)}')
