"""Adb objects models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from config.constants import ADBConstants


class DeviceState(Enum):
  """Connection states reported by `adb devices`."""

  DEVICE = ADBConstants.DEVICE_STATE_DEVICE
  OFFLINE = ADBConstants.DEVICE_STATE_OFFLINE
  UNAUTHORIZED = ADBConstants.DEVICE_STATE_UNAUTHORIZED
  AUTHORIZING = ADBConstants.DEVICE_STATE_AUTHORIZING
  NO_PERMISSIONS = ADBConstants.DEVICE_STATE_NO_PERMISSIONS
  BOOTLOADER = ADBConstants.DEVICE_STATE_BOOTLOADER
  RECOVERY = ADBConstants.DEVICE_STATE_RECOVERY
  SIDELOAD = ADBConstants.DEVICE_STATE_SIDELOAD
  UNKNOWN = ADBConstants.DEVICE_STATE_UNKNOWN

  @classmethod
  def from_token(cls, token: str) -> 'DeviceState':
    """Map a raw state token to a member, falling back to UNKNOWN."""
    normalized = (token or '').strip().lower()
    for member in cls:
      if member.value == normalized:
        return member
    return cls.UNKNOWN

  @property
  def is_ready(self) -> bool:
    return self is DeviceState.DEVICE


def is_emulator_serial(serial: str) -> bool:
  """Return True for emulator serials and default-port wireless serials."""
  return (
      serial.startswith(ADBConstants.EMULATOR_SERIAL_PREFIX)
      or serial.endswith(f':{ADBConstants.DEFAULT_WIRELESS_PORT}')
  )


@dataclass(frozen=True)
class Device:
  """One row of `adb devices -l` output."""

  serial: str
  state: DeviceState
  model: Optional[str] = None
  product: Optional[str] = None
  device_name: Optional[str] = None
  transport_id: Optional[str] = None
  usb: Optional[str] = None

  @property
  def is_emulator(self) -> bool:
    return is_emulator_serial(self.serial)

  @property
  def is_ready(self) -> bool:
    return self.state.is_ready

  def __str__(self):
    return f'{self.serial} ({self.state.value}) model={self.model or "-"}'


@dataclass(frozen=True)
class DeviceInfo:
  """A device combined with its resolved properties."""

  device: Device
  name: str
  api_level: int = ADBConstants.UNKNOWN_API_LEVEL
  android_version: str = ADBConstants.UNKNOWN_VERSION

  @property
  def serial(self) -> str:
    return self.device.serial

  @property
  def state(self) -> DeviceState:
    return self.device.state

  @property
  def is_emulator(self) -> bool:
    return self.device.is_emulator

  @classmethod
  def basic(cls, device: Device) -> 'DeviceInfo':
    """Build info from listing fields only, without querying the device."""
    return cls(device=device, name=device.model or device.serial)

  def __str__(self):
    return (
        f'- Serial number: {self.serial}'
        f' Name: {self.name.ljust(13)}'
        f' State: {self.state.value}'
        f' Android: {self.android_version}'
        f' API lvl: {self.api_level}'
        f' Emulator: {"yes" if self.is_emulator else "no"}'
    )


@dataclass(frozen=True)
class CommandResult:
  """Exit code and captured output of a single adb invocation."""

  exit_code: int
  stdout: str
  stderr: str
  args: Tuple[str, ...] = ()

  @property
  def ok(self) -> bool:
    return self.exit_code == 0

  @property
  def output(self) -> str:
    """Combined stdout/stderr, useful for error messages."""
    return '\n'.join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)
